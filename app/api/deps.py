from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from app.core.config import settings
from app.core.db import get_session  # noqa: F401 - routes import it from here
from app.core.security import decode_access_token

security = HTTPBearer(auto_error=False)


class StaffUser(BaseModel):
    id: str
    email: str | None = None
    role: str

    @property
    def display_name(self) -> str:
        return self.email or self.id


async def get_current_staff(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> StaffUser:
    """Staff identity from a bearer token issued by the external login service."""
    if not credentials or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    role = str(payload.get("role") or "").upper()
    if role not in settings.staff_roles_list:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to manage reservations",
        )
    return StaffUser(id=str(payload["sub"]), email=payload.get("email"), role=role)
