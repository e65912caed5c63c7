from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_session
from app.models.service import ServicePublic
from app.services.catalog_service import list_active_services

router = APIRouter(prefix="/services", tags=["services"])


@router.get("", response_model=list[ServicePublic])
async def list_services(session: AsyncSession = Depends(get_session)) -> list[ServicePublic]:
    services = await list_active_services(session)
    return [
        ServicePublic(
            id=s.id,
            code=s.code,
            name=s.name,
            category=s.category,
            duration_minutes=s.duration_minutes,
            buffer_minutes=s.buffer_minutes,
            total_minutes=s.total_minutes,
            display_order=s.display_order,
        )
        for s in services
    ]
