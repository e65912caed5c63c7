from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import StaffUser, get_current_staff, get_session
from app.models.service_limit import ServiceLimitPublic, ServiceLimitUpsert
from app.services.capacity_service import limit_to_public, list_limits, upsert_limit

router = APIRouter(prefix="/admin/service-limits", tags=["admin"])


@router.get("", response_model=list[ServiceLimitPublic])
async def get_limits(
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> list[ServiceLimitPublic]:
    return [limit_to_public(limit, service) for limit, service in await list_limits(session)]


@router.post("", response_model=ServiceLimitPublic)
async def set_limit(
    body: ServiceLimitUpsert,
    session: AsyncSession = Depends(get_session),
    staff: StaffUser = Depends(get_current_staff),
) -> ServiceLimitPublic:
    """Create or update a daily limit; applies from the next admission check."""
    limit, service = await upsert_limit(session, body, updated_by=staff.display_name)
    await session.commit()
    return limit_to_public(limit, service)
