from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ValidationError
from app.models.service import Service


def parse_date(value: str) -> date:
    """Parse a YYYY-MM-DD query value, raising ValidationError instead of ValueError."""
    try:
        if len(value) != 10:
            raise ValueError(value)
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(
            "Date must be in YYYY-MM-DD format",
            code="INVALID_DATE",
            metadata={"received": value},
        )


async def get_service_by_code(session: AsyncSession, code: str) -> Service:
    result = await session.execute(select(Service).where(Service.code == code))
    service = result.scalar_one_or_none()
    if not service or not service.is_active:
        raise ValidationError(
            f"Service not found: {code}",
            code="SERVICE_NOT_FOUND",
            metadata={"service_code": code},
        )
    return service


async def get_service(session: AsyncSession, service_id: int) -> Service | None:
    return await session.get(Service, service_id)


async def resolve_service_id(
    session: AsyncSession, service_id: int | None, service_code: str | None
) -> int | None:
    """Staff requests may name a service by id or by code; neither means all services."""
    if service_id is not None:
        if await get_service(session, service_id) is None:
            raise ValidationError(
                f"Service not found: {service_id}",
                code="SERVICE_NOT_FOUND",
                metadata={"service_id": service_id},
            )
        return service_id
    if service_code:
        return (await get_service_by_code(session, service_code)).id
    return None


async def list_active_services(session: AsyncSession) -> list[Service]:
    result = await session.execute(
        select(Service)
        .where(Service.is_active.is_(True))
        .order_by(Service.display_order, Service.name)
    )
    return list(result.scalars().all())
