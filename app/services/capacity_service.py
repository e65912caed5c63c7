"""Daily admission control per service.

Slot concurrency (slot_service) stops double-booking one window; this module caps the
total a service may take on a day, whichever slots absorb it. The authoritative check
runs under a row lock on the service's ServiceReservationLimit so two requests cannot
both see a pre-limit count and both insert. `check_availability` is the lock-free,
advisory twin used for display only.
"""
import logging
import math
from datetime import UTC, date, datetime

from sqlalchemy import func, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import CapacityExceededError, NotFoundError
from app.models.enums import ACTIVE_STATUSES, AvailabilityLevel
from app.models.reservation import Reservation
from app.models.schedule import DailyAvailability
from app.models.service import Service
from app.models.service_limit import ServiceLimitPublic, ServiceLimitUpsert, ServiceReservationLimit
from app.services.catalog_service import get_service, get_service_by_code, parse_date

logger = logging.getLogger(__name__)


def soft_limit_for(daily_limit: int) -> int:
    """Warning threshold derived from the hard limit; not stored."""
    return math.ceil(daily_limit * settings.soft_limit_ratio)


async def count_active_reservations(session: AsyncSession, d: date, service_id: int) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Reservation)
        .where(
            Reservation.preferred_date == d,
            Reservation.service_id == service_id,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
    )
    return int(result.scalar_one())


async def lock_service_limit(session: AsyncSession, service_id: int) -> ServiceReservationLimit | None:
    """SELECT ... FOR UPDATE on the service's limit row; held until commit/rollback."""
    if session.get_bind().dialect.name == "postgresql":
        # Bounded wait: expiry surfaces as SQLSTATE 55P03, mapped to ConcurrencyTimeoutError
        await session.execute(text(f"SET LOCAL lock_timeout = '{int(settings.lock_timeout_ms)}ms'"))
    result = await session.execute(
        select(ServiceReservationLimit)
        .where(ServiceReservationLimit.service_id == service_id)
        .with_for_update()
    )
    return result.scalar_one_or_none()


async def require_admission(session: AsyncSession, d: date, service_id: int) -> int:
    """Lock, count and decide. Returns the pre-insert count or raises CapacityExceededError.

    Must run in the same transaction as the reservation insert.
    """
    limit = await lock_service_limit(session, service_id)
    if not limit or not limit.is_active:
        # No configured limit means closed, not unlimited
        logger.warning("Admission denied: no active daily limit for service_id=%s", service_id)
        raise CapacityExceededError(
            "Reservations are not open for this service",
            metadata={"requested_date": d.isoformat(), "current_count": 0, "limit": 0},
        )
    current = await count_active_reservations(session, d, service_id)
    if current >= limit.daily_limit:
        logger.info(
            "Admission denied: service_id=%s date=%s count=%d limit=%d",
            service_id, d, current, limit.daily_limit,
        )
        raise CapacityExceededError(
            "Daily reservation limit reached for this service",
            metadata={
                "requested_date": d.isoformat(),
                "current_count": current,
                "limit": limit.daily_limit,
            },
        )
    return current


async def admit(session: AsyncSession, d: date, service_id: int) -> bool:
    try:
        await require_admission(session, d, service_id)
    except CapacityExceededError:
        return False
    return True


async def check_availability(session: AsyncSession, date_string: str, service_code: str) -> DailyAvailability:
    """Advisory daily availability for display. Takes no lock; never use it as the gate."""
    d = parse_date(date_string)
    service = await get_service_by_code(session, service_code)
    result = await session.execute(
        select(ServiceReservationLimit).where(ServiceReservationLimit.service_id == service.id)
    )
    limit = result.scalar_one_or_none()
    if not limit or not limit.is_active:
        return DailyAvailability(
            date=d,
            service=service.code,
            available=False,
            remaining=0,
            current_count=0,
            limit=0,
            soft_limit=0,
            level=AvailabilityLevel.FULL,
            message="Reservations are not open for this service.",
        )
    current = await count_active_reservations(session, d, service.id)
    remaining = max(0, limit.daily_limit - current)
    soft = soft_limit_for(limit.daily_limit)
    if remaining == 0:
        level = AvailabilityLevel.FULL
        message = "Fully booked for this date."
    elif current >= soft:
        level = AvailabilityLevel.LIMITED
        message = f"Limited availability ({remaining} left)."
    else:
        level = AvailabilityLevel.AVAILABLE
        message = f"Available ({remaining} left)."
    return DailyAvailability(
        date=d,
        service=service.code,
        available=remaining > 0,
        remaining=remaining,
        current_count=current,
        limit=limit.daily_limit,
        soft_limit=soft,
        level=level,
        message=message,
    )


def limit_to_public(limit: ServiceReservationLimit, service: Service) -> ServiceLimitPublic:
    return ServiceLimitPublic(
        id=limit.id,
        service_id=limit.service_id,
        service_code=service.code,
        service_name=service.name,
        daily_limit=limit.daily_limit,
        soft_limit=soft_limit_for(limit.daily_limit),
        is_active=limit.is_active,
        reason=limit.reason,
        updated_by=limit.updated_by,
        updated_at=limit.updated_at,
    )


async def list_limits(session: AsyncSession) -> list[tuple[ServiceReservationLimit, Service]]:
    result = await session.execute(
        select(ServiceReservationLimit, Service)
        .join(Service, Service.id == ServiceReservationLimit.service_id)
        .order_by(Service.display_order, Service.code)
    )
    return [(row[0], row[1]) for row in result.all()]


async def upsert_limit(
    session: AsyncSession, data: ServiceLimitUpsert, updated_by: str | None
) -> tuple[ServiceReservationLimit, Service]:
    """Create or update a service's daily limit. The next admission re-reads it under lock."""
    service = await get_service(session, data.service_id)
    if service is None:
        raise NotFoundError(f"Service not found: {data.service_id}", metadata={"service_id": data.service_id})
    result = await session.execute(
        select(ServiceReservationLimit).where(ServiceReservationLimit.service_id == data.service_id)
    )
    limit = result.scalar_one_or_none()
    now = datetime.now(UTC).replace(tzinfo=None)
    if limit is None:
        limit = ServiceReservationLimit(service_id=data.service_id, daily_limit=data.daily_limit)
        session.add(limit)
    limit.daily_limit = data.daily_limit
    limit.is_active = data.is_active
    limit.reason = data.reason
    limit.updated_by = updated_by
    limit.updated_at = now
    await session.flush()
    await session.refresh(limit)
    logger.info(
        "Service limit set: service=%s daily_limit=%d active=%s by=%s",
        service.code, limit.daily_limit, limit.is_active, updated_by,
    )
    return limit, service
