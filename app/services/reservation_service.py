import logging
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db import is_lock_timeout
from app.core.errors import ConcurrencyTimeoutError, NotFoundError, ValidationError
from app.models.enums import TERMINAL_STATUSES, ReservationStatus
from app.models.reservation import Reservation, ReservationCreate, ReservationUpdate
from app.models.service import Service
from app.services.capacity_service import require_admission
from app.services.catalog_service import get_service_by_code
from app.services.slot_service import ensure_not_past, slot_end, validate_slot

logger = logging.getLogger(__name__)


def _utc_naive_now() -> datetime:
    """Naive UTC for comparison with TIMESTAMP WITHOUT TIME ZONE."""
    return datetime.now(UTC).replace(tzinfo=None)


async def create_reservation(
    session: AsyncSession, data: ReservationCreate, today: date | None = None
) -> Reservation:
    """The only way a reservation gets persisted.

    Daily limit and slot capacity are both checked after the service's limit row is
    locked, and the insert happens in that same transaction. The caller commits.
    """
    ensure_not_past(data.preferred_date, today)
    try:
        service = await get_service_by_code(session, data.service_code)
        await require_admission(session, data.preferred_date, service.id)
        slot = await validate_slot(
            session, data.preferred_date, service, data.preferred_time, data.period
        )
        reservation = Reservation(
            patient_name=data.patient_name,
            phone=data.phone,
            email=data.email,
            notes=data.notes,
            service_id=service.id,
            preferred_date=data.preferred_date,
            preferred_time=slot.time,
            period=slot.period,
            time_slot_start=slot.time,
            time_slot_end=slot_end(slot.time, service),
            estimated_duration=service.total_minutes,
            status=ReservationStatus.PENDING,
        )
        session.add(reservation)
        await session.flush()
    except DBAPIError as e:
        if is_lock_timeout(e):
            logger.warning("Admission lock wait exceeded for service %s on %s", data.service_code, data.preferred_date)
            raise ConcurrencyTimeoutError(
                "The booking system is busy, please retry",
                metadata={"retryable": True},
            ) from e
        raise
    await session.refresh(reservation)
    logger.info(
        "Reservation %s admitted: service=%s date=%s %s-%s",
        reservation.id, service.code, reservation.preferred_date,
        reservation.time_slot_start, reservation.time_slot_end,
    )
    return reservation


async def get_reservation(session: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await session.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError(
            f"Reservation not found: {reservation_id}",
            metadata={"reservation_id": reservation_id},
        )
    return reservation


async def list_reservations(
    session: AsyncSession,
    d: date,
    service_id: int | None = None,
    status: ReservationStatus | None = None,
) -> list[Reservation]:
    q = select(Reservation).where(Reservation.preferred_date == d)
    if service_id is not None:
        q = q.where(Reservation.service_id == service_id)
    if status is not None:
        q = q.where(Reservation.status == status)
    result = await session.execute(q.order_by(Reservation.time_slot_start, Reservation.id))
    return list(result.scalars().all())


async def update_reservation(
    session: AsyncSession, reservation_id: int, data: ReservationUpdate
) -> Reservation:
    """Staff status transition and notes. Cancelling is a status change, never a delete."""
    reservation = await get_reservation(session, reservation_id)
    now = _utc_naive_now()
    if data.status is not None and data.status != reservation.status:
        if reservation.status in TERMINAL_STATUSES:
            raise ValidationError(
                f"Reservation is already {reservation.status.value} and cannot change status",
                code="INVALID_STATUS_TRANSITION",
                metadata={"from": reservation.status.value, "to": data.status.value},
            )
        logger.info("Reservation %s: %s -> %s", reservation.id, reservation.status.value, data.status.value)
        reservation.status = data.status
        reservation.status_changed_at = now
    if data.admin_notes is not None:
        reservation.admin_notes = data.admin_notes
    reservation.updated_at = now
    await session.flush()
    await session.refresh(reservation)
    return reservation


async def repair_time_slot_ends(session: AsyncSession) -> int:
    """Recompute time_slot_end for rows computed from duration alone. Returns count fixed."""
    result = await session.execute(
        select(Reservation, Service).join(Service, Service.id == Reservation.service_id)
    )
    fixed = 0
    for reservation, service in result.all():
        expected = slot_end(reservation.time_slot_start, service)
        if reservation.time_slot_end != expected or reservation.estimated_duration != service.total_minutes:
            logger.info(
                "Fixing reservation %s end %s -> %s",
                reservation.id, reservation.time_slot_end, expected,
            )
            reservation.time_slot_end = expected
            reservation.estimated_duration = service.total_minutes
            fixed += 1
    await session.flush()
    return fixed
