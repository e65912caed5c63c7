import logging
from datetime import UTC, date, datetime, time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ConflictDetectedError, NotFoundError, ValidationError
from app.models.enums import ACTIVE_STATUSES, DayOfWeek, Period
from app.models.manual_closure import ManualClosure, ManualClosurePublic
from app.models.operating_hours import OperatingSlotRule
from app.models.reservation import Reservation
from app.models.schedule import ConflictingReservation, ConflictReport
from app.services.catalog_service import get_service
from app.services.slot_service import get_active_closures, get_effective_rules, intervals_overlap, to_minutes

logger = logging.getLogger(__name__)


def closure_to_public(c: ManualClosure) -> ManualClosurePublic:
    return ManualClosurePublic(
        id=c.id,
        closure_date=c.closure_date,
        period=c.period,
        time_slot_start=c.time_slot_start,
        time_slot_end=c.time_slot_end,
        service_id=c.service_id,
        reason=c.reason,
        created_by=c.created_by,
        is_active=c.is_active,
        state=c.state,
        created_at=c.created_at,
        deactivated_at=c.deactivated_at,
    )


def conflict_warning(report: ConflictReport) -> ConflictDetectedError | None:
    """Informational error for a closure that still holds bookings; never blocks it."""
    if not report.has_conflict:
        return None
    return ConflictDetectedError(
        f"{report.conflict_count} active reservation(s) overlap this slot",
        metadata={"conflict_count": report.conflict_count, "reservation_ids": [c.id for c in report.conflicts]},
    )


def ensure_closure_window(time_slot_start: time, time_slot_end: time | None) -> None:
    if time_slot_end is not None and time_slot_end <= time_slot_start:
        raise ValidationError(
            "Closure end must be after its start",
            code="INVALID_TIME_RANGE",
            metadata={
                "time_slot_start": time_slot_start.strftime("%H:%M"),
                "time_slot_end": time_slot_end.strftime("%H:%M"),
            },
        )


async def ensure_within_operating_hours(
    session: AsyncSession,
    closure_date: date,
    period: Period,
    time_slot_start: time,
    service_id: int | None = None,
) -> None:
    """Reject a closure whose start lies outside every rule for that day and period."""
    day = DayOfWeek.from_date(closure_date)
    if service_id is not None:
        rules = await get_effective_rules(session, day, service_id)
    else:
        result = await session.execute(
            select(OperatingSlotRule).where(
                OperatingSlotRule.day_of_week == day,
                OperatingSlotRule.is_active.is_(True),
            )
        )
        rules = list(result.scalars().all())
    if not any(r.period == period and r.start_time <= time_slot_start < r.end_time for r in rules):
        raise ValidationError(
            "Closure start is outside the clinic's hours for that period",
            code="OUTSIDE_OPERATING_HOURS",
            metadata={
                "closure_date": closure_date.isoformat(),
                "period": period.value,
                "time_slot_start": time_slot_start.strftime("%H:%M"),
                "service_id": service_id,
            },
        )


async def check_conflict(
    session: AsyncSession,
    closure_date: date,
    period: Period,
    time_slot_start: time,
    time_slot_end: time | None = None,
    service_id: int | None = None,
) -> ConflictReport:
    """Active reservations a closure of this slot would leave in place.

    Without an explicit end the closed window is the service's slot span (duration plus
    buffer), or one default slot interval when the closure covers every service.
    """
    ensure_closure_window(time_slot_start, time_slot_end)
    start = to_minutes(time_slot_start)
    if time_slot_end is not None:
        end = to_minutes(time_slot_end)
    elif service_id is not None:
        service = await get_service(session, service_id)
        if service is None:
            raise NotFoundError(f"Service not found: {service_id}", metadata={"service_id": service_id})
        end = start + service.total_minutes
    else:
        end = start + settings.default_slot_interval_minutes
    q = select(Reservation).where(
        Reservation.preferred_date == closure_date,
        Reservation.status.in_(ACTIVE_STATUSES),
    )
    if service_id is not None:
        q = q.where(Reservation.service_id == service_id)
    result = await session.execute(q.order_by(Reservation.time_slot_start, Reservation.id))
    conflicts = [
        ConflictingReservation(
            id=r.id,
            patient_name=r.patient_name,
            service_id=r.service_id,
            time_slot_start=r.time_slot_start,
            time_slot_end=r.time_slot_end,
            status=r.status,
        )
        for r in result.scalars().all()
        if r.period == period
        and intervals_overlap(start, end, to_minutes(r.time_slot_start), to_minutes(r.time_slot_end))
    ]
    return ConflictReport(
        has_conflict=bool(conflicts),
        conflict_count=len(conflicts),
        conflicts=conflicts,
        recommendation=(
            "Closing blocks new bookings only; existing reservations are kept. Contact the patients if needed."
            if conflicts
            else "No reservations in this slot; it can be closed right away."
        ),
    )


async def apply_closure(
    session: AsyncSession,
    closure_date: date,
    period: Period,
    time_slot_start: time,
    time_slot_end: time | None = None,
    service_id: int | None = None,
    reason: str | None = None,
    created_by: str | None = None,
) -> ManualClosure:
    """Write an active closure. Reservations are not read or modified here."""
    ensure_closure_window(time_slot_start, time_slot_end)
    await ensure_within_operating_hours(session, closure_date, period, time_slot_start, service_id)
    closure = ManualClosure(
        closure_date=closure_date,
        period=period,
        time_slot_start=time_slot_start,
        time_slot_end=time_slot_end,
        service_id=service_id,
        reason=reason or "Quick close",
        created_by=created_by,
        is_active=True,
    )
    session.add(closure)
    await session.flush()
    await session.refresh(closure)
    logger.info(
        "Closure %s applied: %s %s %s service_id=%s by=%s",
        closure.id, closure_date, period.value, time_slot_start, service_id, created_by,
    )
    return closure


async def apply_closures_batch(
    session: AsyncSession,
    closure_date: date,
    period: Period,
    time_slots: list[time],
    service_id: int | None = None,
    reason: str | None = None,
    created_by: str | None = None,
) -> list[ManualClosure]:
    """Close several start times of one period; starts already closed are skipped."""
    existing = {
        c.time_slot_start
        for c in await get_active_closures(session, closure_date)
        if c.period == period and c.service_id == service_id and c.time_slot_end is None
    }
    created: list[ManualClosure] = []
    for start in sorted(set(time_slots)):
        if start in existing:
            continue
        created.append(
            await apply_closure(
                session, closure_date, period, start,
                service_id=service_id, reason=reason, created_by=created_by,
            )
        )
    return created


async def remove_closure(session: AsyncSession, closure_id: int) -> ManualClosure:
    """Deactivate a closure. Removing an inactive closure again changes nothing."""
    closure = await session.get(ManualClosure, closure_id)
    if closure is None:
        raise NotFoundError(f"Closure not found: {closure_id}", metadata={"closure_id": closure_id})
    if not closure.is_active:
        return closure
    closure.is_active = False
    closure.deactivated_at = datetime.now(UTC).replace(tzinfo=None)
    await session.flush()
    await session.refresh(closure)
    logger.info("Closure %s removed", closure.id)
    return closure


async def list_closures(
    session: AsyncSession, closure_date: date, service_id: int | None = None
) -> list[ManualClosure]:
    q = select(ManualClosure).where(
        ManualClosure.closure_date == closure_date,
        ManualClosure.is_active.is_(True),
    )
    if service_id is not None:
        q = q.where(ManualClosure.service_id == service_id)
    result = await session.execute(q.order_by(ManualClosure.period, ManualClosure.time_slot_start))
    return list(result.scalars().all())
