import calendar
import logging
from datetime import date, time

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import ManuallyClosedError, NoOperatingHoursError, SlotFullError, ValidationError
from app.models.enums import ACTIVE_STATUSES, DayOfWeek, Period, SlotStatus
from app.models.manual_closure import ManualClosure
from app.models.operating_hours import OperatingSlotRule
from app.models.reservation import Reservation
from app.models.schedule import CalendarDay, TimeSlot, TimeSlotMetadata, TimeSlotResult
from app.models.service import Service
from app.services.catalog_service import get_service_by_code, parse_date

logger = logging.getLogger(__name__)


def to_minutes(t: time) -> int:
    return t.hour * 60 + t.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < 24 * 60:
        raise ValidationError(
            "Time slot runs past midnight",
            code="INVALID_TIME",
            metadata={"minutes": minutes},
        )
    return time(minutes // 60, minutes % 60)


def slot_end(start: time, service: Service) -> time:
    """End of a booking starting at `start`: duration plus buffer, never duration alone."""
    return from_minutes(to_minutes(start) + service.total_minutes)


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # Half-open [start, end)
    return a_start < b_end and b_start < a_end


def ensure_not_past(d: date, today: date | None = None) -> None:
    today = today or date.today()
    if d < today:
        raise ValidationError(
            "Date is in the past",
            code="DATE_IN_PAST",
            metadata={"requested_date": d.isoformat()},
        )


def candidate_starts(rule: OperatingSlotRule, total_minutes: int) -> list[time]:
    """Start times from the rule's opening, stepping by its interval, that fit before closing."""
    start = to_minutes(rule.start_time)
    end = to_minutes(rule.end_time)
    out: list[time] = []
    current = start
    while current + total_minutes <= end:
        out.append(time(current // 60, current % 60))
        current += rule.slot_interval_minutes
    return out


def slot_status(remaining: int, capacity: int) -> SlotStatus:
    if remaining <= 0:
        return SlotStatus.FULL
    low = remaining <= capacity * settings.slot_limited_ratio or remaining <= settings.slot_limited_remaining
    # An untouched slot is never "limited", however small its capacity
    if low and remaining < capacity:
        return SlotStatus.LIMITED
    return SlotStatus.AVAILABLE


def closure_covers(closure: ManualClosure, period: Period, start: time) -> bool:
    if closure.period != period:
        return False
    if closure.time_slot_end is None:
        return closure.time_slot_start == start
    return closure.time_slot_start <= start < closure.time_slot_end


async def get_effective_rules(
    session: AsyncSession, day: DayOfWeek, service_id: int
) -> list[OperatingSlotRule]:
    """One rule per period: the service's own row if it has one, else the clinic-wide row."""
    result = await session.execute(
        select(OperatingSlotRule).where(
            OperatingSlotRule.day_of_week == day,
            OperatingSlotRule.is_active.is_(True),
            or_(
                OperatingSlotRule.service_id == service_id,
                OperatingSlotRule.service_id.is_(None),
            ),
        )
    )
    rows = result.scalars().all()
    specific = {r.period: r for r in rows if r.service_id == service_id}
    generic = {r.period: r for r in rows if r.service_id is None}
    rules: list[OperatingSlotRule] = []
    for period in Period:
        rule = specific.get(period)
        if rule is None:
            rule = generic.get(period)
        if rule is not None:
            rules.append(rule)
    return sorted(rules, key=lambda r: r.start_time)


async def get_active_reservations(
    session: AsyncSession, d: date, service_id: int
) -> list[Reservation]:
    result = await session.execute(
        select(Reservation).where(
            Reservation.preferred_date == d,
            Reservation.service_id == service_id,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
    )
    return list(result.scalars().all())


async def get_active_closures(
    session: AsyncSession, d: date, service_id: int | None = None
) -> list[ManualClosure]:
    """Active closures for the date; with a service, also the ones that close every service."""
    q = select(ManualClosure).where(
        ManualClosure.closure_date == d,
        ManualClosure.is_active.is_(True),
    )
    if service_id is not None:
        q = q.where(or_(ManualClosure.service_id == service_id, ManualClosure.service_id.is_(None)))
    result = await session.execute(q.order_by(ManualClosure.period, ManualClosure.time_slot_start))
    return list(result.scalars().all())


async def build_time_slots(session: AsyncSession, d: date, service: Service) -> list[TimeSlot]:
    rules = await get_effective_rules(session, DayOfWeek.from_date(d), service.id)
    if not rules:
        raise NoOperatingHoursError(
            "The clinic is closed on the requested day",
            metadata={"requested_date": d.isoformat(), "service_code": service.code},
        )
    reservations = await get_active_reservations(session, d, service.id)
    booked = [(to_minutes(r.time_slot_start), to_minutes(r.time_slot_end)) for r in reservations]
    closures = await get_active_closures(session, d, service.id)

    slots: list[TimeSlot] = []
    for rule in rules:
        for start in candidate_starts(rule, service.total_minutes):
            s = to_minutes(start)
            e = s + service.total_minutes
            current = sum(1 for b_start, b_end in booked if intervals_overlap(s, e, b_start, b_end))
            remaining = max(0, rule.max_concurrent - current)
            closure = next((c for c in closures if closure_covers(c, rule.period, start)), None)
            slots.append(
                TimeSlot(
                    time=start,
                    period=rule.period,
                    available=remaining > 0 and closure is None,
                    current_bookings=current,
                    max_capacity=rule.max_concurrent,
                    remaining=remaining,
                    status=SlotStatus.CLOSED if closure else slot_status(remaining, rule.max_concurrent),
                    is_manual_closed=closure is not None,
                    closure_reason=closure.reason if closure else None,
                )
            )
    return slots


async def calculate_time_slots(
    session: AsyncSession, date_string: str, service_code: str, today: date | None = None
) -> TimeSlotResult:
    """Read-only slot listing for the public booking form. Takes no locks."""
    d = parse_date(date_string)
    ensure_not_past(d, today)
    service = await get_service_by_code(session, service_code)
    slots = await build_time_slots(session, d, service)
    available = sum(1 for s in slots if s.available)
    logger.debug("Time slots for %s on %s: %d/%d available", service_code, d, available, len(slots))
    return TimeSlotResult(
        slots=slots,
        metadata=TimeSlotMetadata(
            date=d,
            service=service.code,
            service_name=service.name,
            total_slots=len(slots),
            available_slots=available,
            booked_slots=len(slots) - available,
        ),
    )


async def validate_slot(
    session: AsyncSession,
    d: date,
    service: Service,
    start: time,
    period: Period | None = None,
) -> TimeSlot:
    """Return the requested slot if it can take one more booking, else raise why not."""
    slots = await build_time_slots(session, d, service)
    requested = next(
        (s for s in slots if s.time == start and (period is None or s.period == period)),
        None,
    )
    metadata = {
        "requested_date": d.isoformat(),
        "requested_time": start.strftime("%H:%M"),
        "requested_period": period.value if period else None,
        "service_code": service.code,
    }
    if requested is None:
        raise ValidationError(
            "The requested time slot does not exist",
            code="TIME_SLOT_NOT_FOUND",
            metadata=metadata,
            http_status=404,
        )
    if requested.is_manual_closed:
        raise ManuallyClosedError(
            "The requested time slot has been closed by the clinic",
            metadata={**metadata, "closure_reason": requested.closure_reason},
        )
    if requested.remaining <= 0:
        suggested = [
            s.time.strftime("%H:%M")
            for s in slots
            if s.available and s.period == requested.period
        ][:3]
        raise SlotFullError(
            "The requested time slot is fully booked",
            metadata={
                **metadata,
                "current_bookings": requested.current_bookings,
                "max_capacity": requested.max_capacity,
                "suggested_times": suggested,
            },
        )
    return requested


async def calculate_month_calendar(
    session: AsyncSession, year: int, month: int, service_code: str, today: date | None = None
) -> list[CalendarDay]:
    """Per-day summary for a month view; past and non-operating days are closed."""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", code="INVALID_DATE", metadata={"month": month})
    today = today or date.today()
    service = await get_service_by_code(session, service_code)
    _, days_in_month = calendar.monthrange(year, month)
    out: list[CalendarDay] = []
    for day in range(1, days_in_month + 1):
        d = date(year, month, day)
        if d < today:
            out.append(CalendarDay(date=d, status=SlotStatus.CLOSED, available_slots=0, total_slots=0))
            continue
        try:
            slots = await build_time_slots(session, d, service)
        except NoOperatingHoursError:
            out.append(CalendarDay(date=d, status=SlotStatus.CLOSED, available_slots=0, total_slots=0))
            continue
        available = sum(1 for s in slots if s.available)
        out.append(
            CalendarDay(
                date=d,
                status=SlotStatus.AVAILABLE if available else SlotStatus.FULL,
                available_slots=available,
                total_slots=len(slots),
            )
        )
    return out
