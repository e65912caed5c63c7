"""Tests for time slot generation."""

from datetime import date, time, timedelta

import pytest

from app.core.errors import (
    ManuallyClosedError,
    NoOperatingHoursError,
    SlotFullError,
    ValidationError,
)
from app.models.enums import DayOfWeek, Period, ReservationStatus, SlotStatus
from app.models.manual_closure import ManualClosure
from app.models.operating_hours import OperatingSlotRule
from app.services.slot_service import (
    calculate_month_calendar,
    calculate_time_slots,
    candidate_starts,
    get_effective_rules,
    intervals_overlap,
    slot_status,
    to_minutes,
    validate_slot,
)
from tests.conftest import add_reservation


def _rule(start: time, end: time, interval: int = 30, capacity: int = 3) -> OperatingSlotRule:
    return OperatingSlotRule(
        day_of_week=DayOfWeek.WEDNESDAY,
        period=Period.MORNING,
        start_time=start,
        end_time=end,
        slot_interval_minutes=interval,
        max_concurrent=capacity,
    )


class TestCandidateStarts:
    def test_service_must_fit_before_closing(self):
        starts = candidate_starts(_rule(time(8, 30), time(12, 0)), total_minutes=30)
        assert starts[0] == time(8, 30)
        assert starts[-1] == time(11, 30)
        assert len(starts) == 7

    def test_longer_service_drops_late_starts(self):
        starts = candidate_starts(_rule(time(8, 30), time(12, 0)), total_minutes=50)
        assert starts[-1] == time(11, 0)

    def test_every_slot_lies_inside_the_window(self):
        rule = _rule(time(9, 10), time(13, 5), interval=20)
        for total in (15, 30, 45, 90, 235):
            for start in candidate_starts(rule, total):
                assert to_minutes(start) >= to_minutes(rule.start_time)
                assert to_minutes(start) + total <= to_minutes(rule.end_time)

    def test_window_shorter_than_service(self):
        assert candidate_starts(_rule(time(9, 0), time(9, 20)), total_minutes=30) == []


class TestSlotStatus:
    def test_full(self):
        assert slot_status(0, 3) == SlotStatus.FULL

    def test_untouched_slot_is_available(self):
        assert slot_status(3, 3) == SlotStatus.AVAILABLE
        assert slot_status(1, 1) == SlotStatus.AVAILABLE

    def test_last_place_is_limited(self):
        assert slot_status(1, 3) == SlotStatus.LIMITED

    def test_twenty_percent_is_limited(self):
        assert slot_status(2, 10) == SlotStatus.LIMITED
        assert slot_status(5, 10) == SlotStatus.AVAILABLE


def test_intervals_overlap_is_half_open():
    assert intervals_overlap(540, 570, 550, 580)
    assert not intervals_overlap(540, 570, 570, 600)
    assert not intervals_overlap(570, 600, 540, 570)


class TestTimeSlots:
    @pytest.mark.asyncio
    async def test_empty_wednesday_morning(self, session, clinic):
        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")

        assert [s.time for s in result.slots] == [
            time(8, 30), time(9, 0), time(9, 30), time(10, 0), time(10, 30), time(11, 0), time(11, 30)
        ]
        assert all(s.available and s.remaining == 3 and s.status == SlotStatus.AVAILABLE for s in result.slots)
        assert result.metadata.total_slots == 7
        assert result.metadata.available_slots == 7
        assert result.metadata.service_name == "Wrinkle botox"

    @pytest.mark.asyncio
    async def test_three_overlapping_bookings_fill_a_slot(self, session, clinic):
        for _ in range(3):
            await add_reservation(session, clinic.botox, clinic.wednesday, time(9, 0))

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        by_time = {s.time: s for s in result.slots}

        assert by_time[time(9, 0)].status == SlotStatus.FULL
        assert by_time[time(9, 0)].remaining == 0
        assert not by_time[time(9, 0)].available
        assert by_time[time(8, 30)].status == SlotStatus.AVAILABLE
        assert by_time[time(8, 30)].remaining == 3

    @pytest.mark.asyncio
    async def test_booking_straddling_two_slots_counts_against_both(self, session, clinic):
        # 08:45-09:15 overlaps [08:30, 09:00) and [09:00, 09:30)
        await add_reservation(session, clinic.botox, clinic.wednesday, time(8, 45))

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        by_time = {s.time: s for s in result.slots}

        assert by_time[time(8, 30)].current_bookings == 1
        assert by_time[time(9, 0)].current_bookings == 1
        assert by_time[time(9, 30)].current_bookings == 0

    @pytest.mark.asyncio
    async def test_inactive_statuses_do_not_hold_capacity(self, session, clinic):
        for status in (
            ReservationStatus.CANCELLED,
            ReservationStatus.COMPLETED,
            ReservationStatus.NO_SHOW,
            ReservationStatus.REJECTED,
        ):
            await add_reservation(session, clinic.botox, clinic.wednesday, time(9, 0), status=status)
        await add_reservation(session, clinic.botox, clinic.wednesday, time(9, 0), status=ReservationStatus.CONFIRMED)

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        slot = next(s for s in result.slots if s.time == time(9, 0))

        assert slot.current_bookings == 1
        assert slot.remaining == 2

    @pytest.mark.asyncio
    async def test_other_services_do_not_count(self, session, clinic):
        await add_reservation(session, clinic.lifting, clinic.wednesday, time(9, 0))

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        slot = next(s for s in result.slots if s.time == time(9, 0))

        assert slot.current_bookings == 0

    @pytest.mark.asyncio
    async def test_closure_wins_over_capacity(self, session, clinic):
        session.add(
            ManualClosure(
                closure_date=clinic.wednesday,
                period=Period.MORNING,
                time_slot_start=time(10, 0),
                reason="Doctor away",
            )
        )
        await session.flush()

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        slot = next(s for s in result.slots if s.time == time(10, 0))

        assert slot.is_manual_closed
        assert slot.closure_reason == "Doctor away"
        assert not slot.available
        assert slot.remaining == 3
        assert slot.status == SlotStatus.CLOSED

    @pytest.mark.asyncio
    async def test_closure_for_another_service_is_ignored(self, session, clinic):
        session.add(
            ManualClosure(
                closure_date=clinic.wednesday,
                period=Period.MORNING,
                time_slot_start=time(10, 0),
                service_id=clinic.lifting.id,
            )
        )
        await session.flush()

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")

        assert not any(s.is_manual_closed for s in result.slots)

    @pytest.mark.asyncio
    async def test_closure_range_covers_every_start_inside_it(self, session, clinic):
        session.add(
            ManualClosure(
                closure_date=clinic.wednesday,
                period=Period.MORNING,
                time_slot_start=time(10, 0),
                time_slot_end=time(11, 0),
            )
        )
        await session.flush()

        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "BOTOX")
        closed = [s.time for s in result.slots if s.is_manual_closed]

        assert closed == [time(10, 0), time(10, 30)]

    @pytest.mark.asyncio
    async def test_no_rule_for_the_day(self, session, clinic):
        with pytest.raises(NoOperatingHoursError) as exc_info:
            await calculate_time_slots(session, clinic.thursday.isoformat(), "BOTOX")
        assert exc_info.value.code == "NO_CLINIC_HOURS"

    @pytest.mark.asyncio
    async def test_invalid_date_format(self, session, clinic):
        with pytest.raises(ValidationError) as exc_info:
            await calculate_time_slots(session, "2025/11/05", "BOTOX")
        assert exc_info.value.code == "INVALID_DATE"

    @pytest.mark.asyncio
    async def test_unknown_service(self, session, clinic):
        with pytest.raises(ValidationError) as exc_info:
            await calculate_time_slots(session, clinic.wednesday.isoformat(), "NOPE")
        assert exc_info.value.code == "SERVICE_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_past_date(self, session, clinic):
        yesterday = (date.today() - timedelta(days=1)).isoformat()
        with pytest.raises(ValidationError) as exc_info:
            await calculate_time_slots(session, yesterday, "BOTOX")
        assert exc_info.value.code == "DATE_IN_PAST"


class TestRulePrecedence:
    @pytest.mark.asyncio
    async def test_specific_rule_overrides_generic_per_period(self, session, clinic):
        rules = await get_effective_rules(session, DayOfWeek.WEDNESDAY, clinic.filler.id)

        assert len(rules) == 1
        assert rules[0].service_id == clinic.filler.id
        assert rules[0].max_concurrent == 1

    @pytest.mark.asyncio
    async def test_generic_morning_and_specific_afternoon(self, session, clinic):
        rules = await get_effective_rules(session, DayOfWeek.WEDNESDAY, clinic.lifting.id)

        assert [(r.period, r.service_id) for r in rules] == [
            (Period.MORNING, None),
            (Period.AFTERNOON, clinic.lifting.id),
        ]

    @pytest.mark.asyncio
    async def test_lifting_slots_span_both_periods(self, session, clinic):
        result = await calculate_time_slots(session, clinic.wednesday.isoformat(), "VOLUME_LIFTING")
        morning = [s for s in result.slots if s.period == Period.MORNING]
        afternoon = [s for s in result.slots if s.period == Period.AFTERNOON]

        assert morning[-1].time == time(11, 0)
        assert afternoon[0].time == time(14, 0)
        assert afternoon[-1].time == time(17, 0)
        assert all(s.max_capacity == 2 for s in afternoon)


class TestValidateSlot:
    @pytest.mark.asyncio
    async def test_returns_open_slot(self, session, clinic):
        slot = await validate_slot(session, clinic.wednesday, clinic.botox, time(9, 0))
        assert slot.period == Period.MORNING

    @pytest.mark.asyncio
    async def test_unknown_time(self, session, clinic):
        with pytest.raises(ValidationError) as exc_info:
            await validate_slot(session, clinic.wednesday, clinic.botox, time(9, 15))
        assert exc_info.value.code == "TIME_SLOT_NOT_FOUND"
        assert exc_info.value.http_status == 404

    @pytest.mark.asyncio
    async def test_wrong_period(self, session, clinic):
        with pytest.raises(ValidationError):
            await validate_slot(session, clinic.wednesday, clinic.botox, time(9, 0), Period.AFTERNOON)

    @pytest.mark.asyncio
    async def test_full_slot_suggests_alternatives(self, session, clinic):
        await add_reservation(session, clinic.filler, clinic.wednesday, time(9, 0))

        with pytest.raises(SlotFullError) as exc_info:
            await validate_slot(session, clinic.wednesday, clinic.filler, time(9, 0))

        assert exc_info.value.metadata["suggested_times"] == ["09:30", "10:00", "10:30"]
        assert exc_info.value.metadata["max_capacity"] == 1

    @pytest.mark.asyncio
    async def test_closed_slot(self, session, clinic):
        session.add(
            ManualClosure(closure_date=clinic.wednesday, period=Period.MORNING, time_slot_start=time(9, 0))
        )
        await session.flush()

        with pytest.raises(ManuallyClosedError):
            await validate_slot(session, clinic.wednesday, clinic.botox, time(9, 0))


class TestMonthCalendar:
    @pytest.mark.asyncio
    async def test_wednesdays_open_other_days_closed(self, session, clinic):
        d = clinic.wednesday
        days = await calculate_month_calendar(session, d.year, d.month, "BOTOX")
        by_date = {day.date: day for day in days}

        assert by_date[d].status == SlotStatus.AVAILABLE
        assert by_date[d].total_slots == 7
        for day in days:
            if day.date.weekday() != 2 or day.date < date.today():
                assert day.status == SlotStatus.CLOSED

    @pytest.mark.asyncio
    async def test_invalid_month(self, session, clinic):
        with pytest.raises(ValidationError):
            await calculate_month_calendar(session, 2030, 13, "BOTOX")
