import datetime as dt

from sqlmodel import SQLModel

from app.models.enums import AvailabilityLevel, Period, ReservationStatus, SlotStatus


class TimeSlot(SQLModel):
    time: dt.time
    period: Period
    available: bool
    current_bookings: int
    max_capacity: int
    remaining: int
    status: SlotStatus
    is_manual_closed: bool = False
    closure_reason: str | None = None


class TimeSlotMetadata(SQLModel):
    date: dt.date
    service: str
    service_name: str
    total_slots: int
    available_slots: int
    booked_slots: int


class TimeSlotResult(SQLModel):
    slots: list[TimeSlot]
    metadata: TimeSlotMetadata


class DailyAvailability(SQLModel):
    date: dt.date
    service: str
    available: bool
    remaining: int
    current_count: int
    limit: int
    soft_limit: int
    level: AvailabilityLevel
    message: str


class CalendarDay(SQLModel):
    date: dt.date
    status: SlotStatus
    available_slots: int
    total_slots: int


class ConflictingReservation(SQLModel):
    id: int
    patient_name: str
    service_id: int
    time_slot_start: dt.time
    time_slot_end: dt.time
    status: ReservationStatus


class ConflictReport(SQLModel):
    has_conflict: bool
    conflict_count: int
    conflicts: list[ConflictingReservation]
    recommendation: str
