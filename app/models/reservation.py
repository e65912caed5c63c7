from datetime import UTC, date, datetime, time

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.models.enums import Period, ReservationStatus


def _utc_naive_now() -> datetime:
    """Naive UTC for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class Reservation(SQLModel, table=True):
    __tablename__ = "reservations"
    id: int | None = Field(default=None, primary_key=True)
    patient_name: str
    phone: str
    email: str | None = None
    notes: str | None = None
    service_id: int = Field(foreign_key="services.id", index=True)
    preferred_date: date = Field(index=True)
    preferred_time: time
    period: Period
    time_slot_start: time
    # Always time_slot_start + duration + buffer
    time_slot_end: time
    estimated_duration: int
    status: ReservationStatus = Field(default=ReservationStatus.PENDING, index=True)
    admin_notes: str | None = None
    status_changed_at: datetime | None = Field(default=None, sa_type=DateTime())
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class ReservationCreate(SQLModel):
    patient_name: str = Field(min_length=1)
    phone: str = Field(min_length=1)
    email: str | None = None
    notes: str | None = None
    service_code: str
    preferred_date: date
    preferred_time: time
    period: Period | None = None


class ReservationUpdate(SQLModel):
    status: ReservationStatus | None = None
    admin_notes: str | None = None


class ReservationPublic(SQLModel):
    id: int
    patient_name: str
    phone: str
    email: str | None = None
    notes: str | None = None
    service_id: int
    preferred_date: date
    preferred_time: time
    period: Period
    time_slot_start: time
    time_slot_end: time
    estimated_duration: int
    status: ReservationStatus
    admin_notes: str | None = None
    status_changed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
