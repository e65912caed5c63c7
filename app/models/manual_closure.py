from datetime import UTC, date, datetime, time

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

from app.models.enums import ClosureState, Period


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ManualClosure(SQLModel, table=True):
    """Staff override hiding a slot from availability. Never deleted, only deactivated."""

    __tablename__ = "manual_time_closures"
    id: int | None = Field(default=None, primary_key=True)
    closure_date: date = Field(index=True)
    period: Period
    time_slot_start: time
    time_slot_end: time | None = None
    # NULL closes the slot for every service
    service_id: int | None = Field(default=None, foreign_key="services.id", index=True)
    reason: str | None = None
    created_by: str | None = None
    is_active: bool = Field(default=True, index=True)
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    deactivated_at: datetime | None = Field(default=None, sa_type=DateTime())

    @property
    def state(self) -> ClosureState:
        return ClosureState.ACTIVE if self.is_active else ClosureState.INACTIVE


class ManualClosureCreate(SQLModel):
    closure_date: date
    period: Period
    time_slot_start: time
    time_slot_end: time | None = None
    service_id: int | None = None
    service_code: str | None = None
    reason: str | None = None


class ManualClosureBatchCreate(SQLModel):
    closure_date: date
    period: Period
    time_slots: list[time] = Field(min_length=1)
    service_id: int | None = None
    service_code: str | None = None
    reason: str | None = None


class ManualClosurePublic(SQLModel):
    id: int
    closure_date: date
    period: Period
    time_slot_start: time
    time_slot_end: time | None = None
    service_id: int | None = None
    reason: str | None = None
    created_by: str | None = None
    is_active: bool
    state: ClosureState
    created_at: datetime
    deactivated_at: datetime | None = None
