from datetime import time

from sqlmodel import Field, SQLModel

from app.models.enums import DayOfWeek, Period


class OperatingSlotRule(SQLModel, table=True):
    """Opening hours and per-slot capacity for one weekday period.

    service_id NULL is the clinic-wide rule; a row for a specific service overrides it
    for the same day and period.
    """

    __tablename__ = "clinic_time_slots"
    id: int | None = Field(default=None, primary_key=True)
    day_of_week: DayOfWeek = Field(index=True)
    period: Period
    start_time: time
    end_time: time
    slot_interval_minutes: int = Field(default=30, gt=0)
    max_concurrent: int = Field(default=1, ge=0)
    service_id: int | None = Field(default=None, foreign_key="services.id", index=True)
    is_active: bool = True
