from datetime import UTC, datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


def _utc_naive_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class ServiceReservationLimit(SQLModel, table=True):
    """Per-service daily ceiling. Row-locked by every admission for that service."""

    __tablename__ = "service_reservation_limits"
    id: int | None = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="services.id", unique=True, index=True)
    daily_limit: int = Field(ge=0)
    is_active: bool = True
    reason: str | None = None
    updated_by: str | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())
    updated_at: datetime = Field(default_factory=_utc_naive_now, sa_type=DateTime())


class ServiceLimitUpsert(SQLModel):
    service_id: int
    daily_limit: int = Field(ge=0)
    is_active: bool = True
    reason: str | None = None


class ServiceLimitPublic(SQLModel):
    id: int
    service_id: int
    service_code: str
    service_name: str
    daily_limit: int
    soft_limit: int
    is_active: bool
    reason: str | None = None
    updated_by: str | None = None
    updated_at: datetime
