from datetime import date
from enum import Enum


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @classmethod
    def from_date(cls, d: date) -> "DayOfWeek":
        # date.weekday(): 0 = Monday
        return list(cls)[d.weekday()]


class Period(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"


class ReservationStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"
    REJECTED = "REJECTED"


# Only these hold capacity; everything else is ignored by availability and limits
ACTIVE_STATUSES = (ReservationStatus.PENDING, ReservationStatus.CONFIRMED)
TERMINAL_STATUSES = (
    ReservationStatus.COMPLETED,
    ReservationStatus.CANCELLED,
    ReservationStatus.NO_SHOW,
    ReservationStatus.REJECTED,
)


class ClosureState(str, Enum):
    """Lifecycle of a manual closure, separate from ReservationStatus."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"
    CLOSED = "closed"


class AvailabilityLevel(str, Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    FULL = "full"
