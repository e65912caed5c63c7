from app.models.enums import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    AvailabilityLevel,
    ClosureState,
    DayOfWeek,
    Period,
    ReservationStatus,
    SlotStatus,
)
from app.models.service import Service, ServicePublic
from app.models.operating_hours import OperatingSlotRule
from app.models.reservation import Reservation, ReservationCreate, ReservationPublic, ReservationUpdate
from app.models.service_limit import ServiceLimitPublic, ServiceLimitUpsert, ServiceReservationLimit
from app.models.manual_closure import (
    ManualClosure,
    ManualClosureBatchCreate,
    ManualClosureCreate,
    ManualClosurePublic,
)

__all__ = [
    "ACTIVE_STATUSES",
    "TERMINAL_STATUSES",
    "AvailabilityLevel",
    "ClosureState",
    "DayOfWeek",
    "Period",
    "ReservationStatus",
    "SlotStatus",
    "Service",
    "ServicePublic",
    "OperatingSlotRule",
    "Reservation",
    "ReservationCreate",
    "ReservationPublic",
    "ReservationUpdate",
    "ServiceReservationLimit",
    "ServiceLimitUpsert",
    "ServiceLimitPublic",
    "ManualClosure",
    "ManualClosureCreate",
    "ManualClosureBatchCreate",
    "ManualClosurePublic",
]
