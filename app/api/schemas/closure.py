from datetime import date, time

from pydantic import BaseModel

from app.models.enums import Period
from app.models.manual_closure import ManualClosurePublic


class ConflictCheckRequest(BaseModel):
    closure_date: date
    period: Period
    time_slot_start: time
    time_slot_end: time | None = None
    service_id: int | None = None
    service_code: str | None = None


class ClosureWarning(BaseModel):
    code: str
    message: str
    metadata: dict


class ClosureCreatedResponse(BaseModel):
    closure: ManualClosurePublic
    # Set when the slot still holds active reservations; the closure was applied anyway
    warning: ClosureWarning | None = None


class BatchClosureResponse(BaseModel):
    count: int
    closures: list[ManualClosurePublic]
