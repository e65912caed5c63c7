from typing import Any


class ReservationError(Exception):
    """Base for every failure the reservation engine reports to a caller.

    Carries a stable `code` for clients, the HTTP status the request boundary should
    answer with and free-form `metadata` (counts, limits, suggested times).
    """

    code = "RESERVATION_ERROR"
    http_status = 500

    def __init__(
        self,
        message: str,
        code: str | None = None,
        metadata: dict[str, Any] | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if http_status is not None:
            self.http_status = http_status
        self.metadata = metadata or {}

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "metadata": self.metadata}


class ValidationError(ReservationError):
    code = "VALIDATION_ERROR"
    http_status = 400


class NoOperatingHoursError(ReservationError):
    """The clinic has no operating rule for the requested day (closed)."""

    code = "NO_CLINIC_HOURS"
    http_status = 404


class SlotFullError(ReservationError):
    code = "TIME_SLOT_FULL"
    http_status = 409


class CapacityExceededError(ReservationError):
    code = "DAILY_LIMIT_EXCEEDED"
    http_status = 409


class ManuallyClosedError(ReservationError):
    code = "TIME_SLOT_CLOSED"
    http_status = 409


class ConflictDetectedError(ReservationError):
    """Informational: a slot about to be closed still holds active reservations.

    Never raised at the request boundary; staff may close the slot anyway.
    """

    code = "CONFLICT_DETECTED"
    http_status = 200


class ConcurrencyTimeoutError(ReservationError):
    """Lock wait exceeded; the client should retry the whole operation."""

    code = "LOCK_TIMEOUT"
    http_status = 503


class NotFoundError(ReservationError):
    code = "NOT_FOUND"
    http_status = 404
