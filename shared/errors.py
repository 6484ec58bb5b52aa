"""
FleetRent - Error Kinds
Domain errors raised by services and mapped to HTTP status codes by the API
"""

from typing import Optional


class FleetError(Exception):
    """Base class for all domain errors"""

    kind = "fleet_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class NotFoundError(FleetError, LookupError):
    """Unknown driver, vehicle, plan, staff member or selection"""

    kind = "not_found"

    def __init__(self, entity: str, identifier):
        super().__init__(f"{entity} not found: {identifier}")
        self.entity = entity
        self.identifier = identifier


class ValidationError(FleetError, ValueError):
    """Malformed input (amounts, payment types, day numbers)"""

    kind = "validation_error"


class InvalidTransitionError(ValidationError):
    """Status value outside the enumeration, or a move out of a terminal state"""

    kind = "invalid_transition"


class InvalidCodeError(ValidationError):
    """Attendance code outside P/A/H/CL/HD/S/LOP"""

    kind = "invalid_code"


class ReadOnlyDayError(ValidationError):
    """Sundays are fixed to S"""

    kind = "read_only_day"


class DuplicateSelectionError(ValidationError):
    """An open plan selection already exists for the driver and plan type"""

    kind = "duplicate_selection"


class PartialWriteError(FleetError):
    """
    One side of a dual write was persisted and the other failed.
    The succeeded side is committed; the caller must reconcile the failed one.
    """

    kind = "partial_write"

    def __init__(self, succeeded: str, failed: str, cause: Optional[BaseException] = None):
        message = f"{succeeded} was saved but {failed} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.succeeded = succeeded
        self.failed = failed
        self.cause = cause

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update({"succeeded": self.succeeded, "failed": self.failed})
        return data
