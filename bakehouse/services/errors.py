# bakehouse/services/errors.py
from __future__ import annotations


class BizError(Exception):
    """
    Base of every error the core reports to its caller.

    code / status are what the HTTP layer puts on the wire:
        {"error": {"code": ..., "message": ...}}
    """

    code = "BIZ_ERROR"
    status = 400

    def __init__(self, message: str, code: str | None = None, status: int | None = None):
        super().__init__(message)
        if code:
            self.code = code
        if status:
            self.status = status
        self.message = message


class ValidationFailed(BizError):
    """Malformed input; nothing was written."""

    code = "VALIDATION_FAILED"
    status = 400


class StatusNotAllowed(ValidationFailed):
    """Order status the caller may not write (workflow-owned target)."""

    code = "STATUS_NOT_ALLOWED"


class NotFound(BizError):
    code = "NOT_FOUND"
    status = 404


class StateConflict(BizError):
    """Operation does not fit the entity's current state (e.g. sheet not draft)."""

    code = "STATE_CONFLICT"
    status = 409


class CapacityUnavailable(StateConflict):
    """Order intake refused: slot closed, past cutoff or out of room."""

    code = "CAPACITY_UNAVAILABLE"
