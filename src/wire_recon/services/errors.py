"""Domain errors raised by the reconciliation services.

Every error carries the HTTP status the API surfaces it with, so route
handlers never translate exceptions themselves.
"""

from __future__ import annotations

from typing import Any


class ReconciliationError(Exception):
    """Base class for all reconciliation failures."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Error body returned to API callers."""
        return {"message": self.message, "code": self.code, **self.extra}


class ValidationError(ReconciliationError):
    """Missing or malformed input. Nothing was mutated."""

    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(ReconciliationError):
    """Payment or audit log id is unknown."""

    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ReconciliationError):
    """Payment or audit log is not in a state that allows the operation."""

    status_code = 400
    code = "CONFLICT"


class ConcurrentModificationError(ConflictError):
    """Payment changed underneath the request (version mismatch)."""

    status_code = 409
    code = "CONCURRENT_MODIFICATION"


class BackendUnavailableError(ReconciliationError):
    """Ledger backend failed; a failure audit entry has been recorded."""

    status_code = 502
    code = "BACKEND_UNAVAILABLE"
