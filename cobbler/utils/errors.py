"""
Error types raised by services and translated to HTTP responses.

Each error carries the HTTP status it maps to and a short label used as
the ``error`` field of the response envelope.
"""

from typing import Any, Dict, List, Optional


class CobblerError(Exception):
    """Base class for every expected, user-facing failure."""

    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if error:
            self.error = error


class ValidationError(CobblerError):
    """A required field is missing or malformed."""

    status_code = 400
    error = "Validation failed"


class InvalidStateError(ValidationError):
    """The record exists but is not in the status the operation requires."""

    error = "Invalid state"


class BillingValidationError(ValidationError):
    """One or more billing lines failed validation; nothing was calculated."""

    error = "Invalid billing items"

    def __init__(self, invalid_lines: List[Dict[str, Any]]):
        self.invalid_lines = invalid_lines
        indexes = ", ".join(str(line["index"]) for line in invalid_lines)
        super().__init__(f"Invalid billing line(s) at index {indexes}" if invalid_lines else "No billing lines supplied")


class NotFoundError(CobblerError):
    """The referenced enquiry or sub-record does not exist (in this stage)."""

    status_code = 404
    error = "Not found"


class DuplicateRecordError(CobblerError):
    """A unique constraint rejected the write."""

    status_code = 409
    error = "Duplicate record"


class AuthenticationError(CobblerError):
    """No access token was supplied."""

    status_code = 401
    error = "Access token required"


class PermissionDeniedError(CobblerError):
    """The supplied access token does not match."""

    status_code = 403
    error = "Invalid token"
