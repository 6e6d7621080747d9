"""Error taxonomy shared by the attendance services and the API layer."""
from typing import Any, Dict, Optional


class AttendanceError(Exception):
    """Base error carrying a machine readable kind and HTTP status."""

    kind = 'Internal'
    status_code = 500
    retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            'kind': self.kind,
            'message': self.message,
            'retryable': self.retryable,
            'details': self.details,
        }


class InvalidInput(AttendanceError):
    """Malformed or missing fields. Always client-caused."""
    kind = 'InvalidInput'
    status_code = 400


class NotFound(AttendanceError):
    """A referenced identity, record or profile does not exist."""
    kind = 'NotFound'
    status_code = 404


class Unauthorized(AttendanceError):
    """Identity verification did not match. Requires new evidence."""
    kind = 'Unauthorized'
    status_code = 401


class Unavailable(AttendanceError):
    """Transient failure of an external dependency. Safe to retry."""
    kind = 'Unavailable'
    status_code = 503
    retryable = True


class VerificationUnavailable(Unavailable):
    """The face comparison capability errored or timed out."""


class InvalidSession(AttendanceError):
    """Unknown, inactive or expired session token."""
    kind = 'InvalidSession'
    status_code = 400


class Conflict(AttendanceError):
    """Attendance already recorded for this student and session."""
    kind = 'Conflict'
    status_code = 409


class Internal(AttendanceError):
    """Unexpected failure normalised by the services."""


# Names used by the guard and validator contracts
SessionInvalid = InvalidSession
AlreadyExists = Conflict
