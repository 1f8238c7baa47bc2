"""
Domain error taxonomy.

Services raise these; the HTTP layer turns them into JSON responses with a
stable ``error`` code. SendError is the exception: the broadcast engine
captures it per (contact, channel) and records it in the ledger.
"""
from typing import Any, Optional


class CareTeamError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    error_code: str = "INTERNAL"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def details(self) -> dict[str, Any]:
        return {}


class ValidationError(CareTeamError):
    """Missing or malformed required input."""

    status_code = 422
    error_code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def details(self) -> dict[str, Any]:
        return {"field": self.field} if self.field else {}


class NotFoundError(CareTeamError):
    """Referenced entity does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier

    def details(self) -> dict[str, Any]:
        return {"resource": self.resource, "id": self.identifier}


class DuplicateError(CareTeamError):
    """An idempotency guard is already present."""

    status_code = 409
    error_code = "DUPLICATE"

    def __init__(self, user_id: str, session_id: str):
        super().__init__(f"Session {session_id} is already scheduled for user {user_id}")
        self.user_id = user_id
        self.session_id = session_id

    def details(self) -> dict[str, Any]:
        return {"session_id": self.session_id}


class TokenError(CareTeamError):
    """Calendar credential missing or expired; the user has to re-authorize."""

    status_code = 401
    error_code = "TOKEN_ERROR"

    def __init__(self, message: str):
        super().__init__(message)

    def details(self) -> dict[str, Any]:
        return {"needs_reauth": True}


class ParseError(CareTeamError):
    """Unrecognized frequency descriptor."""

    status_code = 422
    error_code = "PARSE_ERROR"

    def __init__(self, exercise: str, descriptor: str):
        super().__init__(f"Unrecognized frequency {descriptor!r} for exercise {exercise!r}")
        self.exercise = exercise
        self.descriptor = descriptor

    def details(self) -> dict[str, Any]:
        return {"exercise": self.exercise, "frequency": self.descriptor}


class SendError(CareTeamError):
    """A single channel delivery failed."""

    status_code = 502
    error_code = "SEND_ERROR"

    def __init__(self, channel: str, recipient: str, reason: str):
        super().__init__(f"{channel} to {recipient} failed: {reason}")
        self.channel = channel
        self.recipient = recipient
        self.reason = reason


class CalendarSubmissionError(CareTeamError):
    """A create-event call failed part way through an expansion."""

    status_code = 502
    error_code = "CALENDAR_SUBMISSION_ERROR"

    def __init__(self, succeeded: int, total: int, reason: str, event_ids: Optional[list[str]] = None):
        super().__init__(
            f"{succeeded} of {total} calendar events created before failure; "
            f"{total - succeeded} not created: {reason}"
        )
        self.succeeded = succeeded
        self.total = total
        self.reason = reason
        self.event_ids = list(event_ids or [])

    @property
    def remaining(self) -> int:
        return self.total - self.succeeded

    def details(self) -> dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "remaining": self.remaining,
            "total": self.total,
            "event_ids": self.event_ids,
        }


class StoreError(CareTeamError):
    """The underlying store call failed. Not retried here."""

    status_code = 503
    error_code = "STORE_ERROR"

    def __init__(self, operation: str, reason: str):
        super().__init__(f"Store operation {operation!r} failed: {reason}")
        self.operation = operation
