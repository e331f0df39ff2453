class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable machine-readable ``kind`` next to the
    human-readable message so HTTP and bot callers can branch on it.
    """

    kind = "domain_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": self.message}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "validation_error"


class InvalidRange(ValidationError):
    kind = "invalid_range"


class EmptyClaim(ValidationError):
    kind = "empty_claim"


class MissingReason(ValidationError):
    kind = "missing_reason"


class AuthorizationError(DomainError):
    """Raised when an actor lacks permission for an action."""

    kind = "forbidden"


Forbidden = AuthorizationError


class NotFound(DomainError):
    """A referenced employee, record, request or claim does not exist."""

    kind = "not_found"


class InvalidTransition(DomainError):
    kind = "invalid_transition"


class AlreadyMarked(DomainError):
    kind = "already_marked"


class NotEditable(DomainError):
    kind = "not_editable"


class QuotaExceeded(DomainError):
    kind = "quota_exceeded"


class NotAvailable(DomainError):
    kind = "not_available"
