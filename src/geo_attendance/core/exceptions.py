from __future__ import annotations

from typing import Any, Optional

from .enums import PositionErrorKind


class DomainError(Exception):
    """Base exception for business rule violations.

    ``code`` is stable and meant for branching; ``context`` carries the
    structured details a presentation layer needs (facility name, distance,
    remaining minutes, remediation hint, ...).
    """

    code = "DOMAIN_ERROR"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, "context": dict(self.context)}


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class ReasonTooShort(ValidationError):
    code = "REASON_TOO_SHORT"


class PositionError(DomainError):
    """Acquisition failure, classified into exactly three kinds."""

    kind = PositionErrorKind.POSITION_UNAVAILABLE
    code = kind.value

    def __init__(self, message: str, *, hint: str, **context: Any):
        super().__init__(message, hint=hint, **context)
        self.hint = hint


class PermissionDenied(PositionError):
    kind = PositionErrorKind.PERMISSION_DENIED
    code = kind.value


class PositionUnavailable(PositionError):
    kind = PositionErrorKind.POSITION_UNAVAILABLE
    code = kind.value


class TimedOut(PositionError):
    kind = PositionErrorKind.TIMED_OUT
    code = kind.value


class PolicyError(DomainError):
    code = "POLICY_ERROR"


class OutOfRange(PolicyError):
    code = "OUT_OF_RANGE"

    @property
    def off_premises_allowed(self) -> bool:
        return bool(self.context.get("off_premises_allowed"))


class TooSoon(PolicyError):
    code = "TOO_SOON"

    @property
    def minutes_remaining(self) -> int:
        return int(self.context["minutes_remaining"])


class WindowClosed(PolicyError):
    code = "WINDOW_CLOSED"


class GuardError(DomainError):
    code = "GUARD_ERROR"


class DuplicateRequest(GuardError):
    code = "DUPLICATE_REQUEST"


class InvalidStateTransition(GuardError):
    code = "INVALID_STATE_TRANSITION"


class PersistenceError(DomainError):
    """Raised by attendance/approval stores; the in-memory decision is kept."""

    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, *, cause: Optional[BaseException] = None, **context: Any):
        super().__init__(message, **context)
        self.cause = cause


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "FORBIDDEN"
