"""
Exception hierarchy for the SkillBridge engine.

Every error carries a machine-readable ``kind`` and a ``details`` mapping of
the offending identifiers, so callers can render a precise message without
parsing strings. Domain errors also subclass ``ValueError``; storage
failures do not, since they are retryable infrastructure problems.
"""

from typing import Any, Dict, Optional


class SkillBridgeError(Exception):
    """Base exception for all SkillBridge errors."""

    kind = "error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.kind,
            "message": self.message,
            "details": dict(self.details),
        }


class DomainError(SkillBridgeError, ValueError):
    """Recoverable, caller-facing rule violation."""

    kind = "domain_error"


class NotFound(DomainError):
    kind = "not_found"

    def __init__(self, entity: str, identifier: Any):
        super().__init__(
            f"{entity} {identifier} not found",
            entity=entity,
            identifier=identifier,
        )


class Forbidden(DomainError):
    kind = "forbidden"

    def __init__(self, action: str, user_id: Any, **ids: Any):
        super().__init__(
            f"User {user_id} is not allowed to {action}",
            action=action,
            user_id=user_id,
            **ids,
        )


class InvalidTransition(DomainError):
    kind = "invalid_transition"

    def __init__(self, connection_id: Any, current: str, requested: str):
        super().__init__(
            f"Connection {connection_id} cannot move from {current} to {requested}",
            connection_id=connection_id,
            current=current,
            requested=requested,
        )


class InvalidRequest(DomainError):
    kind = "invalid_request"

    def __init__(self, reason: str, **ids: Any):
        super().__init__(reason, **ids)


class AlreadyConnected(DomainError):
    kind = "already_connected"

    def __init__(self, user_a: Any, user_b: Any, connection_id: Optional[Any] = None):
        super().__init__(
            f"A connection between users {user_a} and {user_b} already exists",
            user_a=user_a,
            user_b=user_b,
            connection_id=connection_id,
        )


class InvalidRating(DomainError):
    kind = "invalid_rating"

    def __init__(self, rating: Any, field: str = "rating", **ids: Any):
        super().__init__(
            f"{field} must be an integer between 1 and 5 (got {rating!r})",
            rating=rating,
            field=field,
            **ids,
        )


class StorageFailure(SkillBridgeError):
    """Store-level failure (connectivity, transaction conflict). Retryable."""

    kind = "storage_failure"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Storage failure during {operation}",
            operation=operation,
            cause=type(cause).__name__ if cause is not None else None,
        )
        self.cause = cause
