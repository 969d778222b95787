"""
Exception hierarchy raised by the synchronization core.

Every operation fails with one of these types. The presentation layer
catches ``SyncError`` once and shows ``str(exc)`` to the user.

Usage:
    from povsync.core.exceptions import NotFound, ValidationFailure

    raise NotFound(resource="Challenge", resource_id=challenge_id)
    raise ValidationFailure("engagement_id is required")
"""


class SyncError(Exception):
    """Base class for every failure surfaced by the Operation Layer."""


class Unauthorized(SyncError):
    """Raised when no actor identity can be resolved, or the actor may not act."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class ValidationFailure(SyncError):
    """Raised when input is well-formed but misses a required relation.

    Args:
        message: Human-readable explanation of what failed.
        details: Optional field-level breakdown. Keys are field names.
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        self.details = details or {}
        super().__init__(message)


class NotFound(SyncError):
    """Raised when an update/delete target does not exist.

    Args:
        resource: Human-readable entity name (e.g. "Challenge").
        resource_id: The id that was looked up.
    """

    def __init__(self, resource: str, resource_id: object | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" id={resource_id}"
        msg += " not found"
        super().__init__(msg)


class IntegrityViolation(SyncError):
    """Raised when a destructive operation would orphan a live dependent.

    Args:
        message: User-facing explanation.
        dependents: Ids of the records still holding a reference.
    """

    def __init__(self, message: str, dependents: list | None = None) -> None:
        self.dependents = list(dependents or [])
        super().__init__(message)


class RemoteFailure(SyncError):
    """Raised when the database or blob storage rejects a call.

    The underlying exception is kept on ``cause`` (and chained as
    ``__cause__`` by the raiser).
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)
