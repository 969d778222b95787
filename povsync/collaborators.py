"""External collaborators of the synchronization core.

- Identity: supplies the current actor (``Actor``) or nothing.
- Notification: receives started / succeeded / failed lifecycle events.

Both are protocols; the simple implementations here back tests and
non-interactive callers.
"""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """Opaque identity of the user performing an operation."""

    id: UUID
    email: str
    display_name: str


class IdentityProvider(Protocol):
    async def current_actor(self) -> Actor | None: ...


class Notifier(Protocol):
    def started(self, label: str) -> None: ...

    def succeeded(self, label: str) -> None: ...

    def failed(self, message: str) -> None: ...


class StaticIdentity:
    """Identity provider returning a fixed actor (or none, for signed-out sessions)."""

    def __init__(self, actor: Actor | None) -> None:
        self._actor = actor

    def sign_in(self, actor: Actor) -> None:
        self._actor = actor

    def sign_out(self) -> None:
        self._actor = None

    async def current_actor(self) -> Actor | None:
        return self._actor


class LoggingNotifier:
    """Default notifier: forwards lifecycle events to structlog."""

    def started(self, label: str) -> None:
        logger.info("notification.started", label=label)

    def succeeded(self, label: str) -> None:
        logger.info("notification.succeeded", label=label)

    def failed(self, message: str) -> None:
        logger.warning("notification.failed", message=message)


@dataclass
class RecordingNotifier:
    """Keeps every event as ``(kind, text)``; useful in tests and previews."""

    events: list[tuple[str, str]] = field(default_factory=list)

    def started(self, label: str) -> None:
        self.events.append(("started", label))

    def succeeded(self, label: str) -> None:
        self.events.append(("succeeded", label))

    def failed(self, message: str) -> None:
        self.events.append(("failed", message))
