"""Per-operation unit of work.

Every mutating operation runs as:

    actor -> per-aggregate lock -> one DB transaction
          (parent write, dependent writes, composed re-read, log insert)
          -> commit -> store actions dispatched in order

A failure anywhere before the commit rolls the transaction back, runs the
registered compensations (e.g. removing a just-written blob) and leaves
the store untouched. Database errors surface as ``RemoteFailure``.
"""

import asyncio
import logging
from collections import Counter
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from povsync.collaborators import Actor, IdentityProvider, LoggingNotifier, Notifier
from povsync.config.settings import Settings, get_settings
from povsync.core.exceptions import RemoteFailure, Unauthorized
from povsync.integrity import IntegrityGuard
from povsync.storage import BlobStorage
from povsync.store.actions import Action
from povsync.store.store import AggregateStore

logger = logging.getLogger(__name__)


class AggregateLocks:
    """One asyncio.Lock per engagement id; waiters are served FIFO.

    A lock counts every caller that holds it or waits for it, so it is
    only dropped once nobody can still be queued on it.
    """

    def __init__(self) -> None:
        self._locks: dict[UUID, asyncio.Lock] = {}
        self._users: Counter[UUID] = Counter()

    def __contains__(self, engagement_id: UUID) -> bool:
        return engagement_id in self._locks

    @asynccontextmanager
    async def hold(self, engagement_id: UUID) -> AsyncIterator[None]:
        lock = self._locks.setdefault(engagement_id, asyncio.Lock())
        self._users[engagement_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[engagement_id] -= 1
            if self._users[engagement_id] <= 0:
                del self._users[engagement_id]

    def discard(self, engagement_id: UUID) -> None:
        """Forget the lock of ``engagement_id`` unless a caller holds or awaits it."""
        if self._users[engagement_id] == 0:
            self._locks.pop(engagement_id, None)


@dataclass
class Mutation:
    """State of one in-flight operation."""

    session: AsyncSession
    actor: Actor
    actions: list[Action] = field(default_factory=list)
    compensations: list[Callable[[], None]] = field(default_factory=list)

    def after_commit(self, action: Action) -> None:
        """Queue a store action; dispatched only once the transaction commits."""
        self.actions.append(action)

    def on_rollback(self, compensation: Callable[[], None]) -> None:
        """Register an undo step for side effects outside the transaction."""
        self.compensations.append(compensation)


@dataclass
class OperationContext:
    """Everything the Operation Layer needs, injected once."""

    store: AggregateStore
    session_factory: async_sessionmaker[AsyncSession]
    identity: IdentityProvider
    notifier: Notifier = field(default_factory=LoggingNotifier)
    guard: IntegrityGuard = field(default_factory=IntegrityGuard)
    storage: BlobStorage | None = None
    settings: Settings = field(default_factory=get_settings)
    locks: AggregateLocks = field(default_factory=AggregateLocks)

    async def resolve_actor(self) -> Actor:
        try:
            actor = await self.identity.current_actor()
        except Exception as exc:
            raise Unauthorized(f"Unauthorized: {exc}") from exc
        if actor is None:
            raise Unauthorized()
        return actor

    @asynccontextmanager
    async def mutation(self, engagement_id: UUID, actor: Actor) -> AsyncIterator[Mutation]:
        async with self.locks.hold(engagement_id):
            mutation: Mutation | None = None
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        mutation = Mutation(session=session, actor=actor)
                        yield mutation
            except BaseException as exc:
                if mutation is not None:
                    _compensate(mutation)
                if isinstance(exc, SQLAlchemyError):
                    raise RemoteFailure(
                        f"Database request failed: {exc.__class__.__name__}", cause=exc,
                    ) from exc
                raise
            for action in mutation.actions:
                self.store.dispatch(action)

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[AsyncSession]:
        """Read-only session; database errors surface as RemoteFailure."""
        try:
            async with self.session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise RemoteFailure(
                f"Database request failed: {exc.__class__.__name__}", cause=exc,
            ) from exc


def _compensate(mutation: Mutation) -> None:
    for compensation in reversed(mutation.compensations):
        try:
            compensation()
        except Exception:
            logger.exception("Compensation failed; manual cleanup may be required")
