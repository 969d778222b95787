"""Shared plumbing for the operation classes.

Each public operation is wrapped by ``notify`` (started / succeeded /
failed events) and follows the same opening steps: resolve the actor,
require the engagement id, take the aggregate lock, open the transaction.
"""

import functools
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from povsync.activity_log import ActivityLogWriter
from povsync.core.exceptions import NotFound, SyncError, ValidationFailure
from povsync.core.unit_of_work import Mutation, OperationContext
from povsync.models.engagement import Engagement
from povsync.repositories.engagements import EngagementRepository
from povsync.store.actions import UpsertEngagementSummary

logger = structlog.get_logger(__name__)

R = TypeVar("R")


def notify(
    *,
    loading: str,
    success: str | Callable[[Any], str],
    failure: str,
) -> Callable[[Callable[..., Awaitable[R]]], Callable[..., Awaitable[R]]]:
    """Report an operation's lifecycle to the Notification collaborator.

    Args:
        loading: Label sent when the operation starts.
        success: Label, or a callable building it from the result.
        failure: Default message when the error is not a ``SyncError``.
    """

    def decorator(func: Callable[..., Awaitable[R]]) -> Callable[..., Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(self: "OperationBase", *args: Any, **kwargs: Any) -> R:
            notifier = self._ctx.notifier
            log = logger.bind(operation=func.__qualname__)
            notifier.started(loading)
            log.debug("operation.started")
            try:
                result = await func(self, *args, **kwargs)
            except SyncError as exc:
                notifier.failed(str(exc) or failure)
                log.warning("operation.failed", error=str(exc), error_type=type(exc).__name__)
                raise
            except Exception:
                notifier.failed(failure)
                log.exception("operation.failed")
                raise
            notifier.succeeded(success(result) if callable(success) else success)
            log.info("operation.succeeded")
            return result

        return wrapper

    return decorator


class OperationBase:
    """Base class of every operation family."""

    def __init__(self, ctx: OperationContext, log: ActivityLogWriter) -> None:
        self._ctx = ctx
        self._log = log

    @staticmethod
    def _require_engagement_id(engagement_id: UUID | None) -> UUID:
        if engagement_id is None:
            raise ValidationFailure("engagement_id is required", {"engagement_id": "missing"})
        return engagement_id

    @staticmethod
    async def _ensure_engagement(session: AsyncSession, engagement_id: UUID) -> None:
        if await EngagementRepository(session).get(engagement_id) is None:
            raise NotFound("Engagement", engagement_id)

    @staticmethod
    async def _read_aggregate(session: AsyncSession, engagement_id: UUID) -> Engagement:
        """Fresh aggregate read inside the current transaction (guard input)."""
        engagement = await EngagementRepository(session).get_aggregate(engagement_id)
        if engagement is None:
            raise NotFound("Engagement", engagement_id)
        return engagement

    @staticmethod
    def _require_owned(item: Any, resource: str, item_id: UUID, engagement_id: UUID) -> None:
        """NotFound unless ``item`` exists and belongs to ``engagement_id``."""
        if item is None or item.engagement_id != engagement_id:
            raise NotFound(resource, item_id)

    @staticmethod
    def _changes(payload: BaseModel, *, exclude: Iterable[str] = (),
                 nullable: Iterable[str] = ()) -> dict[str, Any]:
        """Scalar fields the caller actually supplied.

        ``None`` means "leave as is" except for the ``nullable`` fields,
        where an explicitly supplied ``None`` clears the value.
        """
        skip = {"engagement_id", *exclude}
        clearable = set(nullable)
        return {
            name: value
            for name, value in payload.model_dump(exclude_unset=True).items()
            if name not in skip and (value is not None or name in clearable)
        }

    async def _touch_summary(self, mutation: Mutation, engagement_id: UUID) -> None:
        """Refresh the list-view row of the engagement if the list is loaded."""
        if not any(s.id == engagement_id for s in self._ctx.store.state.engagements):
            return
        summary = await EngagementRepository(mutation.session).get_summary(engagement_id)
        if summary is not None:
            mutation.after_commit(UpsertEngagementSummary(summary))
