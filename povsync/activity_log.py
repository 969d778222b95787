"""Activity log writer.

Every create/update/delete writes exactly one human-readable entry. The
insert runs inside the triggering operation's transaction, so a failed log
write fails (and rolls back) the operation: audit completeness wins over
availability. After commit the entry is prepended to the cached log.
"""

from uuid import UUID

import structlog

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.core.unit_of_work import Mutation, OperationContext
from povsync.models.common import ActivityType, new_uuid7
from povsync.models.engagement import ActivityLogEntry
from povsync.repositories.activity_log import ActivityLogRepository
from povsync.repositories.engagements import EngagementRepository
from povsync.store.actions import AddItem, Collection

logger = structlog.get_logger(__name__)


def excerpt(text: str, limit: int = 80) -> str:
    """Single-line excerpt used in log descriptions."""
    flat = " ".join(text.split())
    return flat if len(flat) <= limit else flat[: limit - 3].rstrip() + "..."


class ActivityLogWriter:

    def __init__(self, ctx: OperationContext) -> None:
        self._ctx = ctx

    async def append(
        self,
        mutation: Mutation,
        *,
        engagement_id: UUID,
        type: ActivityType,
        title: str,
        description: str,
        reference_id: UUID | None = None,
    ) -> ActivityLogEntry:
        """Insert an entry inside ``mutation`` and queue the local prepend."""
        entry = await ActivityLogRepository(mutation.session).append(
            entry_id=new_uuid7(),
            engagement_id=engagement_id,
            type=type.value,
            title=title,
            description=description,
            reference_id=reference_id,
            created_by=mutation.actor.id,
            created_by_email=mutation.actor.email,
        )
        mutation.after_commit(AddItem(Collection.ACTIVITY_LOG, entry))
        logger.info(
            "activity.recorded",
            engagement_id=str(engagement_id),
            type=type.value,
            title=title,
            reference_id=str(reference_id) if reference_id else None,
        )
        return entry

    async def record(
        self,
        engagement_id: UUID | None,
        type: ActivityType,
        title: str,
        description: str,
        reference_id: UUID | None = None,
    ) -> ActivityLogEntry:
        """Standalone entry: resolve the actor, insert, prepend locally."""
        actor = await self._ctx.resolve_actor()
        if engagement_id is None:
            raise ValidationFailure("engagement_id is required", {"engagement_id": "missing"})
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            if await EngagementRepository(mutation.session).get(engagement_id) is None:
                raise NotFound("Engagement", engagement_id)
            return await self.append(
                mutation,
                engagement_id=engagement_id,
                type=type,
                title=title,
                description=description,
                reference_id=reference_id,
            )
