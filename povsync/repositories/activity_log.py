"""Activity-log repository. Append-only: there is no update or delete."""

from uuid import UUID

from sqlalchemy import select

from povsync.db.tables import ActivityLogRow
from povsync.models.common import utc_now
from povsync.models.engagement import ActivityLogEntry
from povsync.repositories.base import SessionRepository


class ActivityLogRepository(SessionRepository):

    async def append(self, *, entry_id: UUID, engagement_id: UUID, type: str,
                     title: str, description: str, reference_id: UUID | None,
                     created_by: UUID, created_by_email: str) -> ActivityLogEntry:
        row = ActivityLogRow(
            id=entry_id, engagement_id=engagement_id, type=type, title=title,
            description=description, reference_id=reference_id,
            created_by=created_by, created_by_email=created_by_email,
            created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return ActivityLogEntry.model_validate(row)

    async def list_by_engagement(self, engagement_id: UUID) -> list[ActivityLogEntry]:
        """Newest first. UUIDv7 ids break timestamp ties in insertion order."""
        result = await self._session.execute(
            select(ActivityLogRow)
            .where(ActivityLogRow.engagement_id == engagement_id)
            .order_by(ActivityLogRow.created_at.desc(), ActivityLogRow.id.desc())
        )
        return [ActivityLogEntry.model_validate(r) for r in result.scalars().all()]

    async def list_by_reference(self, reference_id: UUID) -> list[ActivityLogEntry]:
        result = await self._session.execute(
            select(ActivityLogRow)
            .where(ActivityLogRow.reference_id == reference_id)
            .order_by(ActivityLogRow.created_at.desc(), ActivityLogRow.id.desc())
        )
        return [ActivityLogEntry.model_validate(r) for r in result.scalars().all()]
