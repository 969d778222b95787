"""Working-session repository: sessions and their ordered activities."""

from uuid import UUID

from sqlalchemy import delete, select

from povsync.db.tables import SessionActivityRow, WorkingSessionRow
from povsync.models.common import new_uuid7, utc_now
from povsync.models.engagement import SessionActivity, WorkingSession
from povsync.repositories.base import SessionRepository, group_by


class WorkingSessionRepository(SessionRepository):

    async def create(self, *, session_id: UUID, engagement_id: UUID, title: str,
                     status: str, session_date, duration: int, notes: str | None,
                     created_by: UUID | None) -> WorkingSessionRow:
        row = WorkingSessionRow(
            id=session_id, engagement_id=engagement_id, title=title, status=status,
            session_date=session_date, duration=duration, notes=notes,
            created_by=created_by, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, session_id: UUID) -> WorkingSessionRow | None:
        return await self._session.get(WorkingSessionRow, session_id)

    async def update(self, session_id: UUID, **fields: object) -> WorkingSessionRow | None:
        row = await self.get(session_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, session_id: UUID) -> bool:
        await self._session.execute(
            delete(SessionActivityRow).where(SessionActivityRow.session_id == session_id)
        )
        result = await self._session.execute(
            delete(WorkingSessionRow).where(WorkingSessionRow.id == session_id)
        )
        return result.rowcount > 0

    # --- Activities ---

    async def replace_activities(self, *, session_id: UUID, engagement_id: UUID,
                                 activities: list[SessionActivity]) -> None:
        """Delete every activity row of the session, then reinsert the list.

        ``display_order`` is rewritten to each element's index. Supplied ids
        are kept; activities without one get a fresh id.
        """
        await self._session.execute(
            delete(SessionActivityRow).where(SessionActivityRow.session_id == session_id)
        )
        now = utc_now()
        self._session.add_all([
            SessionActivityRow(
                id=activity.id or new_uuid7(),
                session_id=session_id,
                engagement_id=engagement_id,
                decision_criterion_activity_id=activity.decision_criterion_activity_id,
                activity=None if activity.is_linked else activity.activity,
                status=str(activity.status),
                display_order=index,
                notes=activity.notes,
                created_at=now,
            )
            for index, activity in enumerate(activities)
        ])
        await self._session.flush()

    async def set_linked_status(self, criterion_activity_id: UUID, status: str) -> list[UUID]:
        """Mirror a criterion-activity status into linked session activities.

        Returns the ids of the sessions that changed.
        """
        result = await self._session.execute(
            select(SessionActivityRow).where(
                SessionActivityRow.decision_criterion_activity_id == criterion_activity_id,
            )
        )
        rows = list(result.scalars().all())
        for row in rows:
            row.status = status
        await self._session.flush()
        return [row.session_id for row in rows]

    # --- Composed reads ---

    async def get_composed(self, session_id: UUID) -> WorkingSession | None:
        row = await self.get(session_id)
        if row is None:
            return None
        return (await self._compose_rows([row]))[0]

    async def list_by_engagement(self, engagement_id: UUID) -> list[WorkingSession]:
        result = await self._session.execute(
            select(WorkingSessionRow)
            .where(WorkingSessionRow.engagement_id == engagement_id)
            .order_by(WorkingSessionRow.session_date, WorkingSessionRow.created_at)
        )
        return await self._compose_rows(list(result.scalars().all()))

    async def _compose_rows(self, rows: list[WorkingSessionRow]) -> list[WorkingSession]:
        if not rows:
            return []
        activities = await self._session.execute(
            select(SessionActivityRow)
            .where(SessionActivityRow.session_id.in_([r.id for r in rows]))
            .order_by(SessionActivityRow.display_order)
        )
        by_session = group_by(activities.scalars().all(), "session_id")
        return [
            WorkingSession.model_validate(r).model_copy(update={
                "session_activities": [
                    SessionActivity.model_validate(a) for a in by_session.get(r.id, [])
                ],
            })
            for r in rows
        ]
