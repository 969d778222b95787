"""Engagement (aggregate root) repository and the whole-aggregate read."""

from uuid import UUID

from sqlalchemy import case, delete, func, select

from povsync.db.tables import (
    ChallengeRow,
    DecisionCriterionRow,
    EngagementRow,
    WorkingSessionRow,
)
from povsync.models.common import (
    ChallengeStatus,
    CriterionStatus,
    SessionStatus,
    utc_now,
)
from povsync.models.engagement import Engagement, EngagementSummary
from povsync.repositories.activity_log import ActivityLogRepository
from povsync.repositories.base import SessionRepository
from povsync.repositories.challenges import ChallengeRepository
from povsync.repositories.comments import CommentRepository, DocumentRepository
from povsync.repositories.criteria import DecisionCriterionRepository
from povsync.repositories.device_scopes import (
    BusinessServiceRepository,
    DeviceScopeRepository,
)
from povsync.repositories.sessions import WorkingSessionRepository
from povsync.repositories.team import TeamMemberRepository


class EngagementRepository(SessionRepository):

    async def create(self, *, engagement_id: UUID, title: str, customer_name: str,
                     customer_industry: str, customer_region: str, business_unit: str,
                     status: str, notes: str, start_date, end_date,
                     created_by: UUID) -> EngagementRow:
        now = utc_now()
        row = EngagementRow(
            id=engagement_id, title=title, customer_name=customer_name,
            customer_industry=customer_industry, customer_region=customer_region,
            business_unit=business_unit, status=status, notes=notes,
            start_date=start_date, end_date=end_date, created_by=created_by,
            created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, engagement_id: UUID) -> EngagementRow | None:
        return await self._session.get(EngagementRow, engagement_id)

    async def update(self, engagement_id: UUID, **fields: object) -> EngagementRow | None:
        row = await self.get(engagement_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = utc_now()
        await self._session.flush()
        return row

    async def delete(self, engagement_id: UUID) -> bool:
        """Delete the root; owned rows go with it through ON DELETE CASCADE."""
        result = await self._session.execute(
            delete(EngagementRow).where(EngagementRow.id == engagement_id)
        )
        return result.rowcount > 0

    async def get_aggregate(self, engagement_id: UUID) -> Engagement | None:
        """Load the root composed with every owned collection."""
        row = await self.get(engagement_id)
        if row is None:
            return None
        session = self._session
        return Engagement.model_validate(row).model_copy(update={
            "challenges": await ChallengeRepository(session).list_by_engagement(engagement_id),
            "decision_criteria": await DecisionCriterionRepository(session).list_by_engagement(engagement_id),
            "team_members": await TeamMemberRepository(session).list_by_engagement(engagement_id),
            "device_scopes": await DeviceScopeRepository(session).list_by_engagement(engagement_id),
            "working_sessions": await WorkingSessionRepository(session).list_by_engagement(engagement_id),
            "comments": await CommentRepository(session).list_by_engagement(engagement_id),
            "documents": await DocumentRepository(session).list_by_engagement(engagement_id),
            "activity_log": await ActivityLogRepository(session).list_by_engagement(engagement_id),
            "business_services": await BusinessServiceRepository(session).list_by_engagement(engagement_id),
        })

    async def get_summary(self, engagement_id: UUID) -> EngagementSummary | None:
        summaries = await self.list_summaries(engagement_id=engagement_id)
        return summaries[0] if summaries else None

    async def list_summaries(self, *, engagement_id: UUID | None = None) -> list[EngagementSummary]:
        """List-view rows with child counts, most recently updated first."""
        challenge_counts = (
            select(
                ChallengeRow.engagement_id.label("engagement_id"),
                func.count().label("total"),
                func.sum(case((ChallengeRow.status == ChallengeStatus.COMPLETED.value, 1), else_=0)).label("done"),
            )
            .group_by(ChallengeRow.engagement_id)
            .subquery()
        )
        criteria_counts = (
            select(
                DecisionCriterionRow.engagement_id.label("engagement_id"),
                func.count().label("total"),
                func.sum(case((DecisionCriterionRow.status == CriterionStatus.MET.value, 1), else_=0)).label("met"),
            )
            .group_by(DecisionCriterionRow.engagement_id)
            .subquery()
        )
        session_counts = (
            select(
                WorkingSessionRow.engagement_id.label("engagement_id"),
                func.count().label("scheduled"),
            )
            .where(WorkingSessionRow.status == SessionStatus.SCHEDULED.value)
            .group_by(WorkingSessionRow.engagement_id)
            .subquery()
        )
        stmt = (
            select(
                EngagementRow,
                challenge_counts.c.total, challenge_counts.c.done,
                criteria_counts.c.total, criteria_counts.c.met,
                session_counts.c.scheduled,
            )
            .outerjoin(challenge_counts, challenge_counts.c.engagement_id == EngagementRow.id)
            .outerjoin(criteria_counts, criteria_counts.c.engagement_id == EngagementRow.id)
            .outerjoin(session_counts, session_counts.c.engagement_id == EngagementRow.id)
            .order_by(EngagementRow.updated_at.desc())
        )
        if engagement_id is not None:
            stmt = stmt.where(EngagementRow.id == engagement_id)
        result = await self._session.execute(stmt)
        return [
            EngagementSummary(
                id=row.id, title=row.title, customer_name=row.customer_name,
                status=row.status, start_date=row.start_date, end_date=row.end_date,
                challenge_count=ch_total or 0, completed_challenge_count=ch_done or 0,
                criteria_count=cr_total or 0, criteria_met_count=cr_met or 0,
                scheduled_session_count=scheduled or 0, updated_at=row.updated_at,
            )
            for row, ch_total, ch_done, cr_total, cr_met, scheduled in result.all()
        ]
