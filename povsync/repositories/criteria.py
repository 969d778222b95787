"""Decision-criterion repository: criteria, categories and nested activities.

Activity ids are load-bearing (session activities reference them), so
replacing the activity list keeps any id the caller supplies.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, select, update

from povsync.db.tables import (
    DecisionCriterionActivityRow,
    DecisionCriterionCategoryRow,
    DecisionCriterionRow,
)
from povsync.models.common import new_uuid7, utc_now
from povsync.models.engagement import (
    DecisionCriterion,
    DecisionCriterionActivity,
    DecisionCriterionCategory,
)
from povsync.repositories.base import SessionRepository, group_by


@dataclass(frozen=True)
class ActivitySpec:
    """Row to (re)insert: ``activity_id`` is None for new activities."""

    activity: str
    status: str
    activity_id: UUID | None = None


class DecisionCriterionRepository(SessionRepository):

    async def create(self, *, criterion_id: UUID, engagement_id: UUID, title: str,
                     success_criteria: str, use_case: str | None, status: str,
                     created_by: UUID | None) -> DecisionCriterionRow:
        row = DecisionCriterionRow(
            id=criterion_id, engagement_id=engagement_id, title=title,
            success_criteria=success_criteria, use_case=use_case, status=status,
            created_by=created_by, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, criterion_id: UUID) -> DecisionCriterionRow | None:
        return await self._session.get(DecisionCriterionRow, criterion_id)

    async def update(self, criterion_id: UUID, **fields: object) -> DecisionCriterionRow | None:
        row = await self.get(criterion_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        await self._session.flush()
        return row

    async def delete(self, criterion_id: UUID) -> bool:
        await self._session.execute(
            delete(DecisionCriterionCategoryRow)
            .where(DecisionCriterionCategoryRow.criterion_id == criterion_id)
        )
        await self._session.execute(
            delete(DecisionCriterionActivityRow)
            .where(DecisionCriterionActivityRow.criterion_id == criterion_id)
        )
        result = await self._session.execute(
            delete(DecisionCriterionRow).where(DecisionCriterionRow.id == criterion_id)
        )
        return result.rowcount > 0

    # --- Children ---

    async def add_children(self, criterion_id: UUID, *, categories: list[str],
                           activities: list[ActivitySpec]) -> None:
        now = utc_now()
        self._session.add_all([
            DecisionCriterionCategoryRow(id=new_uuid7(), criterion_id=criterion_id,
                                         category=c, created_at=now)
            for c in categories
        ])
        self._session.add_all([
            DecisionCriterionActivityRow(
                id=spec.activity_id or new_uuid7(), criterion_id=criterion_id,
                activity=spec.activity, order_index=index, status=spec.status,
                created_at=now,
            )
            for index, spec in enumerate(activities)
        ])
        await self._session.flush()

    async def replace_categories(self, criterion_id: UUID, categories: list[str]) -> None:
        await self._session.execute(
            delete(DecisionCriterionCategoryRow)
            .where(DecisionCriterionCategoryRow.criterion_id == criterion_id)
        )
        await self.add_children(criterion_id, categories=categories, activities=[])

    async def replace_activities(self, criterion_id: UUID,
                                 activities: list[ActivitySpec]) -> None:
        await self._session.execute(
            delete(DecisionCriterionActivityRow)
            .where(DecisionCriterionActivityRow.criterion_id == criterion_id)
        )
        await self.add_children(criterion_id, categories=[], activities=activities)

    async def get_activity(self, activity_id: UUID) -> DecisionCriterionActivityRow | None:
        return await self._session.get(DecisionCriterionActivityRow, activity_id)

    async def get_activities(self, activity_ids: list[UUID]) -> list[DecisionCriterionActivityRow]:
        if not activity_ids:
            return []
        result = await self._session.execute(
            select(DecisionCriterionActivityRow)
            .where(DecisionCriterionActivityRow.id.in_(activity_ids))
        )
        return list(result.scalars().all())

    async def update_activity_status(self, activity_id: UUID, status: str) -> bool:
        result = await self._session.execute(
            update(DecisionCriterionActivityRow)
            .where(DecisionCriterionActivityRow.id == activity_id)
            .values(status=status)
        )
        return result.rowcount > 0

    # --- Composed reads ---

    async def get_composed(self, criterion_id: UUID) -> DecisionCriterion | None:
        row = await self.get(criterion_id)
        if row is None:
            return None
        return (await self._compose_rows([row]))[0]

    async def list_by_engagement(self, engagement_id: UUID) -> list[DecisionCriterion]:
        result = await self._session.execute(
            select(DecisionCriterionRow)
            .where(DecisionCriterionRow.engagement_id == engagement_id)
            .order_by(DecisionCriterionRow.created_at, DecisionCriterionRow.id)
        )
        return await self._compose_rows(list(result.scalars().all()))

    async def _compose_rows(self, rows: list[DecisionCriterionRow]) -> list[DecisionCriterion]:
        if not rows:
            return []
        ids = [r.id for r in rows]
        categories = await self._session.execute(
            select(DecisionCriterionCategoryRow)
            .where(DecisionCriterionCategoryRow.criterion_id.in_(ids))
            .order_by(DecisionCriterionCategoryRow.created_at, DecisionCriterionCategoryRow.id)
        )
        activities = await self._session.execute(
            select(DecisionCriterionActivityRow)
            .where(DecisionCriterionActivityRow.criterion_id.in_(ids))
            .order_by(DecisionCriterionActivityRow.order_index)
        )
        cats = group_by(categories.scalars().all(), "criterion_id")
        acts = group_by(activities.scalars().all(), "criterion_id")
        return [
            DecisionCriterion.model_validate(r).model_copy(update={
                "categories": [DecisionCriterionCategory.model_validate(c) for c in cats.get(r.id, [])],
                "activities": [DecisionCriterionActivity.model_validate(a) for a in acts.get(r.id, [])],
            })
            for r in rows
        ]
