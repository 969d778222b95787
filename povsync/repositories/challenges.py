"""Challenge and challenge-template repositories.

Categories and outcomes are child tables; updates replace them wholesale
(delete-all then insert-all) because they are small and rarely edited
concurrently.
"""

from uuid import UUID

from sqlalchemy import delete, select

from povsync.db.tables import (
    ChallengeCategoryRow,
    ChallengeOutcomeRow,
    ChallengeRow,
    ChallengeTemplateCategoryRow,
    ChallengeTemplateOutcomeRow,
    ChallengeTemplateRow,
)
from povsync.models.common import new_uuid7, utc_now
from povsync.models.engagement import (
    Challenge,
    ChallengeCategory,
    ChallengeOutcome,
    ChallengeTemplate,
)
from povsync.repositories.base import SessionRepository, group_by


def _compose(
    row: ChallengeRow,
    categories: list[ChallengeCategoryRow],
    outcomes: list[ChallengeOutcomeRow],
) -> Challenge:
    challenge = Challenge.model_validate(row)
    return challenge.model_copy(update={
        "categories": [ChallengeCategory.model_validate(c) for c in categories],
        "outcomes": [
            ChallengeOutcome.model_validate(o)
            for o in sorted(outcomes, key=lambda o: o.order_index)
        ],
    })


class ChallengeRepository(SessionRepository):
    """Engagement-scoped challenges with their categories and outcomes."""

    async def create(self, *, challenge_id: UUID, engagement_id: UUID, title: str,
                     description: str, business_impact: str, example: str | None,
                     status: str, template_id: UUID | None = None) -> ChallengeRow:
        now = utc_now()
        row = ChallengeRow(
            id=challenge_id, engagement_id=engagement_id, template_id=template_id,
            title=title, description=description, business_impact=business_impact,
            example=example, status=status, created_at=now, updated_at=now,
        )
        self._session.add(row)
        await self._session.flush()
        return row

    async def get(self, challenge_id: UUID) -> ChallengeRow | None:
        return await self._session.get(ChallengeRow, challenge_id)

    async def update(self, challenge_id: UUID, **fields: object) -> ChallengeRow | None:
        row = await self.get(challenge_id)
        if row is None:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = utc_now()
        await self._session.flush()
        return row

    async def delete(self, challenge_id: UUID) -> bool:
        await self._delete_children(challenge_id)
        result = await self._session.execute(
            delete(ChallengeRow).where(ChallengeRow.id == challenge_id)
        )
        return result.rowcount > 0

    async def _delete_children(self, challenge_id: UUID) -> None:
        await self._session.execute(
            delete(ChallengeCategoryRow).where(ChallengeCategoryRow.challenge_id == challenge_id)
        )
        await self._session.execute(
            delete(ChallengeOutcomeRow).where(ChallengeOutcomeRow.challenge_id == challenge_id)
        )

    async def add_children(self, challenge_id: UUID, *, categories: list[str],
                           outcomes: list[str]) -> None:
        """Insert categories and outcomes in one flush."""
        now = utc_now()
        self._session.add_all([
            ChallengeCategoryRow(id=new_uuid7(), challenge_id=challenge_id,
                                 category=category, created_at=now)
            for category in categories
        ])
        self._session.add_all([
            ChallengeOutcomeRow(id=new_uuid7(), challenge_id=challenge_id,
                                outcome=outcome, order_index=index, created_at=now)
            for index, outcome in enumerate(outcomes)
        ])
        await self._session.flush()

    async def replace_categories(self, challenge_id: UUID, categories: list[str]) -> None:
        await self._session.execute(
            delete(ChallengeCategoryRow).where(ChallengeCategoryRow.challenge_id == challenge_id)
        )
        await self.add_children(challenge_id, categories=categories, outcomes=[])

    async def replace_outcomes(self, challenge_id: UUID, outcomes: list[str]) -> None:
        await self._session.execute(
            delete(ChallengeOutcomeRow).where(ChallengeOutcomeRow.challenge_id == challenge_id)
        )
        await self.add_children(challenge_id, categories=[], outcomes=outcomes)

    async def get_composed(self, challenge_id: UUID) -> Challenge | None:
        """Read-your-write: the challenge joined with its children."""
        row = await self.get(challenge_id)
        if row is None:
            return None
        composed = await self._compose_rows([row])
        return composed[0]

    async def list_by_engagement(self, engagement_id: UUID) -> list[Challenge]:
        result = await self._session.execute(
            select(ChallengeRow)
            .where(ChallengeRow.engagement_id == engagement_id)
            .order_by(ChallengeRow.created_at, ChallengeRow.id)
        )
        return await self._compose_rows(list(result.scalars().all()))

    async def _compose_rows(self, rows: list[ChallengeRow]) -> list[Challenge]:
        if not rows:
            return []
        ids = [r.id for r in rows]
        categories = await self._session.execute(
            select(ChallengeCategoryRow)
            .where(ChallengeCategoryRow.challenge_id.in_(ids))
            .order_by(ChallengeCategoryRow.created_at, ChallengeCategoryRow.id)
        )
        outcomes = await self._session.execute(
            select(ChallengeOutcomeRow).where(ChallengeOutcomeRow.challenge_id.in_(ids))
        )
        by_challenge_cat = group_by(categories.scalars().all(), "challenge_id")
        by_challenge_out = group_by(outcomes.scalars().all(), "challenge_id")
        return [
            _compose(r, by_challenge_cat.get(r.id, []), by_challenge_out.get(r.id, []))
            for r in rows
        ]


class ChallengeTemplateRepository(SessionRepository):
    """Library templates. Append-only: no update or delete."""

    async def create(self, *, template_id: UUID, title: str, description: str,
                     business_impact: str, example: str | None,
                     categories: list[str], outcomes: list[str],
                     created_by: UUID | None = None) -> ChallengeTemplate:
        row = ChallengeTemplateRow(
            id=template_id, title=title, description=description,
            business_impact=business_impact, example=example,
            created_by=created_by, created_at=utc_now(),
        )
        self._session.add(row)
        await self._session.flush()
        self._session.add_all([
            ChallengeTemplateCategoryRow(id=new_uuid7(), template_id=template_id, category=c)
            for c in categories
        ])
        self._session.add_all([
            ChallengeTemplateOutcomeRow(id=new_uuid7(), template_id=template_id,
                                        outcome=o, order_index=i)
            for i, o in enumerate(outcomes)
        ])
        await self._session.flush()
        return await self.get(template_id)  # type: ignore[return-value]

    async def get(self, template_id: UUID) -> ChallengeTemplate | None:
        row = await self._session.get(ChallengeTemplateRow, template_id)
        if row is None:
            return None
        return (await self._compose_rows([row]))[0]

    async def list_all(self) -> list[ChallengeTemplate]:
        result = await self._session.execute(
            select(ChallengeTemplateRow).order_by(ChallengeTemplateRow.title)
        )
        return await self._compose_rows(list(result.scalars().all()))

    async def _compose_rows(self, rows: list[ChallengeTemplateRow]) -> list[ChallengeTemplate]:
        if not rows:
            return []
        ids = [r.id for r in rows]
        categories = await self._session.execute(
            select(ChallengeTemplateCategoryRow)
            .where(ChallengeTemplateCategoryRow.template_id.in_(ids))
        )
        outcomes = await self._session.execute(
            select(ChallengeTemplateOutcomeRow)
            .where(ChallengeTemplateOutcomeRow.template_id.in_(ids))
            .order_by(ChallengeTemplateOutcomeRow.order_index)
        )
        cats = group_by(categories.scalars().all(), "template_id")
        outs = group_by(outcomes.scalars().all(), "template_id")
        return [
            ChallengeTemplate(
                id=r.id, title=r.title, description=r.description,
                business_impact=r.business_impact, example=r.example,
                categories=[c.category for c in cats.get(r.id, [])],
                outcomes=[o.outcome for o in outs.get(r.id, [])],
                created_by=r.created_by, created_at=r.created_at,
            )
            for r in rows
        ]
