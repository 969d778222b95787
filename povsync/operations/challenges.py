"""Challenge operations, including the shared challenge library."""

from uuid import UUID

from povsync.core.exceptions import NotFound
from povsync.core.unit_of_work import Mutation
from povsync.models.common import ActivityType, ChallengeStatus, new_uuid7, status_verb
from povsync.models.engagement import Challenge, ChallengeTemplate
from povsync.models.inputs import ChallengeCreate, ChallengeUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.challenges import ChallengeRepository, ChallengeTemplateRepository
from povsync.store.actions import AddItem, Collection, DeleteItem, UpdateItem


class ChallengeOperations(OperationBase):

    @notify(
        loading="Adding challenge...",
        success=lambda c: f'Challenge "{c.title}" added',
        failure="Failed to add challenge",
    )
    async def add(self, payload: ChallengeCreate) -> Challenge:
        """Add a challenge; with ``save_to_library`` also write a library template."""
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            template_id = None
            if payload.save_to_library:
                template = await ChallengeTemplateRepository(mutation.session).create(
                    template_id=new_uuid7(),
                    title=payload.title,
                    description=payload.description,
                    business_impact=payload.business_impact,
                    example=payload.example,
                    categories=payload.categories,
                    outcomes=payload.outcomes,
                    created_by=actor.id,
                )
                template_id = template.id
            challenge = await self._insert(
                mutation,
                engagement_id=engagement_id,
                template_id=template_id,
                title=payload.title,
                description=payload.description,
                business_impact=payload.business_impact,
                example=payload.example,
                status=payload.status,
                categories=payload.categories,
                outcomes=payload.outcomes,
            )
        return challenge

    @notify(
        loading="Adding challenge from library...",
        success=lambda c: f'Challenge "{c.title}" added',
        failure="Failed to add challenge",
    )
    async def add_from_template(self, engagement_id: UUID | None, template_id: UUID) -> Challenge:
        """Copy a library template into the engagement as a new open challenge."""
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            template = await ChallengeTemplateRepository(mutation.session).get(template_id)
            if template is None:
                raise NotFound("ChallengeTemplate", template_id)
            challenge = await self._insert(
                mutation,
                engagement_id=engagement_id,
                template_id=template.id,
                title=template.title,
                description=template.description,
                business_impact=template.business_impact,
                example=template.example,
                status=ChallengeStatus.OPEN,
                categories=template.categories,
                outcomes=template.outcomes,
            )
        return challenge

    async def _insert(self, mutation: Mutation, *, engagement_id: UUID, template_id: UUID | None,
                      title: str, description: str, business_impact: str,
                      example: str | None, status: ChallengeStatus,
                      categories: list[str], outcomes: list[str]) -> Challenge:
        repo = ChallengeRepository(mutation.session)
        challenge_id = new_uuid7()
        await repo.create(
            challenge_id=challenge_id,
            engagement_id=engagement_id,
            template_id=template_id,
            title=title,
            description=description,
            business_impact=business_impact,
            example=example,
            status=status,
        )
        await repo.add_children(challenge_id, categories=categories, outcomes=outcomes)
        challenge = await repo.get_composed(challenge_id)
        if challenge is None:
            raise NotFound("Challenge", challenge_id)
        mutation.after_commit(AddItem(Collection.CHALLENGES, challenge))
        await self._log.append(
            mutation,
            engagement_id=engagement_id,
            type=ActivityType.CHALLENGE,
            title="Challenge Added",
            description=f'"{challenge.title}" challenge created',
            reference_id=challenge.id,
        )
        await self._touch_summary(mutation, engagement_id)
        return challenge

    @notify(
        loading="Updating challenge...",
        success=lambda c: f'Challenge "{c.title}" updated',
        failure="Failed to update challenge",
    )
    async def update(self, challenge_id: UUID, payload: ChallengeUpdate) -> Challenge:
        """Partial update. Outcomes and categories are replaced only when supplied."""
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(
            payload, exclude=("outcomes", "categories"), nullable=("example",),
        )
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = ChallengeRepository(mutation.session)
            self._require_owned(await repo.get(challenge_id), "Challenge", challenge_id, engagement_id)
            await repo.update(challenge_id, **changes)
            if payload.outcomes is not None:
                await repo.replace_outcomes(challenge_id, payload.outcomes)
            if payload.categories is not None:
                await repo.replace_categories(challenge_id, payload.categories)
            challenge = await self._updated(mutation, challenge_id, payload.status)
        return challenge

    @notify(
        loading="Updating challenge status...",
        success=lambda c: f'Challenge "{c.title}" {status_verb(c.status)}',
        failure="Failed to update challenge status",
    )
    async def update_status(self, engagement_id: UUID | None, challenge_id: UUID,
                            status: ChallengeStatus) -> Challenge:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = ChallengeRepository(mutation.session)
            self._require_owned(await repo.get(challenge_id), "Challenge", challenge_id, engagement_id)
            await repo.update(challenge_id, status=status)
            challenge = await self._updated(mutation, challenge_id, status)
        return challenge

    async def _updated(self, mutation: Mutation, challenge_id: UUID,
                       status: ChallengeStatus | None) -> Challenge:
        challenge = await ChallengeRepository(mutation.session).get_composed(challenge_id)
        if challenge is None:
            raise NotFound("Challenge", challenge_id)
        mutation.after_commit(UpdateItem(Collection.CHALLENGES, challenge))
        await self._log.append(
            mutation,
            engagement_id=challenge.engagement_id,
            type=ActivityType.CHALLENGE,
            title="Challenge Updated",
            description=f'"{challenge.title}" {status_verb(status)}',
            reference_id=challenge.id,
        )
        await self._touch_summary(mutation, challenge.engagement_id)
        return challenge

    @notify(
        loading="Removing challenge...",
        success="Challenge removed",
        failure="Failed to remove challenge",
    )
    async def delete(self, engagement_id: UUID | None, challenge_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = ChallengeRepository(mutation.session)
            row = await repo.get(challenge_id)
            self._require_owned(row, "Challenge", challenge_id, engagement_id)
            title = row.title
            await repo.delete(challenge_id)
            mutation.after_commit(DeleteItem(Collection.CHALLENGES, challenge_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CHALLENGE,
                title="Challenge Removed",
                description=f'"{title}" challenge removed',
                reference_id=challenge_id,
            )
            await self._touch_summary(mutation, engagement_id)

    @notify(
        loading="Loading challenge library...",
        success=lambda templates: f"{len(templates)} library challenges loaded",
        failure="Failed to load challenge library",
    )
    async def list_templates(self) -> list[ChallengeTemplate]:
        await self._ctx.resolve_actor()
        async with self._ctx.reading() as session:
            return await ChallengeTemplateRepository(session).list_all()
