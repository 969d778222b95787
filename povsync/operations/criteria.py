"""Decision-criterion operations.

Criterion activity ids are referenced by session activities, so updates
keep the ids the caller sends back, and dropping or deleting a scheduled
activity goes through the Integrity Guard.
"""

from uuid import UUID

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.core.unit_of_work import Mutation
from povsync.models.common import ActivityStatus, ActivityType, CriterionStatus, new_uuid7, status_verb
from povsync.models.engagement import DecisionCriterion
from povsync.models.inputs import DecisionCriterionCreate, DecisionCriterionUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.criteria import ActivitySpec, DecisionCriterionRepository
from povsync.repositories.sessions import WorkingSessionRepository
from povsync.store.actions import (
    AddItem,
    Collection,
    DeleteItem,
    UpdateCriterionActivityStatus,
    UpdateItem,
)


class DecisionCriterionOperations(OperationBase):

    @notify(
        loading="Adding decision criteria...",
        success=lambda c: f'Decision criteria "{c.title}" added',
        failure="Failed to add decision criteria",
    )
    async def add(self, payload: DecisionCriterionCreate) -> DecisionCriterion:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            await self._ensure_engagement(mutation.session, engagement_id)
            repo = DecisionCriterionRepository(mutation.session)
            criterion_id = new_uuid7()
            await repo.create(
                criterion_id=criterion_id,
                engagement_id=engagement_id,
                title=payload.title,
                success_criteria=payload.success_criteria,
                use_case=payload.use_case,
                status=payload.status,
                created_by=actor.id,
            )
            await repo.add_children(
                criterion_id,
                categories=payload.categories,
                activities=[ActivitySpec(a.activity, a.status) for a in payload.activities],
            )
            criterion = await self._composed(mutation, criterion_id)
            mutation.after_commit(AddItem(Collection.DECISION_CRITERIA, criterion))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CRITERIA,
                title="Decision Criteria Added",
                description=f'"{criterion.title}" decision criteria created',
                reference_id=criterion.id,
            )
            await self._touch_summary(mutation, engagement_id)
        return criterion

    @notify(
        loading="Updating decision criteria...",
        success=lambda c: f'Decision criteria "{c.title}" updated',
        failure="Failed to update decision criteria",
    )
    async def update(self, criterion_id: UUID, payload: DecisionCriterionUpdate) -> DecisionCriterion:
        """Partial update.

        When ``activities`` is supplied the list is replaced: entries with an
        ``id`` keep it (and their session links), entries without one are
        new. Status changes of kept activities are mirrored into linked
        session activities.

        Raises:
            IntegrityViolation: If a dropped activity is scheduled in a session.
            ValidationFailure: If an activity id does not belong to this criterion.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(
            payload, exclude=("categories", "activities"), nullable=("use_case",),
        )
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = DecisionCriterionRepository(mutation.session)
            current = await repo.get_composed(criterion_id)
            self._require_owned(current, "DecisionCriterion", criterion_id, engagement_id)
            await repo.update(criterion_id, **changes)
            if payload.categories is not None:
                await repo.replace_categories(criterion_id, payload.categories)

            mirrored: list[UpdateCriterionActivityStatus] = []
            if payload.activities is not None:
                kept_ids = [a.id for a in payload.activities if a.id is not None]
                foreign = set(kept_ids) - current.activity_ids
                if foreign or len(kept_ids) != len(set(kept_ids)):
                    raise ValidationFailure(
                        "Activity ids must belong to this decision criterion and appear once.",
                        {"activities": sorted(str(i) for i in foreign)},
                    )
                removed = current.activity_ids - set(kept_ids)
                if removed:
                    engagement = await self._read_aggregate(mutation.session, engagement_id)
                    self._ctx.guard.check_criterion_activities_removed(engagement, removed)
                previous = {a.id: a.status for a in current.activities}
                await repo.replace_activities(
                    criterion_id,
                    [ActivitySpec(a.activity, a.status, a.id) for a in payload.activities],
                )
                sessions = WorkingSessionRepository(mutation.session)
                for activity in payload.activities:
                    if activity.id is not None and previous[activity.id] != activity.status:
                        await sessions.set_linked_status(activity.id, activity.status)
                        mirrored.append(
                            UpdateCriterionActivityStatus(criterion_id, activity.id, activity.status)
                        )

            criterion = await self._composed(mutation, criterion_id)
            mutation.after_commit(UpdateItem(Collection.DECISION_CRITERIA, criterion))
            for action in mirrored:
                mutation.after_commit(action)
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CRITERIA,
                title="Decision Criteria Updated",
                description=f'"{criterion.title}" {status_verb(payload.status)}',
                reference_id=criterion.id,
            )
            await self._touch_summary(mutation, engagement_id)
        return criterion

    @notify(
        loading="Updating decision criteria status...",
        success=lambda c: f'Decision criteria "{c.title}" {status_verb(c.status)}',
        failure="Failed to update decision criteria status",
    )
    async def update_status(self, engagement_id: UUID | None, criterion_id: UUID,
                            status: CriterionStatus) -> DecisionCriterion:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = DecisionCriterionRepository(mutation.session)
            self._require_owned(
                await repo.get(criterion_id), "DecisionCriterion", criterion_id, engagement_id,
            )
            await repo.update(criterion_id, status=status)
            criterion = await self._composed(mutation, criterion_id)
            mutation.after_commit(UpdateItem(Collection.DECISION_CRITERIA, criterion))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CRITERIA,
                title="Decision Criteria Updated",
                description=f'"{criterion.title}" {status_verb(status)}',
                reference_id=criterion.id,
            )
            await self._touch_summary(mutation, engagement_id)
        return criterion

    @notify(
        loading="Updating activity status...",
        success="Activity status updated",
        failure="Failed to update activity status",
    )
    async def update_activity_status(self, engagement_id: UUID | None, criterion_id: UUID,
                                     activity_id: UUID, status: ActivityStatus) -> DecisionCriterion:
        """Set one criterion activity's status and mirror it into its session activity."""
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = DecisionCriterionRepository(mutation.session)
            self._require_owned(
                await repo.get(criterion_id), "DecisionCriterion", criterion_id, engagement_id,
            )
            activity = await repo.get_activity(activity_id)
            if activity is None or activity.criterion_id != criterion_id:
                raise NotFound("DecisionCriterionActivity", activity_id)
            text = activity.activity
            await repo.update_activity_status(activity_id, status)
            await WorkingSessionRepository(mutation.session).set_linked_status(activity_id, status)
            criterion = await self._composed(mutation, criterion_id)
            mutation.after_commit(UpdateCriterionActivityStatus(criterion_id, activity_id, status))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CRITERIA,
                title="Criteria Activity Updated",
                description=f'"{text}" {status_verb(status)}',
                reference_id=activity_id,
            )
        return criterion

    @notify(
        loading="Removing decision criteria...",
        success="Decision criteria removed",
        failure="Failed to remove decision criteria",
    )
    async def delete(self, engagement_id: UUID | None, criterion_id: UUID) -> None:
        """Delete a criterion unless one of its activities is scheduled.

        Raises:
            IntegrityViolation: If any session activity references one of its activities.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            engagement = await self._read_aggregate(mutation.session, engagement_id)
            criterion = next((c for c in engagement.decision_criteria if c.id == criterion_id), None)
            if criterion is None:
                raise NotFound("DecisionCriterion", criterion_id)
            self._ctx.guard.check_criterion_delete(engagement, criterion)
            await DecisionCriterionRepository(mutation.session).delete(criterion_id)
            mutation.after_commit(DeleteItem(Collection.DECISION_CRITERIA, criterion_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.CRITERIA,
                title="Decision Criteria Removed",
                description=f'"{criterion.title}" decision criteria removed',
                reference_id=criterion_id,
            )
            await self._touch_summary(mutation, engagement_id)

    @staticmethod
    async def _composed(mutation: Mutation, criterion_id: UUID) -> DecisionCriterion:
        criterion = await DecisionCriterionRepository(mutation.session).get_composed(criterion_id)
        if criterion is None:
            raise NotFound("DecisionCriterion", criterion_id)
        return criterion
