"""Working-session operations and session-activity reconciliation.

A session activity is identified by its criterion activity id when linked,
and by its own ``id`` when custom. Reconciliation compares the submitted
list against the stored one by that key, never by position:

- a linked activity whose status changed pushes the new status to its
  criterion activity (and so to the criterion in the store);
- the whole list is then rewritten with ``display_order`` = index;
- one SESSION log entry describes the first status change found. A pure
  reorder writes no entry.
"""

from uuid import UUID

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.core.unit_of_work import Mutation
from povsync.models.common import ActivityType, SessionStatus, new_uuid7, status_verb
from povsync.models.engagement import Engagement, SessionActivity, WorkingSession
from povsync.models.inputs import WorkingSessionCreate, WorkingSessionUpdate
from povsync.operations.base import OperationBase, notify
from povsync.repositories.criteria import DecisionCriterionRepository
from povsync.repositories.sessions import WorkingSessionRepository
from povsync.store.actions import (
    AddItem,
    Collection,
    DeleteItem,
    UpdateCriterionActivityStatus,
    UpdateItem,
)

ActivityKey = tuple[str, UUID]


def activity_key(activity: SessionActivity) -> ActivityKey | None:
    """Stable identity of a session activity; ``None`` for a new custom one."""
    if activity.decision_criterion_activity_id is not None:
        return ("linked", activity.decision_criterion_activity_id)
    if activity.id is not None:
        return ("custom", activity.id)
    return None


def status_changes(previous: list[SessionActivity],
                   incoming: list[SessionActivity]) -> list[SessionActivity]:
    """Incoming activities whose status differs from the stored one with the same key."""
    stored = {key: a for a in previous if (key := activity_key(a)) is not None}
    changed = []
    for activity in incoming:
        key = activity_key(activity)
        before = stored.get(key) if key is not None else None
        if before is not None and before.status != activity.status:
            changed.append(activity)
    return changed


class WorkingSessionOperations(OperationBase):

    def _validated_activities(self, engagement: Engagement, session_id: UUID | None,
                              activities: list[SessionActivity],
                              previous: list[SessionActivity]) -> list[SessionActivity]:
        """Check references and ids; newly linked activities adopt the criterion status."""
        linked_ids = [a.decision_criterion_activity_id for a in activities if a.is_linked]
        unknown = [i for i in linked_ids if engagement.criterion_activity(i) is None]
        if unknown:
            raise ValidationFailure(
                "Session activities reference unknown decision criteria activities.",
                {"session_activities": [str(i) for i in unknown]},
            )
        self._ctx.guard.check_single_schedule(
            engagement, session_id=session_id, criterion_activity_ids=linked_ids,
        )

        own_ids = [a.id for a in activities if a.id is not None]
        taken = {
            sa.id
            for s in engagement.working_sessions if s.id != session_id
            for sa in s.session_activities
        }
        clashing = set(own_ids) & taken
        if clashing or len(own_ids) != len(set(own_ids)):
            raise ValidationFailure(
                "Session activity ids must be unique within the engagement.",
                {"session_activities": sorted(str(i) for i in clashing)},
            )

        already_linked = {a.decision_criterion_activity_id for a in previous if a.is_linked}
        result = []
        for activity in activities:
            dca_id = activity.decision_criterion_activity_id
            if dca_id is not None and dca_id not in already_linked:
                activity = activity.model_copy(
                    update={"status": engagement.criterion_activity(dca_id).status},
                )
            result.append(activity)
        return result

    @notify(
        loading="Scheduling working session...",
        success=lambda s: f'Working session "{s.title}" scheduled',
        failure="Failed to schedule working session",
    )
    async def add(self, payload: WorkingSessionCreate) -> WorkingSession:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            engagement = await self._read_aggregate(mutation.session, engagement_id)
            activities = self._validated_activities(
                engagement, None, payload.session_activities, [],
            )
            repo = WorkingSessionRepository(mutation.session)
            session_id = new_uuid7()
            await repo.create(
                session_id=session_id,
                engagement_id=engagement_id,
                title=payload.title,
                status=payload.status,
                session_date=payload.session_date,
                duration=payload.duration,
                notes=payload.notes,
                created_by=actor.id,
            )
            await repo.replace_activities(
                session_id=session_id, engagement_id=engagement_id, activities=activities,
            )
            working_session = await self._composed(mutation, session_id)
            mutation.after_commit(AddItem(Collection.WORKING_SESSIONS, working_session))
            when = f" for {payload.session_date.isoformat()}" if payload.session_date else ""
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.SESSION,
                title="Working Session Scheduled",
                description=f'"{working_session.title}" scheduled{when}',
                reference_id=working_session.id,
            )
            await self._touch_summary(mutation, engagement_id)
        return working_session

    @notify(
        loading="Updating working session...",
        success=lambda s: f'Working session "{s.title}" updated',
        failure="Failed to update working session",
    )
    async def update(self, session_id: UUID, payload: WorkingSessionUpdate) -> WorkingSession:
        """Update scalar fields and, when supplied, reconcile the activity list.

        Raises:
            IntegrityViolation: If a criterion activity would be scheduled twice.
            ValidationFailure: If a linked id is unknown or an activity id clashes.
        """
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(payload.engagement_id)
        changes = self._changes(
            payload, exclude=("session_activities",), nullable=("session_date", "notes"),
        )
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            engagement = await self._read_aggregate(mutation.session, engagement_id)
            current = next((s for s in engagement.working_sessions if s.id == session_id), None)
            if current is None:
                raise NotFound("WorkingSession", session_id)
            repo = WorkingSessionRepository(mutation.session)
            edited = {k: v for k, v in changes.items() if getattr(current, k) != v}
            await repo.update(session_id, **changes)

            changed: list[SessionActivity] = []
            if payload.session_activities is not None:
                activities = self._validated_activities(
                    engagement, session_id, payload.session_activities, current.session_activities,
                )
                changed = status_changes(current.session_activities, activities)
                await self._propagate(mutation, engagement, changed)
                await repo.replace_activities(
                    session_id=session_id, engagement_id=engagement_id, activities=activities,
                )

            working_session = await self._composed(mutation, session_id)
            mutation.after_commit(UpdateItem(Collection.WORKING_SESSIONS, working_session))
            if changed:
                first = changed[0]
                await self._log.append(
                    mutation,
                    engagement_id=engagement_id,
                    type=ActivityType.SESSION,
                    title="Session Activity Updated",
                    description=(
                        f'"{engagement.session_activity_text(first)}" '
                        f'{status_verb(first.status)} in "{working_session.title}"'
                    ),
                    reference_id=working_session.id,
                )
            elif edited:
                await self._log.append(
                    mutation,
                    engagement_id=engagement_id,
                    type=ActivityType.SESSION,
                    title="Working Session Updated",
                    description=f'"{working_session.title}" {status_verb(edited.get("status"))}',
                    reference_id=working_session.id,
                )
            await self._touch_summary(mutation, engagement_id)
        return working_session

    async def _propagate(self, mutation: Mutation, engagement: Engagement,
                         changed: list[SessionActivity]) -> None:
        """Push linked status changes to their criterion activities."""
        criteria = DecisionCriterionRepository(mutation.session)
        for activity in changed:
            dca_id = activity.decision_criterion_activity_id
            if dca_id is None:
                continue
            await criteria.update_activity_status(dca_id, activity.status)
            criterion_id = engagement.criterion_activity(dca_id).criterion_id
            mutation.after_commit(
                UpdateCriterionActivityStatus(criterion_id, dca_id, activity.status)
            )

    @notify(
        loading="Updating working session status...",
        success=lambda s: f'Working session "{s.title}" {status_verb(s.status)}',
        failure="Failed to update working session status",
    )
    async def update_status(self, engagement_id: UUID | None, session_id: UUID,
                            status: SessionStatus) -> WorkingSession:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = WorkingSessionRepository(mutation.session)
            self._require_owned(await repo.get(session_id), "WorkingSession", session_id, engagement_id)
            await repo.update(session_id, status=status)
            working_session = await self._composed(mutation, session_id)
            mutation.after_commit(UpdateItem(Collection.WORKING_SESSIONS, working_session))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.SESSION,
                title="Working Session Updated",
                description=f'"{working_session.title}" {status_verb(status)}',
                reference_id=working_session.id,
            )
            await self._touch_summary(mutation, engagement_id)
        return working_session

    @notify(
        loading="Removing working session...",
        success="Working session removed",
        failure="Failed to remove working session",
    )
    async def delete(self, engagement_id: UUID | None, session_id: UUID) -> None:
        actor = await self._ctx.resolve_actor()
        engagement_id = self._require_engagement_id(engagement_id)
        async with self._ctx.mutation(engagement_id, actor) as mutation:
            repo = WorkingSessionRepository(mutation.session)
            row = await repo.get(session_id)
            self._require_owned(row, "WorkingSession", session_id, engagement_id)
            title = row.title
            await repo.delete(session_id)
            mutation.after_commit(DeleteItem(Collection.WORKING_SESSIONS, session_id))
            await self._log.append(
                mutation,
                engagement_id=engagement_id,
                type=ActivityType.SESSION,
                title="Working Session Removed",
                description=f'"{title}" working session removed',
                reference_id=session_id,
            )
            await self._touch_summary(mutation, engagement_id)

    @staticmethod
    async def _composed(mutation: Mutation, session_id: UUID) -> WorkingSession:
        working_session = await WorkingSessionRepository(mutation.session).get_composed(session_id)
        if working_session is None:
            raise NotFound("WorkingSession", session_id)
        return working_session
