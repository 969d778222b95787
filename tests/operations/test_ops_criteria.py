"""Tests for decision-criterion operations and their integrity rules."""

import pytest
from uuid_extensions import uuid7

from povsync.core.exceptions import IntegrityViolation, NotFound, ValidationFailure
from povsync.models.common import ActivityStatus, ActivityType, CriterionStatus
from povsync.models.engagement import SessionActivity
from povsync.models.inputs import (
    CriterionActivityInput,
    DecisionCriterionCreate,
    DecisionCriterionUpdate,
    WorkingSessionCreate,
)


async def _criterion(sync, engagement, *activities: str):
    return await sync.criteria.add(DecisionCriterionCreate(
        engagement_id=engagement.id, title="Endpoint coverage", categories=["EDR"],
        activities=[CriterionActivityInput(activity=a) for a in activities],
    ))


async def _schedule(sync, engagement, activity_id, title: str = "Kickoff"):
    return await sync.sessions.add(WorkingSessionCreate(
        engagement_id=engagement.id, title=title,
        session_activities=[SessionActivity(decision_criterion_activity_id=activity_id)],
    ))


class TestAdd:

    @pytest.mark.anyio
    async def test_add_with_activities(self, sync, store, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent", "Run attack sim")
        assert [a.activity for a in criterion.activities] == ["Deploy agent", "Run attack sim"]
        assert [a.order_index for a in criterion.activities] == [0, 1]
        entry = store.engagement.activity_log[0]
        assert entry.type == ActivityType.CRITERIA
        assert entry.reference_id == criterion.id
        assert store.engagement.decision_criteria == [criterion]


class TestDelete:

    @pytest.mark.anyio
    async def test_blocked_while_scheduled(self, sync, store, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent")
        session = await _schedule(sync, engagement, criterion.activities[0].id)

        with pytest.raises(IntegrityViolation) as excinfo:
            await sync.criteria.delete(engagement.id, criterion.id)
        assert excinfo.value.dependents == [session.id]

        refetched = await sync.engagements.load(engagement.id, force=True)
        assert [c.id for c in refetched.decision_criteria] == [criterion.id]
        assert refetched.working_sessions[0].session_activities[0].decision_criterion_activity_id == (
            criterion.activities[0].id
        )

    @pytest.mark.anyio
    async def test_allowed_once_unscheduled(self, sync, store, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent")
        session = await _schedule(sync, engagement, criterion.activities[0].id)
        await sync.sessions.delete(engagement.id, session.id)

        await sync.criteria.delete(engagement.id, criterion.id)
        assert store.engagement.decision_criteria == []
        assert store.engagement.activity_log[0].title == "Decision Criteria Removed"

    @pytest.mark.anyio
    async def test_missing(self, sync, engagement) -> None:
        with pytest.raises(NotFound):
            await sync.criteria.delete(engagement.id, uuid7())


class TestUpdate:

    @pytest.mark.anyio
    async def test_activity_ids_are_preserved(self, sync, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent", "Run attack sim")
        deploy, attack = criterion.activities
        updated = await sync.criteria.update(criterion.id, DecisionCriterionUpdate(
            engagement_id=engagement.id,
            activities=[
                CriterionActivityInput(id=attack.id, activity="Run attack simulation"),
                CriterionActivityInput(id=deploy.id, activity=deploy.activity),
                CriterionActivityInput(activity="Write report"),
            ],
        ))
        assert [a.id for a in updated.activities[:2]] == [attack.id, deploy.id]
        assert updated.activities[0].activity == "Run attack simulation"
        assert [c.category for c in updated.categories] == ["EDR"]

    @pytest.mark.anyio
    async def test_dropping_scheduled_activity_is_blocked(self, sync, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent", "Run attack sim")
        deploy, attack = criterion.activities
        await _schedule(sync, engagement, deploy.id)
        with pytest.raises(IntegrityViolation):
            await sync.criteria.update(criterion.id, DecisionCriterionUpdate(
                engagement_id=engagement.id,
                activities=[CriterionActivityInput(id=attack.id, activity=attack.activity)],
            ))
        refetched = await sync.engagements.load(engagement.id, force=True)
        assert len(refetched.decision_criteria[0].activities) == 2

    @pytest.mark.anyio
    async def test_foreign_activity_id_rejected(self, sync, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent")
        with pytest.raises(ValidationFailure):
            await sync.criteria.update(criterion.id, DecisionCriterionUpdate(
                engagement_id=engagement.id,
                activities=[CriterionActivityInput(id=uuid7(), activity="Stolen")],
            ))

    @pytest.mark.anyio
    async def test_status_update(self, sync, store, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent")
        await sync.criteria.update_status(engagement.id, criterion.id, CriterionStatus.MET)
        assert store.engagement.decision_criteria[0].status == CriterionStatus.MET
        assert store.engagement.activity_log[0].description == '"Endpoint coverage" marked as complete'


class TestActivityStatus:

    @pytest.mark.anyio
    async def test_mirrors_into_linked_session_activity(self, sync, store, engagement) -> None:
        criterion = await _criterion(sync, engagement, "Deploy agent")
        activity = criterion.activities[0]
        await _schedule(sync, engagement, activity.id)

        await sync.criteria.update_activity_status(
            engagement.id, criterion.id, activity.id, ActivityStatus.IN_PROGRESS,
        )

        cached = store.engagement
        assert cached.decision_criteria[0].activities[0].status == ActivityStatus.IN_PROGRESS
        assert cached.working_sessions[0].session_activities[0].status == ActivityStatus.IN_PROGRESS
        assert cached.activity_log[0].title == "Criteria Activity Updated"
        assert cached.activity_log[0].description == '"Deploy agent" marked as in progress'

        refetched = await sync.engagements.load(engagement.id, force=True)
        assert refetched.decision_criteria[0].activities[0].status == ActivityStatus.IN_PROGRESS
        assert refetched.working_sessions[0].session_activities[0].status == ActivityStatus.IN_PROGRESS

    @pytest.mark.anyio
    async def test_activity_of_other_criterion(self, sync, engagement) -> None:
        first = await _criterion(sync, engagement, "Deploy agent")
        second = await _criterion(sync, engagement, "Other")
        with pytest.raises(NotFound):
            await sync.criteria.update_activity_status(
                engagement.id, first.id, second.activities[0].id, ActivityStatus.COMPLETED,
            )
