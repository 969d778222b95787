"""Tests for challenge operations and the challenge library."""

import pytest
from uuid_extensions import uuid7

from povsync.core.exceptions import NotFound, ValidationFailure
from povsync.models.common import ActivityType, ChallengeStatus
from povsync.models.inputs import ChallengeCreate, ChallengeUpdate


class TestAdd:

    @pytest.mark.anyio
    async def test_outcomes_and_category_survive_refetch(self, sync, engagement) -> None:
        await sync.challenges.add(ChallengeCreate(
            engagement_id=engagement.id, title="Slow triage",
            outcomes=["Cut triage time", "Fewer escalations"], categories=["SOC"],
        ))
        refetched = await sync.engagements.load(engagement.id, force=True)
        [challenge] = refetched.challenges
        assert [o.order_index for o in challenge.outcomes] == [0, 1]
        assert [o.outcome for o in challenge.outcomes] == ["Cut triage time", "Fewer escalations"]
        assert challenge.category_names == {"SOC"}

    @pytest.mark.anyio
    async def test_exactly_one_log_entry(self, sync, store, engagement) -> None:
        before = len(store.engagement.activity_log)
        challenge = await sync.challenges.add(
            ChallengeCreate(engagement_id=engagement.id, title="Slow triage"),
        )
        log = store.engagement.activity_log
        assert len(log) == before + 1
        assert log[0].type == ActivityType.CHALLENGE
        assert log[0].reference_id == challenge.id
        assert log[0].description == '"Slow triage" challenge created'
        assert store.engagement.challenges == [challenge]

    @pytest.mark.anyio
    async def test_missing_engagement_id(self, sync, notifier) -> None:
        with pytest.raises(ValidationFailure):
            await sync.challenges.add(ChallengeCreate(title="Orphan"))
        assert notifier.events[-1] == ("failed", "engagement_id is required")

    @pytest.mark.anyio
    async def test_unknown_engagement(self, sync) -> None:
        with pytest.raises(NotFound):
            await sync.challenges.add(ChallengeCreate(engagement_id=uuid7(), title="Orphan"))

    @pytest.mark.anyio
    async def test_save_to_library_and_copy_back(self, sync, engagement) -> None:
        original = await sync.challenges.add(ChallengeCreate(
            engagement_id=engagement.id, title="Alert fatigue",
            outcomes=["Fewer alerts"], categories=["SOC"], save_to_library=True,
        ))
        [template] = await sync.challenges.list_templates()
        assert template.title == "Alert fatigue"
        assert original.template_id == template.id

        copy = await sync.challenges.add_from_template(engagement.id, template.id)
        assert copy.id != original.id
        assert copy.template_id == template.id
        assert [o.outcome for o in copy.outcomes] == ["Fewer alerts"]
        assert copy.status == ChallengeStatus.OPEN

    @pytest.mark.anyio
    async def test_unknown_template(self, sync, engagement) -> None:
        with pytest.raises(NotFound):
            await sync.challenges.add_from_template(engagement.id, uuid7())


class TestUpdateAndDelete:

    @pytest.mark.anyio
    async def test_partial_update_keeps_children(self, sync, store, engagement) -> None:
        challenge = await sync.challenges.add(ChallengeCreate(
            engagement_id=engagement.id, title="Slow triage",
            outcomes=["A", "B"], categories=["SOC"],
        ))
        updated = await sync.challenges.update(challenge.id, ChallengeUpdate(
            engagement_id=engagement.id, title="Slow triage (EMEA)",
        ))
        assert updated.title == "Slow triage (EMEA)"
        assert [o.outcome for o in updated.outcomes] == ["A", "B"]
        assert store.engagement.challenges[0].category_names == {"SOC"}
        assert store.engagement.activity_log[0].description == '"Slow triage (EMEA)" updated'

    @pytest.mark.anyio
    async def test_supplied_outcomes_replace(self, sync, engagement) -> None:
        challenge = await sync.challenges.add(ChallengeCreate(
            engagement_id=engagement.id, title="T", outcomes=["A", "B"], categories=["SOC"],
        ))
        updated = await sync.challenges.update(challenge.id, ChallengeUpdate(
            engagement_id=engagement.id, outcomes=["C"],
        ))
        assert [o.outcome for o in updated.outcomes] == ["C"]
        assert updated.category_names == {"SOC"}

    @pytest.mark.anyio
    async def test_status_verb(self, sync, store, engagement) -> None:
        challenge = await sync.challenges.add(
            ChallengeCreate(engagement_id=engagement.id, title="Slow triage"),
        )
        await sync.challenges.update_status(engagement.id, challenge.id, ChallengeStatus.COMPLETED)
        entry = store.engagement.activity_log[0]
        assert entry.title == "Challenge Updated"
        assert entry.description == '"Slow triage" marked as complete'
        assert store.engagement.challenges[0].status == ChallengeStatus.COMPLETED

    @pytest.mark.anyio
    async def test_update_in_other_engagement_is_not_found(self, sync, engagement) -> None:
        challenge = await sync.challenges.add(
            ChallengeCreate(engagement_id=engagement.id, title="T"),
        )
        with pytest.raises(NotFound):
            await sync.challenges.update(challenge.id, ChallengeUpdate(engagement_id=uuid7()))

    @pytest.mark.anyio
    async def test_delete_is_logged(self, sync, store, engagement) -> None:
        challenge = await sync.challenges.add(ChallengeCreate(
            engagement_id=engagement.id, title="Slow triage", outcomes=["A"],
        ))
        await sync.challenges.delete(engagement.id, challenge.id)
        assert store.engagement.challenges == []
        entry = store.engagement.activity_log[0]
        assert entry.title == "Challenge Removed"
        assert entry.reference_id == challenge.id
        refetched = await sync.engagements.load(engagement.id, force=True)
        assert refetched.challenges == []
