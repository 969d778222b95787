"""Tests for the pure aggregate-store reducer."""

from uuid_extensions import uuid7

from povsync.models.common import ActivityStatus, ActivityType, ChallengeStatus
from povsync.models.engagement import (
    ActivityLogEntry,
    Challenge,
    ChallengeCategory,
    ChallengeOutcome,
    DecisionCriterion,
    DecisionCriterionActivity,
    Engagement,
    EngagementSummary,
    SessionActivity,
    WorkingSession,
)
from povsync.store import (
    AddItem,
    AggregateState,
    Collection,
    DeleteItem,
    LoadEngagement,
    RemoveEngagementSummary,
    ReplaceEngagement,
    SetCollection,
    SetEngagements,
    SetError,
    SetLoading,
    UnloadEngagement,
    UpdateCriterionActivityStatus,
    UpdateItem,
    UpsertEngagementSummary,
    apply,
)


def _engagement(**kwargs) -> Engagement:
    return Engagement(title="Acme POV", customer_name="Acme Corp", **kwargs)


def _challenge(engagement_id, **kwargs) -> Challenge:
    cid = kwargs.pop("id", uuid7())
    return Challenge(
        id=cid,
        engagement_id=engagement_id,
        title=kwargs.pop("title", "Slow onboarding"),
        categories=[ChallengeCategory(challenge_id=cid, category="Ops")],
        outcomes=[ChallengeOutcome(challenge_id=cid, outcome="Faster", order_index=0)],
        **kwargs,
    )


def _entry(engagement_id, title: str) -> ActivityLogEntry:
    return ActivityLogEntry(
        engagement_id=engagement_id, type=ActivityType.CHALLENGE, title=title,
        created_by=uuid7(), created_by_email="a@example.com",
    )


def _loaded(**kwargs) -> AggregateState:
    return apply(AggregateState(), LoadEngagement(_engagement(**kwargs)))


class TestLoadAndReplace:

    def test_load_normalizes_missing_collections(self) -> None:
        engagement = Engagement.model_validate({
            "title": "Acme POV", "customer_name": "Acme Corp",
            "challenges": None, "comments": None,
        })
        state = apply(AggregateState(), LoadEngagement(engagement))
        assert state.engagement.challenges == []
        assert state.engagement.comments == []

    def test_load_clears_error(self) -> None:
        state = apply(AggregateState(error="boom"), LoadEngagement(_engagement()))
        assert state.error is None

    def test_replace_keeps_collections(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        state = apply(state, AddItem(Collection.CHALLENGES, _challenge(eid)))
        renamed = state.engagement.model_copy(update={"title": "Renamed", "challenges": []})
        state = apply(state, ReplaceEngagement(renamed))
        assert state.engagement.title == "Renamed"
        assert len(state.engagement.challenges) == 1

    def test_replace_of_other_engagement_is_ignored(self) -> None:
        state = _loaded()
        other = _engagement()
        assert apply(state, ReplaceEngagement(other)) == state

    def test_unload_only_matching(self) -> None:
        state = _loaded()
        assert apply(state, UnloadEngagement(uuid7())).engagement is not None
        assert apply(state, UnloadEngagement(state.engagement.id)).engagement is None


class TestItemActions:

    def test_add_appends(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        first, second = _challenge(eid, title="A"), _challenge(eid, title="B")
        state = apply(state, AddItem(Collection.CHALLENGES, first))
        state = apply(state, AddItem(Collection.CHALLENGES, second))
        assert [c.title for c in state.engagement.challenges] == ["A", "B"]

    def test_activity_log_prepends(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        state = apply(state, AddItem(Collection.ACTIVITY_LOG, _entry(eid, "old")))
        state = apply(state, AddItem(Collection.ACTIVITY_LOG, _entry(eid, "new")))
        assert [e.title for e in state.engagement.activity_log] == ["new", "old"]

    def test_add_for_other_engagement_is_noop(self) -> None:
        state = _loaded()
        assert apply(state, AddItem(Collection.CHALLENGES, _challenge(uuid7()))) == state

    def test_add_without_loaded_engagement_is_noop(self) -> None:
        state = AggregateState()
        assert apply(state, AddItem(Collection.CHALLENGES, _challenge(uuid7()))) == state

    def test_update_replaces_only_matching_sibling(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        a, b = _challenge(eid, title="A"), _challenge(eid, title="B")
        state = apply(state, AddItem(Collection.CHALLENGES, a))
        state = apply(state, AddItem(Collection.CHALLENGES, b))
        changed = a.model_copy(update={"status": ChallengeStatus.COMPLETED})
        state = apply(state, UpdateItem(Collection.CHALLENGES, changed))
        assert state.engagement.challenges[0].status == ChallengeStatus.COMPLETED
        assert state.engagement.challenges[1] == b

    def test_partial_update_keeps_nested_collections(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        original = _challenge(eid)
        state = apply(state, AddItem(Collection.CHALLENGES, original))
        partial = Challenge(
            id=original.id, engagement_id=eid, title="Renamed",
            status=ChallengeStatus.IN_PROGRESS,
        )
        state = apply(state, UpdateItem(Collection.CHALLENGES, partial))
        updated = state.engagement.challenges[0]
        assert updated.title == "Renamed"
        assert updated.category_names == {"Ops"}
        assert [o.outcome for o in updated.outcomes] == ["Faster"]

    def test_supplied_nested_collection_replaces(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        original = _challenge(eid)
        state = apply(state, AddItem(Collection.CHALLENGES, original))
        incoming = Challenge(id=original.id, engagement_id=eid, title="T", categories=[])
        state = apply(state, UpdateItem(Collection.CHALLENGES, incoming))
        assert state.engagement.challenges[0].categories == []
        assert len(state.engagement.challenges[0].outcomes) == 1

    def test_delete_filters_by_id(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        a, b = _challenge(eid), _challenge(eid)
        state = apply(state, AddItem(Collection.CHALLENGES, a))
        state = apply(state, AddItem(Collection.CHALLENGES, b))
        state = apply(state, DeleteItem(Collection.CHALLENGES, a.id))
        assert [c.id for c in state.engagement.challenges] == [b.id]

    def test_set_collection_drops_foreign_items(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        mine = _challenge(eid)
        state = apply(state, SetCollection(Collection.CHALLENGES, (mine, _challenge(uuid7()))))
        assert state.engagement.challenges == [mine]


class TestCriterionActivityStatus:

    def test_updates_criterion_and_linked_session_activity(self) -> None:
        state = _loaded()
        eid = state.engagement.id
        criterion_id = uuid7()
        activity = DecisionCriterionActivity(criterion_id=criterion_id, activity="Deploy agent")
        criterion = DecisionCriterion(
            id=criterion_id, engagement_id=eid, title="Coverage", activities=[activity],
        )
        session = WorkingSession(
            engagement_id=eid, title="Kickoff",
            session_activities=[
                SessionActivity(id=uuid7(), decision_criterion_activity_id=activity.id),
                SessionActivity(id=uuid7(), activity="Coffee"),
            ],
        )
        state = apply(state, AddItem(Collection.DECISION_CRITERIA, criterion))
        state = apply(state, AddItem(Collection.WORKING_SESSIONS, session))

        state = apply(state, UpdateCriterionActivityStatus(
            criterion_id, activity.id, ActivityStatus.COMPLETED,
        ))

        assert state.engagement.decision_criteria[0].activities[0].status == ActivityStatus.COMPLETED
        linked, custom = state.engagement.working_sessions[0].session_activities
        assert linked.status == ActivityStatus.COMPLETED
        assert custom.status == ActivityStatus.PENDING


class TestSummariesAndFlags:

    def _summary(self, **kwargs) -> EngagementSummary:
        return EngagementSummary(
            id=kwargs.pop("id", uuid7()), title="Acme POV", customer_name="Acme Corp",
            status="DRAFT", **kwargs,
        )

    def test_set_upsert_remove(self) -> None:
        a, b = self._summary(), self._summary()
        state = apply(AggregateState(), SetEngagements((a,)))
        state = apply(state, UpsertEngagementSummary(b))
        assert [s.id for s in state.engagements] == [b.id, a.id]
        renamed = a.model_copy(update={"title": "Renamed"})
        state = apply(state, UpsertEngagementSummary(renamed))
        assert state.engagements[1].title == "Renamed"
        state = apply(state, RemoveEngagementSummary(b.id))
        assert [s.id for s in state.engagements] == [a.id]

    def test_loading_and_error(self) -> None:
        state = apply(AggregateState(), SetLoading(True))
        state = apply(state, SetError("boom"))
        assert state.loading is True
        assert state.error == "boom"
