"""Pure state transitions of the aggregate store.

``apply(state, action)`` never performs I/O and never raises for a
well-typed action. Item actions that target an engagement other than the
loaded one, or arrive while nothing is loaded, leave the state unchanged.
"""

from dataclasses import dataclass, field, replace
from typing import assert_never
from uuid import UUID

from povsync.models.engagement import Engagement, EngagementSummary
from povsync.store.actions import (
    Action,
    AddItem,
    Collection,
    CollectionItem,
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
)

# Nested collections that a partial update must not wipe when it omits them.
NESTED_FIELDS: dict[Collection, tuple[str, ...]] = {
    Collection.CHALLENGES: ("categories", "outcomes"),
    Collection.DECISION_CRITERIA: ("categories", "activities"),
    Collection.WORKING_SESSIONS: ("session_activities",),
}

# Collections where new items go to the front (newest first).
PREPEND_COLLECTIONS = frozenset({Collection.ACTIVITY_LOG})


@dataclass(frozen=True)
class AggregateState:
    """Read model consumed by every view."""

    engagement: Engagement | None = None
    engagements: tuple[EngagementSummary, ...] = field(default_factory=tuple)
    loading: bool = False
    error: str | None = None


def _owned_by_loaded(state: AggregateState, item: CollectionItem) -> bool:
    return state.engagement is not None and item.engagement_id == state.engagement.id


def _with_collection(state: AggregateState, collection: Collection, items: list) -> AggregateState:
    assert state.engagement is not None
    engagement = state.engagement.model_copy(update={collection.value: items})
    return replace(state, engagement=engagement)


def _merge_partial(collection: Collection, current: CollectionItem,
                   incoming: CollectionItem) -> CollectionItem:
    kept = {
        name: getattr(current, name)
        for name in NESTED_FIELDS.get(collection, ())
        if name not in incoming.model_fields_set
    }
    return incoming.model_copy(update=kept) if kept else incoming


def _add_item(state: AggregateState, action: AddItem) -> AggregateState:
    if not _owned_by_loaded(state, action.item):
        return state
    items = list(getattr(state.engagement, action.collection.value))
    if any(existing.id == action.item.id for existing in items):
        return _update_item(state, UpdateItem(action.collection, action.item))
    if action.collection in PREPEND_COLLECTIONS:
        items.insert(0, action.item)
    else:
        items.append(action.item)
    return _with_collection(state, action.collection, items)


def _update_item(state: AggregateState, action: UpdateItem) -> AggregateState:
    if not _owned_by_loaded(state, action.item):
        return state
    items = [
        _merge_partial(action.collection, existing, action.item)
        if existing.id == action.item.id else existing
        for existing in getattr(state.engagement, action.collection.value)
    ]
    return _with_collection(state, action.collection, items)


def _delete_item(state: AggregateState, action: DeleteItem) -> AggregateState:
    if state.engagement is None:
        return state
    items = [
        existing for existing in getattr(state.engagement, action.collection.value)
        if existing.id != action.item_id
    ]
    return _with_collection(state, action.collection, items)


def _set_collection(state: AggregateState, action: SetCollection) -> AggregateState:
    if state.engagement is None:
        return state
    items = [item for item in action.items if item.engagement_id == state.engagement.id]
    return _with_collection(state, action.collection, items)


def _replace_engagement(state: AggregateState, action: ReplaceEngagement) -> AggregateState:
    incoming = action.engagement
    if state.engagement is None or state.engagement.id != incoming.id:
        return state
    collections = {c.value: getattr(state.engagement, c.value) for c in Collection}
    return replace(state, engagement=incoming.model_copy(update=collections))


def _update_criterion_activity_status(
    state: AggregateState, action: UpdateCriterionActivityStatus,
) -> AggregateState:
    if state.engagement is None:
        return state
    criteria = []
    for criterion in state.engagement.decision_criteria:
        if criterion.id == action.criterion_id:
            activities = [
                a.model_copy(update={"status": action.status}) if a.id == action.activity_id else a
                for a in criterion.activities
            ]
            criterion = criterion.model_copy(update={"activities": activities})
        criteria.append(criterion)
    sessions = []
    for session in state.engagement.working_sessions:
        if any(sa.decision_criterion_activity_id == action.activity_id
               for sa in session.session_activities):
            activities = [
                sa.model_copy(update={"status": action.status})
                if sa.decision_criterion_activity_id == action.activity_id else sa
                for sa in session.session_activities
            ]
            session = session.model_copy(update={"session_activities": activities})
        sessions.append(session)
    engagement = state.engagement.model_copy(update={
        "decision_criteria": criteria,
        "working_sessions": sessions,
    })
    return replace(state, engagement=engagement)


def _upsert_summary(
    summaries: tuple[EngagementSummary, ...], summary: EngagementSummary,
) -> tuple[EngagementSummary, ...]:
    if any(s.id == summary.id for s in summaries):
        return tuple(summary if s.id == summary.id else s for s in summaries)
    return (summary, *summaries)


def _remove_summary(
    summaries: tuple[EngagementSummary, ...], engagement_id: UUID,
) -> tuple[EngagementSummary, ...]:
    return tuple(s for s in summaries if s.id != engagement_id)


def apply(state: AggregateState, action: Action) -> AggregateState:
    """Return the state that results from applying ``action`` to ``state``."""
    match action:
        case LoadEngagement(engagement=engagement):
            return replace(state, engagement=engagement, error=None)
        case ReplaceEngagement():
            return _replace_engagement(state, action)
        case UnloadEngagement(engagement_id=engagement_id):
            if state.engagement is not None and state.engagement.id == engagement_id:
                return replace(state, engagement=None)
            return state
        case SetEngagements(summaries=summaries):
            return replace(state, engagements=tuple(summaries))
        case UpsertEngagementSummary(summary=summary):
            return replace(state, engagements=_upsert_summary(state.engagements, summary))
        case RemoveEngagementSummary(engagement_id=engagement_id):
            return replace(state, engagements=_remove_summary(state.engagements, engagement_id))
        case SetCollection():
            return _set_collection(state, action)
        case AddItem():
            return _add_item(state, action)
        case UpdateItem():
            return _update_item(state, action)
        case DeleteItem():
            return _delete_item(state, action)
        case UpdateCriterionActivityStatus():
            return _update_criterion_activity_status(state, action)
        case SetLoading(loading=loading):
            return replace(state, loading=loading)
        case SetError(error=error):
            return replace(state, error=error)
        case _:
            assert_never(action)
