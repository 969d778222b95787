"""Aggregate store: action vocabulary, pure reducer, and the store holder."""

from povsync.store.actions import (
    Action,
    AddItem,
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
)
from povsync.store.reducer import AggregateState, apply
from povsync.store.store import AggregateStore

__all__ = [
    "Action",
    "AddItem",
    "AggregateState",
    "AggregateStore",
    "Collection",
    "DeleteItem",
    "LoadEngagement",
    "RemoveEngagementSummary",
    "ReplaceEngagement",
    "SetCollection",
    "SetEngagements",
    "SetError",
    "SetLoading",
    "UnloadEngagement",
    "UpdateCriterionActivityStatus",
    "UpdateItem",
    "UpsertEngagementSummary",
    "apply",
]
