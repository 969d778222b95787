"""Closed action vocabulary of the aggregate store.

``Action`` is a tagged union of frozen dataclasses. ``apply`` matches it
exhaustively, so an action type without a handler is a type error rather
than a silently ignored dispatch.
"""

from dataclasses import dataclass
from enum import StrEnum
from uuid import UUID

from povsync.models.common import ActivityStatus
from povsync.models.engagement import (
    ActivityLogEntry,
    Challenge,
    Comment,
    DecisionCriterion,
    DeviceScope,
    Document,
    Engagement,
    EngagementSummary,
    KeyBusinessService,
    TeamMemberAssociation,
    WorkingSession,
)


class Collection(StrEnum):
    """Owned collections of the engagement; values are Engagement field names."""

    CHALLENGES = "challenges"
    DECISION_CRITERIA = "decision_criteria"
    TEAM_MEMBERS = "team_members"
    DEVICE_SCOPES = "device_scopes"
    WORKING_SESSIONS = "working_sessions"
    COMMENTS = "comments"
    DOCUMENTS = "documents"
    ACTIVITY_LOG = "activity_log"
    BUSINESS_SERVICES = "business_services"


CollectionItem = (
    Challenge
    | DecisionCriterion
    | TeamMemberAssociation
    | DeviceScope
    | WorkingSession
    | Comment
    | Document
    | ActivityLogEntry
    | KeyBusinessService
)

ITEM_TYPES: dict[Collection, type] = {
    Collection.CHALLENGES: Challenge,
    Collection.DECISION_CRITERIA: DecisionCriterion,
    Collection.TEAM_MEMBERS: TeamMemberAssociation,
    Collection.DEVICE_SCOPES: DeviceScope,
    Collection.WORKING_SESSIONS: WorkingSession,
    Collection.COMMENTS: Comment,
    Collection.DOCUMENTS: Document,
    Collection.ACTIVITY_LOG: ActivityLogEntry,
    Collection.BUSINESS_SERVICES: KeyBusinessService,
}


@dataclass(frozen=True)
class LoadEngagement:
    """Replace the loaded aggregate with a freshly read one."""

    engagement: Engagement


@dataclass(frozen=True)
class ReplaceEngagement:
    """Replace the loaded root's scalar fields, keeping its collections."""

    engagement: Engagement


@dataclass(frozen=True)
class UnloadEngagement:
    """Drop the loaded aggregate if it is the one with ``engagement_id``."""

    engagement_id: UUID


@dataclass(frozen=True)
class SetEngagements:
    summaries: tuple[EngagementSummary, ...]


@dataclass(frozen=True)
class UpsertEngagementSummary:
    summary: EngagementSummary


@dataclass(frozen=True)
class RemoveEngagementSummary:
    engagement_id: UUID


@dataclass(frozen=True)
class SetCollection:
    collection: Collection
    items: tuple[CollectionItem, ...]


@dataclass(frozen=True)
class AddItem:
    collection: Collection
    item: CollectionItem


@dataclass(frozen=True)
class UpdateItem:
    collection: Collection
    item: CollectionItem


@dataclass(frozen=True)
class DeleteItem:
    collection: Collection
    item_id: UUID


@dataclass(frozen=True)
class UpdateCriterionActivityStatus:
    """Set a criterion activity's status and mirror it into linked session activities."""

    criterion_id: UUID
    activity_id: UUID
    status: ActivityStatus


@dataclass(frozen=True)
class SetLoading:
    loading: bool


@dataclass(frozen=True)
class SetError:
    error: str | None


Action = (
    LoadEngagement
    | ReplaceEngagement
    | UnloadEngagement
    | SetEngagements
    | UpsertEngagementSummary
    | RemoveEngagementSummary
    | SetCollection
    | AddItem
    | UpdateItem
    | DeleteItem
    | UpdateCriterionActivityStatus
    | SetLoading
    | SetError
)
