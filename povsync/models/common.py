"""Shared types, enums, and base models used across povsync domain models."""

from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field
from uuid_extensions import uuid7


def utc_now() -> datetime:
    """Return the current UTC timestamp (timezone-aware)."""
    return datetime.now(tz=timezone.utc)


def new_uuid7() -> UUID:
    """Generate a new time-sortable UUID v7."""
    return uuid7()


# --- Reusable annotated types ---

UUIDv7 = Annotated[UUID, Field(description="Time-sortable UUID v7.")]
UTCTimestamp = Annotated[
    datetime, Field(description="UTC timezone-aware timestamp.")
]


# --- Shared enums ---


class EngagementStatus(StrEnum):
    """Lifecycle of the engagement (POV) root."""

    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    COMPLETE = "COMPLETE"
    TECHNICALLY_SELECTED = "TECHNICALLY_SELECTED"
    NOT_SELECTED = "NOT_SELECTED"


class ChallengeStatus(StrEnum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    UNABLE_TO_COMPLETE = "UNABLE_TO_COMPLETE"
    WAIVED = "WAIVED"


class CriterionStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    MET = "MET"
    NOT_MET = "NOT_MET"


class ActivityStatus(StrEnum):
    """Status shared by criterion activities and the session activities linked to them."""

    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    SKIPPED = "SKIPPED"


class Organization(StrEnum):
    INTERNAL = "INTERNAL"
    CUSTOMER = "CUSTOMER"
    PARTNER = "PARTNER"


class MembershipStatus(StrEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class Priority(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class DeviceScopeStatus(StrEnum):
    NOT_ONBOARDED = "NOT_ONBOARDED"
    IN_PROGRESS = "IN_PROGRESS"
    ONBOARDED = "ONBOARDED"
    SKIPPED = "SKIPPED"
    WAIVED = "WAIVED"


class SessionStatus(StrEnum):
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ActivityType(StrEnum):
    """Category tag of an activity log entry."""

    STATUS = "STATUS"
    CHALLENGE = "CHALLENGE"
    TEAM = "TEAM"
    SESSION = "SESSION"
    CRITERIA = "CRITERIA"
    COMMENT = "COMMENT"
    DOCUMENT = "DOCUMENT"


# Status -> human-readable verb used in activity log descriptions.
STATUS_VERBS: dict[str, str] = {
    "COMPLETED": "marked as complete",
    "COMPLETE": "marked as complete",
    "MET": "marked as complete",
    "ONBOARDED": "marked as complete",
    "IN_PROGRESS": "marked as in progress",
    "OPEN": "reset to open",
    "PENDING": "reset to pending",
    "NOT_STARTED": "reset to pending",
    "NOT_ONBOARDED": "reset to pending",
    "SKIPPED": "skipped",
    "WAIVED": "waived",
    "CANCELLED": "cancelled",
    "SCHEDULED": "rescheduled",
    "NOT_MET": "marked as not met",
    "UNABLE_TO_COMPLETE": "marked as unable to complete",
    "BLOCKED": "marked as blocked",
}


def status_verb(status: str | None) -> str:
    """Return the log verb for a status, ``"updated"`` when unknown or absent."""
    if status is None:
        return "updated"
    return STATUS_VERBS.get(str(status), "updated")


# --- Base model ---


class PovSyncBase(BaseModel):
    """Base model with common configuration for all povsync Pydantic models."""

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,
        "protected_namespaces": (),
    }
