"""Input payloads accepted by the Operation Layer.

Create payloads carry ``engagement_id`` as optional on purpose: a missing
aggregate id is reported as ``ValidationFailure`` by the operation, not as a
pydantic error. Update payloads are partial: ``None`` means "leave as is",
and for nested collections (outcomes, categories, activities) ``None`` means
the collection is not touched at all.
"""

from datetime import date
from uuid import UUID

from pydantic import Field, field_validator

from povsync.models.common import (
    ActivityStatus,
    ChallengeStatus,
    CriterionStatus,
    DeviceScopeStatus,
    EngagementStatus,
    MembershipStatus,
    Organization,
    PovSyncBase,
    Priority,
    SessionStatus,
)
from povsync.models.engagement import DeviceSpecifications, SessionActivity


def _clean_tags(values: list[str] | None) -> list[str] | None:
    """Strip, drop blanks and de-duplicate while keeping first-seen order."""
    if values is None:
        return None
    seen: dict[str, None] = {}
    for value in values:
        text = value.strip()
        if text:
            seen.setdefault(text, None)
    return list(seen)


# --- Engagement ---


class EngagementCreate(PovSyncBase):
    title: str = Field(..., min_length=1, max_length=500)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_industry: str = ""
    customer_region: str = ""
    business_unit: str = ""
    status: EngagementStatus = EngagementStatus.DRAFT
    notes: str = ""
    start_date: date | None = None
    end_date: date | None = None


class EngagementUpdate(PovSyncBase):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    customer_name: str | None = Field(default=None, min_length=1, max_length=255)
    customer_industry: str | None = None
    customer_region: str | None = None
    business_unit: str | None = None
    notes: str | None = None
    start_date: date | None = None
    end_date: date | None = None


# --- Challenges ---


class ChallengeCreate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    business_impact: str = ""
    example: str | None = None
    status: ChallengeStatus = ChallengeStatus.OPEN
    outcomes: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    save_to_library: bool = Field(
        default=False,
        description="Also write an immutable library template.",
    )

    @field_validator("outcomes")
    @classmethod
    def _strip_outcomes(cls, values: list[str]) -> list[str]:
        return [v.strip() for v in values if v.strip()]

    @field_validator("categories")
    @classmethod
    def _clean_categories(cls, values: list[str]) -> list[str]:
        return _clean_tags(values) or []


class ChallengeUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = None
    business_impact: str | None = None
    example: str | None = None
    status: ChallengeStatus | None = None
    outcomes: list[str] | None = None
    categories: list[str] | None = None

    @field_validator("outcomes")
    @classmethod
    def _strip_outcomes(cls, values: list[str] | None) -> list[str] | None:
        if values is None:
            return None
        return [v.strip() for v in values if v.strip()]

    @field_validator("categories")
    @classmethod
    def _clean_categories(cls, values: list[str] | None) -> list[str] | None:
        return _clean_tags(values)


# --- Decision criteria ---


class CriterionActivityInput(PovSyncBase):
    """Activity row of a criterion; ``id`` is kept when re-submitted."""

    id: UUID | None = None
    activity: str = Field(..., min_length=1)
    status: ActivityStatus = ActivityStatus.PENDING


class DecisionCriterionCreate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=500)
    success_criteria: str = ""
    use_case: str | None = None
    status: CriterionStatus = CriterionStatus.PENDING
    categories: list[str] = Field(default_factory=list)
    activities: list[CriterionActivityInput] = Field(default_factory=list)

    @field_validator("categories")
    @classmethod
    def _clean_categories(cls, values: list[str]) -> list[str]:
        return _clean_tags(values) or []


class DecisionCriterionUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=500)
    success_criteria: str | None = None
    use_case: str | None = None
    status: CriterionStatus | None = None
    categories: list[str] | None = None
    activities: list[CriterionActivityInput] | None = None

    @field_validator("categories")
    @classmethod
    def _clean_categories(cls, values: list[str] | None) -> list[str] | None:
        return _clean_tags(values)


# --- Team ---


class TeamMemberCreate(PovSyncBase):
    engagement_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")
    role: str = ""
    organization: Organization = Organization.INTERNAL

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TeamMemberUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+$")
    role: str | None = None
    organization: Organization | None = None
    status: MembershipStatus | None = None

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str | None) -> str | None:
        return value.strip().lower() if value is not None else None


# --- Device scope ---


class DeviceScopeCreate(PovSyncBase):
    engagement_id: UUID | None = None
    device_type: str = Field(..., min_length=1)
    category: str = ""
    count: int = Field(default=0, ge=0)
    specifications: DeviceSpecifications = Field(default_factory=DeviceSpecifications)
    priority: Priority = Priority.MEDIUM
    notes: str | None = None
    status: DeviceScopeStatus = DeviceScopeStatus.NOT_ONBOARDED
    from_onboarding_template: bool = False


class DeviceScopeUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    device_type: str | None = Field(default=None, min_length=1)
    category: str | None = None
    count: int | None = Field(default=None, ge=0)
    specifications: DeviceSpecifications | None = None
    priority: Priority | None = None
    notes: str | None = None
    status: DeviceScopeStatus | None = None


# --- Working sessions ---


class WorkingSessionCreate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=500)
    status: SessionStatus = SessionStatus.SCHEDULED
    session_date: date | None = None
    duration: int = Field(default=60, ge=0)
    notes: str | None = None
    session_activities: list[SessionActivity] = Field(default_factory=list)


class WorkingSessionUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    title: str | None = Field(default=None, min_length=1, max_length=500)
    status: SessionStatus | None = None
    session_date: date | None = None
    duration: int | None = Field(default=None, ge=0)
    notes: str | None = None
    session_activities: list[SessionActivity] | None = None


# --- Business services ---


class BusinessServiceCreate(PovSyncBase):
    engagement_id: UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    tech_owner: str = ""
    desired_kpis: list[str] = Field(default_factory=list)

    @field_validator("desired_kpis")
    @classmethod
    def _clean_kpis(cls, values: list[str]) -> list[str]:
        return _clean_tags(values) or []


class BusinessServiceUpdate(PovSyncBase):
    engagement_id: UUID | None = None
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    tech_owner: str | None = None
    desired_kpis: list[str] | None = None

    @field_validator("desired_kpis")
    @classmethod
    def _clean_kpis(cls, values: list[str] | None) -> list[str] | None:
        return _clean_tags(values)
