"""Engagement aggregate: the root record and every collection it owns.

The aggregate is loaded wholesale, cached in the ``AggregateStore`` and
mutated piecewise by the Operation Layer. All owned collections default to
empty lists so readers never need a ``None`` check.
"""

from datetime import date
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from povsync.models.common import (
    ActivityStatus,
    ActivityType,
    ChallengeStatus,
    CriterionStatus,
    DeviceScopeStatus,
    EngagementStatus,
    MembershipStatus,
    Organization,
    PovSyncBase,
    Priority,
    SessionStatus,
    UTCTimestamp,
    UUIDv7,
    new_uuid7,
    utc_now,
)

# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class ChallengeCategory(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    challenge_id: UUID
    category: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class ChallengeOutcome(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    challenge_id: UUID
    outcome: str
    order_index: int = Field(default=0, ge=0)
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class Challenge(PovSyncBase):
    """A customer challenge scoped to one engagement.

    ``template_id`` points at the library template the challenge was copied
    from, if any.
    """

    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    template_id: UUID | None = None
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    business_impact: str = ""
    example: str | None = None
    status: ChallengeStatus = ChallengeStatus.OPEN
    categories: list[ChallengeCategory] = Field(default_factory=list)
    outcomes: list[ChallengeOutcome] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def category_names(self) -> set[str]:
        return {c.category for c in self.categories}


class ChallengeTemplate(PovSyncBase):
    """Immutable, globally shared library challenge."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    business_impact: str = ""
    example: str | None = None
    categories: list[str] = Field(default_factory=list)
    outcomes: list[str] = Field(default_factory=list)
    created_by: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Decision criteria
# ---------------------------------------------------------------------------


class DecisionCriterionCategory(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    criterion_id: UUID
    category: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class DecisionCriterionActivity(PovSyncBase):
    """Activity nested under a criterion.

    Its id may be referenced by at most one session activity across the
    whole engagement.
    """

    id: UUIDv7 = Field(default_factory=new_uuid7)
    criterion_id: UUID
    activity: str
    order_index: int = Field(default=0, ge=0)
    status: ActivityStatus = ActivityStatus.PENDING
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class DecisionCriterion(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    success_criteria: str = ""
    use_case: str | None = None
    status: CriterionStatus = CriterionStatus.PENDING
    created_by: UUID | None = None
    categories: list[DecisionCriterionCategory] = Field(default_factory=list)
    activities: list[DecisionCriterionActivity] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)

    @property
    def activity_ids(self) -> set[UUID]:
        return {a.id for a in self.activities}


# ---------------------------------------------------------------------------
# Team
# ---------------------------------------------------------------------------


class Person(PovSyncBase):
    """Global directory entry, deduplicated by email."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    name: str
    email: str
    role: str = ""
    organization: Organization = Organization.INTERNAL
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class TeamMemberAssociation(PovSyncBase):
    """Junction between a Person and an engagement.

    name/email/role/organization are a snapshot taken at association time.
    Editing them does not touch the Person record.
    """

    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    person_id: UUID
    name: str
    email: str
    role: str = ""
    organization: Organization = Organization.INTERNAL
    status: MembershipStatus = MembershipStatus.ACTIVE
    created_by: UUID | None = None
    updated_by: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Device scope
# ---------------------------------------------------------------------------


class DeviceSpecifications(PovSyncBase):
    os: str | None = None
    version: str | None = None
    architecture: str | None = None
    additional_details: str | None = None


class DeviceScope(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    device_type: str = Field(..., min_length=1)
    category: str = ""
    count: int = Field(default=0, ge=0)
    specifications: DeviceSpecifications = Field(default_factory=DeviceSpecifications)
    priority: Priority = Priority.MEDIUM
    notes: str | None = None
    status: DeviceScopeStatus = DeviceScopeStatus.NOT_ONBOARDED
    from_onboarding_template: bool = False
    created_by: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Working sessions
# ---------------------------------------------------------------------------


class SessionActivity(PovSyncBase):
    """A unit of work scheduled in a working session.

    Either *linked* (``decision_criterion_activity_id`` set, text resolved by
    lookup, status mirrors the criterion activity) or *custom* (own
    ``activity`` text, no foreign reference). Custom activities keep their
    ``id`` across edits when the caller sends it back.
    """

    id: UUID | None = None
    decision_criterion_activity_id: UUID | None = None
    activity: str | None = None
    status: ActivityStatus = ActivityStatus.PENDING
    display_order: int = Field(default=0, ge=0)
    notes: str = ""

    @model_validator(mode="after")
    def _check_variant(self) -> "SessionActivity":
        if self.decision_criterion_activity_id is not None:
            if self.activity:
                msg = "Linked session activities take their text from the criterion activity."
                raise ValueError(msg)
        elif not (self.activity and self.activity.strip()):
            msg = "Custom session activities need activity text."
            raise ValueError(msg)
        return self

    @property
    def is_linked(self) -> bool:
        return self.decision_criterion_activity_id is not None


class WorkingSession(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    status: SessionStatus = SessionStatus.SCHEDULED
    session_date: date | None = None
    duration: int = Field(default=60, ge=0, description="Minutes.")
    notes: str | None = None
    created_by: UUID | None = None
    session_activities: list[SessionActivity] = Field(default_factory=list)
    created_at: UTCTimestamp = Field(default_factory=utc_now)

    @field_validator("session_activities", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


# ---------------------------------------------------------------------------
# Comments, documents, activity log, business services
# ---------------------------------------------------------------------------


class Comment(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    content: str = Field(..., min_length=1)
    parent_id: UUID | None = None
    created_by: UUID
    created_by_email: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class Document(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    name: str = Field(..., min_length=1)
    description: str | None = None
    bucket_id: str
    storage_path: str
    content_type: str
    size_bytes: int = Field(..., ge=0)
    created_by: UUID
    created_by_email: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


class ActivityLogEntry(PovSyncBase):
    """Append-only audit entry. Lists of entries are ordered newest first."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    type: ActivityType
    title: str
    description: str = ""
    reference_id: UUID | None = None
    created_by: UUID
    created_by_email: str
    created_at: UTCTimestamp = Field(default_factory=utc_now)


class KeyBusinessService(PovSyncBase):
    id: UUIDv7 = Field(default_factory=new_uuid7)
    engagement_id: UUID
    name: str = Field(..., min_length=1)
    description: str = ""
    tech_owner: str = ""
    desired_kpis: list[str] = Field(default_factory=list)
    created_by: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------


class EngagementSummary(PovSyncBase):
    """Row of the engagement list view."""

    id: UUID
    title: str
    customer_name: str
    status: EngagementStatus
    start_date: date | None = None
    end_date: date | None = None
    challenge_count: int = 0
    completed_challenge_count: int = 0
    criteria_count: int = 0
    criteria_met_count: int = 0
    scheduled_session_count: int = 0
    updated_at: UTCTimestamp = Field(default_factory=utc_now)


_COLLECTION_FIELDS = (
    "challenges",
    "decision_criteria",
    "team_members",
    "device_scopes",
    "working_sessions",
    "comments",
    "documents",
    "activity_log",
    "business_services",
)


class Engagement(PovSyncBase):
    """The engagement aggregate root plus its owned collections."""

    id: UUIDv7 = Field(default_factory=new_uuid7)
    title: str = Field(..., min_length=1, max_length=500)
    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_industry: str = ""
    customer_region: str = ""
    business_unit: str = ""
    status: EngagementStatus = EngagementStatus.DRAFT
    notes: str = ""
    start_date: date | None = None
    end_date: date | None = None
    created_by: UUID | None = None
    created_at: UTCTimestamp = Field(default_factory=utc_now)
    updated_at: UTCTimestamp = Field(default_factory=utc_now)

    challenges: list[Challenge] = Field(default_factory=list)
    decision_criteria: list[DecisionCriterion] = Field(default_factory=list)
    team_members: list[TeamMemberAssociation] = Field(default_factory=list)
    device_scopes: list[DeviceScope] = Field(default_factory=list)
    working_sessions: list[WorkingSession] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    documents: list[Document] = Field(default_factory=list)
    activity_log: list[ActivityLogEntry] = Field(default_factory=list)
    business_services: list[KeyBusinessService] = Field(default_factory=list)

    @field_validator(*_COLLECTION_FIELDS, mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value

    def criterion_activity(self, activity_id: UUID) -> DecisionCriterionActivity | None:
        for criterion in self.decision_criteria:
            for activity in criterion.activities:
                if activity.id == activity_id:
                    return activity
        return None

    def session_activity_text(self, activity: SessionActivity) -> str:
        """Display text of a session activity, resolving linked ones by lookup."""
        if activity.decision_criterion_activity_id is None:
            return activity.activity or ""
        linked = self.criterion_activity(activity.decision_criterion_activity_id)
        return linked.activity if linked is not None else ""

    def summary(self) -> EngagementSummary:
        return EngagementSummary(
            id=self.id,
            title=self.title,
            customer_name=self.customer_name,
            status=self.status,
            start_date=self.start_date,
            end_date=self.end_date,
            challenge_count=len(self.challenges),
            completed_challenge_count=sum(
                1 for c in self.challenges if c.status == ChallengeStatus.COMPLETED
            ),
            criteria_count=len(self.decision_criteria),
            criteria_met_count=sum(
                1 for c in self.decision_criteria if c.status == CriterionStatus.MET
            ),
            scheduled_session_count=sum(
                1 for s in self.working_sessions if s.status == SessionStatus.SCHEDULED
            ),
            updated_at=self.updated_at,
        )
