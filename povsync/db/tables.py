"""SQLAlchemy ORM table models for povsync.

One table per entity/collection, foreign keys from child to parent id, and a
join table for the team-member association. Uses FlexJSON (JSONB on
Postgres, JSON on SQLite) for small nested values.

Categories:
- GLOBAL: PersonRow, ChallengeTemplate* (shared across engagements)
- OWNED: everything keyed by engagement_id (cascade-deleted with the root)
- APPEND-ONLY: ActivityLogRow
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from povsync.db.session import Base

# JSONB on PostgreSQL, plain JSON on SQLite (for tests)
FlexJSON = JSONB().with_variant(JSON(), "sqlite")

_ENGAGEMENT_FK = "engagements.id"


def _engagement_fk() -> ForeignKey:
    return ForeignKey(_ENGAGEMENT_FK, ondelete="CASCADE")


# ---------------------------------------------------------------------------
# Aggregate root
# ---------------------------------------------------------------------------


class EngagementRow(Base):
    __tablename__ = "engagements"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_industry: Mapped[str] = mapped_column(String(255), default="")
    customer_region: Mapped[str] = mapped_column(String(255), default="")
    business_unit: Mapped[str] = mapped_column(String(255), default="")
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Team: GLOBAL person directory + association
# ---------------------------------------------------------------------------


class PersonRow(Base):
    __tablename__ = "persons"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(255), default="")
    organization: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class TeamMemberRow(Base):
    """Engagement <-> person junction with a denormalized snapshot."""

    __tablename__ = "engagement_team_members"
    __table_args__ = (
        UniqueConstraint("engagement_id", "person_id", name="uq_team_member_engagement_person"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False)
    person_id: Mapped[UUID] = mapped_column(ForeignKey("persons.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    role: Mapped[str] = mapped_column(String(255), default="")
    organization: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Challenges: library templates (GLOBAL) and engagement copies
# ---------------------------------------------------------------------------


class ChallengeTemplateRow(Base):
    """Immutable library challenge."""

    __tablename__ = "challenge_templates"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    business_impact: Mapped[str] = mapped_column(Text, default="")
    example: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ChallengeTemplateCategoryRow(Base):
    __tablename__ = "challenge_template_categories"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    template_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenge_templates.id", ondelete="CASCADE"), nullable=False,
    )
    category: Mapped[str] = mapped_column(String(255), nullable=False)


class ChallengeTemplateOutcomeRow(Base):
    __tablename__ = "challenge_template_outcomes"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    template_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenge_templates.id", ondelete="CASCADE"), nullable=False,
    )
    outcome: Mapped[str] = mapped_column(Text, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)


class ChallengeRow(Base):
    __tablename__ = "challenges"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    template_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("challenge_templates.id", ondelete="SET NULL"), nullable=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    business_impact: Mapped[str] = mapped_column(Text, default="")
    example: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ChallengeCategoryRow(Base):
    __tablename__ = "challenge_categories"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    challenge_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ChallengeOutcomeRow(Base):
    __tablename__ = "challenge_outcomes"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    challenge_id: Mapped[UUID] = mapped_column(
        ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    outcome: Mapped[str] = mapped_column(Text, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Decision criteria
# ---------------------------------------------------------------------------


class DecisionCriterionRow(Base):
    __tablename__ = "decision_criteria"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    success_criteria: Mapped[str] = mapped_column(Text, default="")
    use_case: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DecisionCriterionCategoryRow(Base):
    __tablename__ = "decision_criterion_categories"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    criterion_id: Mapped[UUID] = mapped_column(
        ForeignKey("decision_criteria.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    category: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DecisionCriterionActivityRow(Base):
    __tablename__ = "decision_criterion_activities"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    criterion_id: Mapped[UUID] = mapped_column(
        ForeignKey("decision_criteria.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    activity: Mapped[str] = mapped_column(Text, nullable=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Device scope
# ---------------------------------------------------------------------------


class DeviceScopeRow(Base):
    __tablename__ = "device_scopes"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    device_type: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(255), default="")
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    specifications = mapped_column(FlexJSON, nullable=False, default=dict)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    from_onboarding_template: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Working sessions
# ---------------------------------------------------------------------------


class WorkingSessionRow(Base):
    __tablename__ = "working_sessions"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    session_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False, default=60)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class SessionActivityRow(Base):
    """Session activity, linked or custom.

    decision_criterion_activity_id carries no foreign key; the
    at-most-one-reference rule is enforced by the integrity guard.
    """

    __tablename__ = "session_activities"
    __table_args__ = (
        Index("ix_session_activities_engagement_dca", "engagement_id", "decision_criterion_activity_id"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True)
    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("working_sessions.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False)
    decision_criterion_activity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    activity: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str] = mapped_column(Text, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Comments, documents, business services
# ---------------------------------------------------------------------------


class CommentRow(Base):
    __tablename__ = "comments"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    parent_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("comments.id", ondelete="CASCADE"), nullable=True,
    )
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    created_by_email: Mapped[str] = mapped_column(String(320), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class DocumentRow(Base):
    __tablename__ = "documents"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    bucket_id: Mapped[str] = mapped_column(String(255), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    content_type: Mapped[str] = mapped_column(String(255), nullable=False)
    size_bytes: Mapped[int] = mapped_column(Integer, nullable=False)
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    created_by_email: Mapped[str] = mapped_column(String(320), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BusinessServiceRow(Base):
    __tablename__ = "key_business_services"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    tech_owner: Mapped[str] = mapped_column(String(255), default="")
    desired_kpis = mapped_column(FlexJSON, nullable=False, default=list)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


# ---------------------------------------------------------------------------
# Activity log: APPEND-ONLY
# ---------------------------------------------------------------------------


class ActivityLogRow(Base):
    __tablename__ = "activity_log"

    id: Mapped[UUID] = mapped_column(primary_key=True)
    engagement_id: Mapped[UUID] = mapped_column(_engagement_fk(), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="")
    reference_id: Mapped[UUID | None] = mapped_column(nullable=True)
    created_by: Mapped[UUID] = mapped_column(nullable=False)
    created_by_email: Mapped[str] = mapped_column(String(320), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
