"""Engagement aggregate schema.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def _engagement_id() -> sa.Column:
    return sa.Column(
        "engagement_id", UUID(as_uuid=True),
        sa.ForeignKey("engagements.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade() -> None:
    # -- Aggregate root --
    op.create_table(
        "engagements",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("customer_name", sa.String(255), nullable=False),
        sa.Column("customer_industry", sa.String(255), server_default=""),
        sa.Column("customer_region", sa.String(255), server_default=""),
        sa.Column("business_unit", sa.String(255), server_default=""),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("notes", sa.Text, server_default=""),
        sa.Column("start_date", sa.Date, nullable=True),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
    )

    # -- Team (GLOBAL persons) --
    op.create_table(
        "persons",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False, unique=True),
        sa.Column("role", sa.String(255), server_default=""),
        sa.Column("organization", sa.String(50), nullable=False),
        _created_at(),
    )

    op.create_table(
        "engagement_team_members",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("person_id", UUID(as_uuid=True), sa.ForeignKey("persons.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(320), nullable=False),
        sa.Column("role", sa.String(255), server_default=""),
        sa.Column("organization", sa.String(50), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        sa.Column("updated_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint("engagement_id", "person_id", name="uq_team_member_engagement_person"),
    )

    # -- Challenges --
    op.create_table(
        "challenge_templates",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("business_impact", sa.Text, server_default=""),
        sa.Column("example", sa.Text, nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "challenge_template_categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("template_id", UUID(as_uuid=True),
                  sa.ForeignKey("challenge_templates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
    )

    op.create_table(
        "challenge_template_outcomes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("template_id", UUID(as_uuid=True),
                  sa.ForeignKey("challenge_templates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("outcome", sa.Text, nullable=False),
        sa.Column("order_index", sa.Integer, nullable=False),
    )

    op.create_table(
        "challenges",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("template_id", UUID(as_uuid=True),
                  sa.ForeignKey("challenge_templates.id", ondelete="SET NULL"), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("business_impact", sa.Text, server_default=""),
        sa.Column("example", sa.Text, nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_challenges_engagement_id", "challenges", ["engagement_id"])

    op.create_table(
        "challenge_categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("challenge_id", UUID(as_uuid=True),
                  sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        _created_at(),
    )
    op.create_index("ix_challenge_categories_challenge_id", "challenge_categories", ["challenge_id"])

    op.create_table(
        "challenge_outcomes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("challenge_id", UUID(as_uuid=True),
                  sa.ForeignKey("challenges.id", ondelete="CASCADE"), nullable=False),
        sa.Column("outcome", sa.Text, nullable=False),
        sa.Column("order_index", sa.Integer, nullable=False),
        _created_at(),
    )
    op.create_index("ix_challenge_outcomes_challenge_id", "challenge_outcomes", ["challenge_id"])

    # -- Decision criteria --
    op.create_table(
        "decision_criteria",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("success_criteria", sa.Text, server_default=""),
        sa.Column("use_case", sa.Text, nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_decision_criteria_engagement_id", "decision_criteria", ["engagement_id"])

    op.create_table(
        "decision_criterion_categories",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("criterion_id", UUID(as_uuid=True),
                  sa.ForeignKey("decision_criteria.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.String(255), nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_decision_criterion_categories_criterion_id",
        "decision_criterion_categories", ["criterion_id"],
    )

    op.create_table(
        "decision_criterion_activities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("criterion_id", UUID(as_uuid=True),
                  sa.ForeignKey("decision_criteria.id", ondelete="CASCADE"), nullable=False),
        sa.Column("activity", sa.Text, nullable=False),
        sa.Column("order_index", sa.Integer, nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        _created_at(),
    )
    op.create_index(
        "ix_decision_criterion_activities_criterion_id",
        "decision_criterion_activities", ["criterion_id"],
    )

    # -- Device scope --
    op.create_table(
        "device_scopes",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("device_type", sa.String(255), nullable=False),
        sa.Column("category", sa.String(255), server_default=""),
        sa.Column("count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("specifications", JSONB, nullable=False, server_default="{}"),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("from_onboarding_template", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_device_scopes_engagement_id", "device_scopes", ["engagement_id"])

    # -- Working sessions --
    op.create_table(
        "working_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("session_date", sa.Date, nullable=True),
        sa.Column("duration", sa.Integer, nullable=False, server_default="60"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_working_sessions_engagement_id", "working_sessions", ["engagement_id"])

    op.create_table(
        "session_activities",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", UUID(as_uuid=True),
                  sa.ForeignKey("working_sessions.id", ondelete="CASCADE"), nullable=False),
        _engagement_id(),
        sa.Column("decision_criterion_activity_id", UUID(as_uuid=True), nullable=True),
        sa.Column("activity", sa.Text, nullable=True),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("display_order", sa.Integer, nullable=False),
        sa.Column("notes", sa.Text, server_default=""),
        _created_at(),
    )
    op.create_index("ix_session_activities_session_id", "session_activities", ["session_id"])
    op.create_index(
        "ix_session_activities_engagement_dca",
        "session_activities", ["engagement_id", "decision_criterion_activity_id"],
    )

    # -- Comments, documents, business services --
    op.create_table(
        "comments",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("parent_id", UUID(as_uuid=True),
                  sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_by_email", sa.String(320), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_comments_engagement_id", "comments", ["engagement_id"])

    op.create_table(
        "documents",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("bucket_id", sa.String(255), nullable=False),
        sa.Column("storage_path", sa.String(1000), nullable=False),
        sa.Column("content_type", sa.String(255), nullable=False),
        sa.Column("size_bytes", sa.Integer, nullable=False),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_by_email", sa.String(320), nullable=False),
        _created_at(),
        _updated_at(),
    )
    op.create_index("ix_documents_engagement_id", "documents", ["engagement_id"])

    op.create_table(
        "key_business_services",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("tech_owner", sa.String(255), server_default=""),
        sa.Column("desired_kpis", JSONB, nullable=False, server_default="[]"),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        _created_at(),
    )
    op.create_index("ix_key_business_services_engagement_id", "key_business_services", ["engagement_id"])

    # -- Activity log (APPEND-ONLY) --
    op.create_table(
        "activity_log",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _engagement_id(),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, server_default=""),
        sa.Column("reference_id", UUID(as_uuid=True), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=False),
        sa.Column("created_by_email", sa.String(320), nullable=False),
        _created_at(),
    )
    op.create_index("ix_activity_log_engagement_id", "activity_log", ["engagement_id"])


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("key_business_services")
    op.drop_table("documents")
    op.drop_table("comments")
    op.drop_table("session_activities")
    op.drop_table("working_sessions")
    op.drop_table("device_scopes")
    op.drop_table("decision_criterion_activities")
    op.drop_table("decision_criterion_categories")
    op.drop_table("decision_criteria")
    op.drop_table("challenge_outcomes")
    op.drop_table("challenge_categories")
    op.drop_table("challenges")
    op.drop_table("challenge_template_outcomes")
    op.drop_table("challenge_template_categories")
    op.drop_table("challenge_templates")
    op.drop_table("engagement_team_members")
    op.drop_table("persons")
    op.drop_table("engagements")
