"""Tests for the child-collection repositories (challenges, criteria, sessions, comments, log)."""

import pytest
from uuid_extensions import uuid7

from povsync.models.common import ActivityStatus
from povsync.models.engagement import SessionActivity
from povsync.repositories.activity_log import ActivityLogRepository
from povsync.repositories.challenges import ChallengeRepository, ChallengeTemplateRepository
from povsync.repositories.comments import CommentRepository
from povsync.repositories.criteria import ActivitySpec, DecisionCriterionRepository
from povsync.repositories.engagements import EngagementRepository
from povsync.repositories.sessions import WorkingSessionRepository


@pytest.fixture
async def engagement_id(db_session):
    row = await EngagementRepository(db_session).create(
        engagement_id=uuid7(), title="Acme POV", customer_name="Acme Corp",
        customer_industry="", customer_region="", business_unit="", status="DRAFT",
        notes="", start_date=None, end_date=None, created_by=uuid7(),
    )
    return row.id


class TestChallengeRepository:

    @pytest.mark.anyio
    async def test_composed_read_orders_outcomes(self, db_session, engagement_id) -> None:
        repo = ChallengeRepository(db_session)
        cid = uuid7()
        await repo.create(
            challenge_id=cid, engagement_id=engagement_id, title="Slow triage",
            description="", business_impact="", example=None, status="OPEN",
        )
        await repo.add_children(cid, categories=["SOC"], outcomes=["First", "Second"])
        challenge = await repo.get_composed(cid)
        assert [o.outcome for o in challenge.outcomes] == ["First", "Second"]
        assert [o.order_index for o in challenge.outcomes] == [0, 1]
        assert challenge.category_names == {"SOC"}

    @pytest.mark.anyio
    async def test_replace_outcomes_keeps_categories(self, db_session, engagement_id) -> None:
        repo = ChallengeRepository(db_session)
        cid = uuid7()
        await repo.create(
            challenge_id=cid, engagement_id=engagement_id, title="T",
            description="", business_impact="", example=None, status="OPEN",
        )
        await repo.add_children(cid, categories=["SOC"], outcomes=["Old"])
        await repo.replace_outcomes(cid, ["New"])
        challenge = await repo.get_composed(cid)
        assert [o.outcome for o in challenge.outcomes] == ["New"]
        assert challenge.category_names == {"SOC"}

    @pytest.mark.anyio
    async def test_templates(self, db_session) -> None:
        repo = ChallengeTemplateRepository(db_session)
        template = await repo.create(
            template_id=uuid7(), title="Alert fatigue", description="", business_impact="",
            example=None, categories=["SOC"], outcomes=["Fewer alerts", "Faster triage"],
        )
        assert template.outcomes == ["Fewer alerts", "Faster triage"]
        assert [t.id for t in await repo.list_all()] == [template.id]


class TestDecisionCriterionRepository:

    @pytest.mark.anyio
    async def test_replace_activities_preserves_ids(self, db_session, engagement_id) -> None:
        repo = DecisionCriterionRepository(db_session)
        crid = uuid7()
        await repo.create(
            criterion_id=crid, engagement_id=engagement_id, title="Coverage",
            success_criteria="", use_case=None, status="PENDING", created_by=None,
        )
        await repo.add_children(crid, categories=[], activities=[
            ActivitySpec("Deploy", "PENDING"), ActivitySpec("Verify", "PENDING"),
        ])
        original = await repo.get_composed(crid)
        deploy, verify = original.activities

        await repo.replace_activities(crid, [
            ActivitySpec("Verify", "COMPLETED", verify.id),
            ActivitySpec("Report", "PENDING"),
        ])

        criterion = await repo.get_composed(crid)
        assert [a.activity for a in criterion.activities] == ["Verify", "Report"]
        assert criterion.activities[0].id == verify.id
        assert criterion.activities[0].status == ActivityStatus.COMPLETED
        assert deploy.id not in criterion.activity_ids


class TestWorkingSessionRepository:

    @pytest.mark.anyio
    async def test_replace_sets_display_order(self, db_session, engagement_id) -> None:
        repo = WorkingSessionRepository(db_session)
        sid = uuid7()
        await repo.create(
            session_id=sid, engagement_id=engagement_id, title="Kickoff", status="SCHEDULED",
            session_date=None, duration=60, notes=None, created_by=None,
        )
        dca_id = uuid7()
        await repo.replace_activities(session_id=sid, engagement_id=engagement_id, activities=[
            SessionActivity(activity="Intro", display_order=7),
            SessionActivity(decision_criterion_activity_id=dca_id, display_order=3),
        ])
        session = await repo.get_composed(sid)
        assert [a.display_order for a in session.session_activities] == [0, 1]
        assert session.session_activities[1].activity is None
        assert all(a.id is not None for a in session.session_activities)

        assert await repo.set_linked_status(dca_id, "COMPLETED") == [sid]


class TestCommentAndLogRepositories:

    @pytest.mark.anyio
    async def test_delete_removes_replies(self, db_session, engagement_id) -> None:
        repo = CommentRepository(db_session)
        author = uuid7()
        parent = await repo.create(
            comment_id=uuid7(), engagement_id=engagement_id, content="Top",
            parent_id=None, created_by=author, created_by_email="a@example.com",
        )
        reply = await repo.create(
            comment_id=uuid7(), engagement_id=engagement_id, content="Reply",
            parent_id=parent.id, created_by=author, created_by_email="a@example.com",
        )
        deleted = await repo.delete(parent.id)
        assert set(deleted) == {parent.id, reply.id}
        assert await repo.list_by_engagement(engagement_id) == []

    @pytest.mark.anyio
    async def test_log_is_newest_first(self, db_session, engagement_id) -> None:
        repo = ActivityLogRepository(db_session)
        for title in ("first", "second", "third"):
            await repo.append(
                entry_id=uuid7(), engagement_id=engagement_id, type="STATUS", title=title,
                description="", reference_id=None, created_by=uuid7(),
                created_by_email="a@example.com",
            )
        entries = await repo.list_by_engagement(engagement_id)
        assert [e.title for e in entries] == ["third", "second", "first"]
