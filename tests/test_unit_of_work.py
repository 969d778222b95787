"""Tests for the unit of work, aggregate locks and the activity log writer."""

import anyio
import pytest
from sqlalchemy.exc import OperationalError
from uuid_extensions import uuid7

from povsync.activity_log import excerpt
from povsync.core.exceptions import NotFound, RemoteFailure, Unauthorized, ValidationFailure
from povsync.core.unit_of_work import AggregateLocks
from povsync.models.common import ActivityType
from povsync.models.inputs import ChallengeCreate
from povsync.repositories.activity_log import ActivityLogRepository


class TestAggregateLocks:

    @pytest.mark.anyio
    async def test_serializes_per_engagement(self) -> None:
        locks = AggregateLocks()
        engagement_id = uuid7()
        order = []

        async def worker(name: str) -> None:
            async with locks.hold(engagement_id):
                order.append(f"{name}-in")
                await anyio.sleep(0.01)
                order.append(f"{name}-out")

        async with anyio.create_task_group() as tg:
            tg.start_soon(worker, "a")
            tg.start_soon(worker, "b")

        assert order in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])

    @pytest.mark.anyio
    async def test_discard_idle_lock(self) -> None:
        locks = AggregateLocks()
        engagement_id = uuid7()
        async with locks.hold(engagement_id):
            pass
        assert engagement_id in locks
        locks.discard(engagement_id)
        assert engagement_id not in locks
        locks.discard(uuid7())

    @pytest.mark.anyio
    async def test_discard_keeps_lock_with_queued_waiter(self) -> None:
        locks = AggregateLocks()
        engagement_id = uuid7()
        active = 0
        peak = 0

        async def worker() -> None:
            nonlocal active, peak
            async with locks.hold(engagement_id):
                active += 1
                peak = max(peak, active)
                await anyio.sleep(0.01)
                active -= 1

        async with anyio.create_task_group() as tg:

            async def first() -> None:
                async with locks.hold(engagement_id):
                    tg.start_soon(worker)
                    await anyio.sleep(0.01)
                # released, the queued worker has not resumed yet
                locks.discard(engagement_id)
                assert engagement_id in locks
                tg.start_soon(worker)

            tg.start_soon(first)

        assert peak == 1


class TestMutation:

    @pytest.mark.anyio
    async def test_failed_log_write_rolls_back_the_operation(self, sync, store, engagement,
                                                             monkeypatch) -> None:
        async def _broken_append(self, **kwargs):
            raise OperationalError("INSERT INTO activity_log", {}, Exception("locked"))

        monkeypatch.setattr(ActivityLogRepository, "append", _broken_append)
        with pytest.raises(RemoteFailure):
            await sync.challenges.add(ChallengeCreate(engagement_id=engagement.id, title="Lost"))
        monkeypatch.undo()

        assert store.engagement.challenges == []
        refetched = await sync.engagements.load(engagement.id, force=True)
        assert refetched.challenges == []

    @pytest.mark.anyio
    async def test_concurrent_adds_all_land(self, sync, store, engagement) -> None:
        async with anyio.create_task_group() as tg:
            for i in range(5):
                tg.start_soon(
                    sync.challenges.add,
                    ChallengeCreate(engagement_id=engagement.id, title=f"C{i}"),
                )
        assert len(store.engagement.challenges) == 5
        refetched = await sync.engagements.load(engagement.id, force=True)
        assert len(refetched.challenges) == 5


class TestActivityLogWriter:

    @pytest.mark.anyio
    async def test_record_prepends(self, sync, store, engagement) -> None:
        entry = await sync.log.record(
            engagement.id, ActivityType.STATUS, "Note", "Customer asked for an extension",
        )
        assert store.engagement.activity_log[0] == entry

    @pytest.mark.anyio
    async def test_record_failures(self, sync, identity, engagement) -> None:
        with pytest.raises(ValidationFailure):
            await sync.log.record(None, ActivityType.STATUS, "Note", "")
        with pytest.raises(NotFound):
            await sync.log.record(uuid7(), ActivityType.STATUS, "Note", "")
        identity.sign_out()
        with pytest.raises(Unauthorized):
            await sync.log.record(engagement.id, ActivityType.STATUS, "Note", "")

    def test_excerpt(self) -> None:
        assert excerpt("  multi\nline   text ") == "multi line text"
        long = excerpt("word " * 40)
        assert len(long) <= 80
        assert long.endswith("...")
