"""ReconciliationStore 测试

乐观更新与回滚、在线状态、事件提示。
"""

import asyncio

import pytest
from missionctl.client import ReconciliationStore
from missionctl.core.models import Session, SessionStatus, SessionType, TaskStatus


@pytest.fixture
async def store(fake_api, clock) -> ReconciliationStore:
    store = ReconciliationStore(fake_api, clock=clock, poll_interval_s=30.0)
    await store.refresh()
    return store


class TestRefresh:
    async def test_refresh_populates_snapshot(self, store, fake_api):
        assert store.is_online is True
        assert set(store.tasks) == {"t1"}
        assert set(store.agents) == {"agent-1"}
        assert [e.event_id for e in store.events] == ["e1"]

    async def test_active_subagents_count(self, store, fake_api):
        fake_api.sessions = [
            Session(
                session_id="s1",
                session_type=SessionType.SUBAGENT,
                created_at=store.tasks["t1"].created_at,
                updated_at=store.tasks["t1"].created_at,
            ),
            Session(
                session_id="s2",
                session_type=SessionType.PRIMARY,
                created_at=store.tasks["t1"].created_at,
                updated_at=store.tasks["t1"].created_at,
            ),
            Session(
                session_id="s3",
                session_type=SessionType.SUBAGENT,
                status=SessionStatus.COMPLETED,
                created_at=store.tasks["t1"].created_at,
                updated_at=store.tasks["t1"].created_at,
            ),
        ]
        await store.refresh()
        assert store.active_subagents == 1

    async def test_offline_then_recover(self, store, fake_api):
        """轮询失败置 is_online=False，保留上次快照"""
        fake_api.offline = True
        assert await store.refresh() is False
        assert store.is_online is False
        assert "t1" in store.tasks

        fake_api.offline = False
        assert await store.refresh() is True
        assert store.is_online is True


class TestMoveTask:
    async def test_success_keeps_new_status(self, store, fake_api):
        assert await store.move_task("t1", "assigned") is True
        assert store.tasks["t1"].status == TaskStatus.ASSIGNED
        assert fake_api.update_calls == [("t1", "assigned")]

    async def test_failure_reverts(self, store, fake_api):
        fake_api.update_failures.add("assigned")
        assert await store.move_task("t1", "assigned") is False
        assert store.tasks["t1"].status == TaskStatus.INBOX

    async def test_same_status_is_noop(self, store, fake_api):
        assert await store.move_task("t1", "inbox") is True
        assert fake_api.update_calls == []

    async def test_unknown_task(self, store, fake_api):
        assert await store.move_task("missing", "done") is False
        assert fake_api.update_calls == []

    async def test_optimistic_value_visible_before_response(self, store, fake_api):
        gate = asyncio.Event()
        fake_api.update_gates["assigned"] = gate
        pending = asyncio.create_task(store.move_task("t1", "assigned"))
        await asyncio.sleep(0)
        assert store.tasks["t1"].status == TaskStatus.ASSIGNED
        gate.set()
        assert await pending is True

    async def test_failed_revert_does_not_clobber_newer_move(self, store, fake_api):
        """较早的变更失败时，不覆盖其后已成功的变更"""
        gate = asyncio.Event()
        fake_api.update_gates["assigned"] = gate
        fake_api.update_failures.add("assigned")

        first = asyncio.create_task(store.move_task("t1", "assigned"))
        await asyncio.sleep(0)
        assert await store.move_task("t1", "in_progress") is True

        gate.set()
        assert await first is False
        assert store.tasks["t1"].status == TaskStatus.IN_PROGRESS

    async def test_mutation_failure_does_not_touch_online(self, store, fake_api):
        """is_online 只由轮询决定"""
        fake_api.update_failures.add("assigned")
        await store.move_task("t1", "assigned")
        assert store.is_online is True

        fake_api.offline = True
        await store.refresh()
        assert await store.move_task("t1", "review") is True
        assert store.is_online is False

    async def test_refresh_preserves_pending_status(self, store, fake_api):
        """进行中的乐观变更不被轮询快照覆盖"""
        gate = asyncio.Event()
        fake_api.update_gates["testing"] = gate
        pending = asyncio.create_task(store.move_task("t1", "testing"))
        await asyncio.sleep(0)

        await store.refresh()
        assert store.tasks["t1"].status == TaskStatus.TESTING

        gate.set()
        await pending
        assert store.tasks["t1"].status == TaskStatus.TESTING


class TestEvents:
    async def test_apply_event_newest_first_and_dedup(self, store, make_event):
        store.apply_event(make_event("e2"))
        store.apply_event(make_event("e2"))
        assert [e.event_id for e in store.events] == ["e2", "e1"]

    async def test_apply_event_does_not_change_tasks(self, store, make_event):
        before = dict(store.tasks)
        store.apply_event(make_event("e3"))
        assert store.tasks == before


class TestRun:
    async def test_run_sleeps_between_ticks(self, fake_api, clock):
        store = ReconciliationStore(fake_api, clock=clock, poll_interval_s=30.0)
        await store.run(ticks=2)
        assert clock.sleeps == [30.0]
        assert store.is_online is True

    async def test_run_keeps_polling_while_offline(self, fake_api, clock):
        fake_api.offline = True
        store = ReconciliationStore(fake_api, clock=clock, poll_interval_s=30.0)
        await store.run(ticks=3)
        assert clock.sleeps == [30.0, 30.0]
        assert store.is_online is False
