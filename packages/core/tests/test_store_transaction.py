"""Store 事务测试：状态与事件同事务提交，失败整体回滚"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from missionctl.core.models import Event, EventType, TaskStatus
from missionctl.core.store import (
    assign_agent_and_append_event,
    create_agent_with_event,
    create_task_with_event,
    update_status_and_append_event,
)

T0 = datetime(2026, 1, 1, tzinfo=UTC)


def _event(event_id: str, event_type: EventType, task_id: str | None = None) -> Event:
    return Event(
        event_id=event_id,
        type=event_type,
        message=event_type.value,
        task_id=task_id,
        created_at=T0,
    )


class TestCreateTask:
    async def test_task_and_event_committed(self, store_group, make_task):
        task = make_task()
        stored = await create_task_with_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task,
            _event("e1", EventType.TASK_CREATED, task.task_id),
            retention=100,
        )
        assert stored.seq is not None
        assert await store_group.task_store.get_task(task.task_id) == task
        assert await store_group.event_store.count_events() == 1


class TestUpdateStatus:
    async def test_status_and_event_atomic(self, store_group, make_task):
        task = make_task()
        await create_task_with_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task,
            _event("e1", EventType.TASK_CREATED, task.task_id),
            retention=100,
        )
        await update_status_and_append_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task.task_id,
            TaskStatus.ASSIGNED.value,
            _event("e2", EventType.TASK_STATUS_CHANGED, task.task_id),
            retention=100,
        )
        reloaded = await store_group.task_store.get_task(task.task_id)
        assert reloaded.status == TaskStatus.ASSIGNED
        assert await store_group.event_store.count_events() == 2

    async def test_event_failure_rolls_back_status(self, store_group, make_task):
        """事件写入失败时状态更新一并回滚"""
        task = make_task()
        await create_task_with_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task,
            _event("e1", EventType.TASK_CREATED, task.task_id),
            retention=100,
        )
        with patch.object(
            store_group.event_store,
            "append_event",
            AsyncMock(side_effect=RuntimeError("disk full")),
        ):
            with pytest.raises(RuntimeError):
                await update_status_and_append_event(
                    store_group.conn,
                    store_group.task_store,
                    store_group.event_store,
                    task.task_id,
                    TaskStatus.DONE.value,
                    _event("e2", EventType.TASK_COMPLETED, task.task_id),
                    retention=100,
                )
        reloaded = await store_group.task_store.get_task(task.task_id)
        assert reloaded.status == TaskStatus.INBOX
        assert await store_group.event_store.count_events() == 1


class TestAssignAndAgents:
    async def test_assign_agent(self, store_group, make_task, make_agent):
        task = make_task()
        agent = make_agent()
        await create_agent_with_event(
            store_group.conn,
            store_group.agent_store,
            store_group.event_store,
            agent,
            _event("e0", EventType.AGENT_JOINED),
            retention=100,
        )
        await create_task_with_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task,
            _event("e1", EventType.TASK_CREATED, task.task_id),
            retention=100,
        )
        await assign_agent_and_append_event(
            store_group.conn,
            store_group.task_store,
            store_group.event_store,
            task.task_id,
            agent.agent_id,
            _event("e2", EventType.TASK_ASSIGNED, task.task_id),
            retention=100,
        )
        reloaded = await store_group.task_store.get_task(task.task_id)
        assert reloaded.assigned_agent_id == agent.agent_id
        assert await store_group.agent_store.get_agent(agent.agent_id) == agent
        assert [a.agent_id for a in await store_group.agent_store.list_agents("ws-1")] == [
            agent.agent_id
        ]

    async def test_count_by_status(self, store_group, make_task):
        for i, status in enumerate([TaskStatus.INBOX, TaskStatus.INBOX, TaskStatus.DONE]):
            task = make_task(task_id=f"task-{i}", status=status)
            await create_task_with_event(
                store_group.conn,
                store_group.task_store,
                store_group.event_store,
                task,
                _event(f"e{i}", EventType.TASK_CREATED, task.task_id),
                retention=100,
            )
        counts = await store_group.task_store.count_by_status("ws-1")
        assert counts == {"inbox": 2, "done": 1}
