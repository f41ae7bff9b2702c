"""Client 包测试 fixtures"""

import asyncio
from datetime import UTC, datetime

import pytest
from missionctl.client import ApiError, ConnectionLostError
from missionctl.core.clock import ManualClock
from missionctl.core.models import Agent, Event, EventType, Session, Task

T0 = datetime(2026, 1, 1, tzinfo=UTC)


class FakeApi:
    """内存版 MissionControlClient

    offline=True 时所有读取抛出 ConnectionLostError；
    update_gates 中为某个目标状态放置 asyncio.Event 可让对应 PATCH 挂起，
    update_failures 中的目标状态返回 ApiError。
    """

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.agents: list[Agent] = []
        self.events: list[Event] = []
        self.sessions: list[Session] = []
        self.offline = False
        self.update_gates: dict[str, asyncio.Event] = {}
        self.update_failures: set[str] = set()
        self.update_calls: list[tuple[str, str]] = []

    def _check_online(self) -> None:
        if self.offline:
            raise ConnectionLostError("http://fake", OSError("down"))

    async def list_tasks(self, workspace_id=None):
        self._check_online()
        return list(self.tasks.values())

    async def list_agents(self, workspace_id=None):
        self._check_online()
        return list(self.agents)

    async def list_events(self, feed_filter="all", limit=50):
        self._check_online()
        return self.events[:limit]

    async def list_sessions(self, session_type=None, status=None):
        self._check_online()
        return [
            s
            for s in self.sessions
            if (session_type is None or s.session_type == session_type)
            and (status is None or s.status == status)
        ]

    async def update_task_status(self, task_id, status):
        self.update_calls.append((task_id, status))
        gate = self.update_gates.get(status)
        if gate is not None:
            await gate.wait()
        if status in self.update_failures:
            raise ApiError(500, "INTERNAL_ERROR", "boom")
        task = self.tasks[task_id].model_copy(update={"status": status})
        self.tasks[task_id] = task
        return task


@pytest.fixture
def fake_api() -> FakeApi:
    api = FakeApi()
    api.tasks["t1"] = Task(
        task_id="t1",
        workspace_id="ws-1",
        title="Write release notes",
        created_at=T0,
        updated_at=T0,
    )
    api.agents.append(Agent(agent_id="agent-1", workspace_id="ws-1", name="Atlas", created_at=T0))
    api.events.append(
        Event(event_id="e1", type=EventType.TASK_CREATED, message="created", created_at=T0)
    )
    return api


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=T0)


@pytest.fixture
def make_event():
    def _make(event_id: str, event_type: EventType = EventType.SYSTEM) -> Event:
        return Event(event_id=event_id, type=event_type, message=event_id, created_at=T0)

    return _make
