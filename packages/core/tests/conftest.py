"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from missionctl.core.clock import ManualClock
from missionctl.core.models import Agent, Task, TaskStatus
from missionctl.core.registry import SessionRegistry
from missionctl.core.store import StoreGroup, create_store_group

_T0 = datetime(2026, 1, 1, tzinfo=UTC)


@pytest_asyncio.fixture
async def store_group(tmp_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层 StoreGroup（临时数据库）"""
    sg = await create_store_group(str(tmp_path / "core_test.db"))
    yield sg
    await sg.conn.close()


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=_T0)


@pytest.fixture
def registry(store_group: StoreGroup, clock: ManualClock) -> SessionRegistry:
    return SessionRegistry(store_group.conn, store_group.session_store, clock=clock)


@pytest.fixture
def make_task():
    """Task 工厂"""

    def _make(
        task_id: str = "01JTASK0000000000000000001",
        status: TaskStatus = TaskStatus.INBOX,
        assigned_agent_id: str | None = None,
        title: str = "Write release notes",
        workspace_id: str = "ws-1",
    ) -> Task:
        return Task(
            task_id=task_id,
            workspace_id=workspace_id,
            title=title,
            status=status,
            assigned_agent_id=assigned_agent_id,
            created_at=_T0,
            updated_at=_T0,
        )

    return _make


@pytest.fixture
def make_agent():
    """Agent 工厂"""

    def _make(agent_id: str = "agent-1", name: str = "Atlas") -> Agent:
        return Agent(agent_id=agent_id, workspace_id="ws-1", name=name, created_at=_T0)

    return _make
