"""apps/server 测试配置 -- 手动装配 app.state + httpx AsyncClient

ASGITransport 不触发 lifespan，组件在 fixture 中按 lifespan 的顺序装配。
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from missionctl.core.clock import ManualClock
from missionctl.core.registry import SessionRegistry
from missionctl.core.store import create_store_group
from missionctl.gateway import EchoGateway, GatewayConfig


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(start=datetime(2026, 1, 1, tzinfo=UTC))


@pytest.fixture
def gateway() -> EchoGateway:
    return EchoGateway()


@pytest_asyncio.fixture
async def store_group(tmp_path: Path):
    group = await create_store_group(str(tmp_path / "sqlite" / "test.db"))
    yield group
    await group.conn.close()


@pytest.fixture
def event_bus(store_group):
    from missionctl.server.services.event_bus import EventBus

    return EventBus(store_group)


@pytest.fixture
def registry(store_group, clock) -> SessionRegistry:
    return SessionRegistry(store_group.conn, store_group.session_store, clock=clock)


@pytest.fixture
def dispatcher(registry, gateway, event_bus, clock):
    from missionctl.server.services.dispatch_service import DispatchService

    return DispatchService(registry, gateway, event_bus, timeout_s=1.0, clock=clock)


@pytest_asyncio.fixture
async def app(monkeypatch, tmp_path, clock, store_group, event_bus, registry, gateway, dispatcher):
    """创建测试用 FastAPI app 实例"""
    monkeypatch.setenv("MISSIONCTL_DB_PATH", str(tmp_path / "sqlite" / "test.db"))
    monkeypatch.setenv("MISSIONCTL_GATEWAY_MODE", "echo")
    monkeypatch.setenv("MISSIONCTL_DEBUG", "true")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from missionctl.server.main import create_app

    application = create_app()
    application.state.clock = clock
    application.state.store_group = store_group
    application.state.event_bus = event_bus
    application.state.registry = registry
    application.state.gateway = gateway
    application.state.gateway_config = GatewayConfig(mode="echo")
    application.state.dispatcher = dispatcher
    yield application
    await dispatcher.drain()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def seed(client):
    """通过 API 登记 Agent（仅首次）并创建任务，返回任务 JSON"""
    registered: set[str] = set()

    async def _seed(
        status: str = "inbox",
        assigned: bool = True,
        title: str = "Write release notes",
        agent_id: str = "agent-1",
    ) -> dict:
        if assigned and agent_id not in registered:
            resp = await client.post(
                "/api/agents",
                json={"name": "Atlas", "workspace_id": "ws-1", "agent_id": agent_id},
            )
            assert resp.status_code == 201
            registered.add(agent_id)
        resp = await client.post(
            "/api/tasks",
            json={
                "title": title,
                "workspace_id": "ws-1",
                "status": status,
                "assigned_agent_id": agent_id if assigned else None,
            },
        )
        assert resp.status_code == 201
        return resp.json()["task"]

    return _seed
