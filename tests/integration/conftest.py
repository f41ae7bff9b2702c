"""集成测试共享 fixture"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from missionctl.core.clock import ManualClock
from missionctl.core.registry import SessionRegistry
from missionctl.core.store import create_store_group
from missionctl.gateway import EchoGateway, GatewayConfig
from missionctl.server.services.dispatch_service import DispatchService
from missionctl.server.services.event_bus import EventBus


@pytest.fixture
def echo_gateway() -> EchoGateway:
    return EchoGateway()


@pytest_asyncio.fixture
async def integration_app(tmp_path: Path, monkeypatch, echo_gateway):
    """集成测试用 FastAPI app，组件按 lifespan 顺序装配"""
    monkeypatch.setenv("MISSIONCTL_DB_PATH", str(tmp_path / "test.db"))
    monkeypatch.setenv("MISSIONCTL_GATEWAY_MODE", "echo")
    monkeypatch.setenv("LOGFIRE_SEND_TO_LOGFIRE", "false")

    from missionctl.server.main import create_app

    app = create_app()

    clock = ManualClock()
    store_group = await create_store_group(str(tmp_path / "test.db"))
    event_bus = EventBus(store_group)
    registry = SessionRegistry(store_group.conn, store_group.session_store, clock=clock)
    app.state.clock = clock
    app.state.store_group = store_group
    app.state.event_bus = event_bus
    app.state.registry = registry
    app.state.gateway = echo_gateway
    app.state.gateway_config = GatewayConfig(mode="echo", timeout_s=0.2)
    app.state.dispatcher = DispatchService(
        registry, echo_gateway, event_bus, timeout_s=0.2, clock=clock
    )

    yield app

    await app.state.dispatcher.drain()
    await store_group.conn.close()


@pytest_asyncio.fixture
async def client(integration_app) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=integration_app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest.fixture
def create_assigned_task(client):
    """登记 Agent 并创建已指派、处于 inbox 的任务"""

    async def _create(title: str = "Write release notes") -> dict:
        resp = await client.get("/api/agents")
        if not resp.json()["agents"]:
            resp = await client.post(
                "/api/agents",
                json={"name": "Atlas", "workspace_id": "ws-1", "agent_id": "agent-1"},
            )
            assert resp.status_code == 201
        resp = await client.post(
            "/api/tasks",
            json={"title": title, "workspace_id": "ws-1", "assigned_agent_id": "agent-1"},
        )
        assert resp.status_code == 201
        return resp.json()["task"]

    return _create
