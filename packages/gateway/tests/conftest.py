"""Gateway 包测试 fixtures"""

import httpx
import pytest
from missionctl.gateway import CreateSessionRequest, GatewayClient


@pytest.fixture
def create_request() -> CreateSessionRequest:
    return CreateSessionRequest(
        agent_id="agent-1",
        agent_name="Atlas",
        task_id="task-1",
        task_title="Write release notes",
        workspace_id="ws-1",
    )


@pytest.fixture
async def make_client():
    """以 handler 构造注入 MockTransport 的 GatewayClient"""
    clients: list[GatewayClient] = []

    def _make(handler, token: str = "gw-token") -> GatewayClient:
        client = GatewayClient(
            gateway_url="http://gateway.test/",
            gateway_token=token,
            timeout_s=2.0,
            transport=httpx.MockTransport(handler),
        )
        clients.append(client)
        return client

    yield _make
    for client in clients:
        await client.aclose()
