"""健康检查、统计与 Gateway 状态路由测试"""

from missionctl.gateway import GatewayConfig


class TestHealth:
    async def test_health(self, client):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok"}

    async def test_ready_core_profile_skips_gateway(self, client):
        resp = await client.get("/ready")
        assert resp.status_code == 200
        body = resp.json()
        assert body["profile"] == "core"
        assert body["checks"]["sqlite"] == "ok"
        assert body["checks"]["gateway"] == "skipped"

    async def test_ready_gateway_profile(self, client):
        resp = await client.get("/ready", params={"profile": "gateway"})
        assert resp.json()["checks"]["gateway"] == "ok"

    async def test_ready_gateway_unreachable(self, client, gateway, monkeypatch):
        async def unhealthy():
            return False

        monkeypatch.setattr(gateway, "health_check", unhealthy)
        resp = await client.get("/ready", params={"profile": "gateway"})
        assert resp.status_code == 503
        assert resp.json()["checks"]["gateway"] == "unreachable"


class TestGatewayStatus:
    async def test_echo_status(self, client, seed, app):
        task = await seed()
        await client.patch(f"/api/tasks/{task['task_id']}", json={"status": "assigned"})
        await app.state.dispatcher.drain()

        resp = await client.get("/api/gateway/status")
        assert resp.json() == {"connected": True, "sessions_count": 1, "gateway_url": "echo"}

    async def test_disconnected(self, client, app, gateway, monkeypatch):
        async def unhealthy():
            return False

        monkeypatch.setattr(gateway, "health_check", unhealthy)
        app.state.gateway_config = GatewayConfig(gateway_url="http://gw:1", mode="http")
        resp = await client.get("/api/gateway/status")
        assert resp.status_code == 200
        assert resp.json() == {
            "connected": False,
            "error": "Failed to connect to Gateway",
            "gateway_url": "http://gw:1",
        }


class TestStats:
    async def test_stats(self, client, seed, app):
        task = await seed()
        await seed(status="done", title="Shipped")
        await seed(status="review", title="Review me")
        await client.patch(f"/api/tasks/{task['task_id']}", json={"status": "assigned"})
        await app.state.dispatcher.drain()

        resp = await client.get("/api/stats")
        body = resp.json()
        assert body["active_subagents"] == 1
        assert body["tasks_in_queue"] == 1
        assert body["tasks_by_status"]["assigned"] == 1
        assert body["tasks_by_status"]["done"] == 1
        assert body["tasks_by_status"]["review"] == 1
