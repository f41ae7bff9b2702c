"""事件快照路由与可观测性测试"""


class TestEventsRoute:
    async def test_recent_newest_first(self, client, seed):
        await seed(title="First")
        await seed(title="Second")
        resp = await client.get("/api/events")
        messages = [e["message"] for e in resp.json()["events"]]
        assert messages == [
            'Task "Second" created',
            'Task "First" created',
            "Atlas joined the team",
        ]

    async def test_filter_partition(self, client, seed):
        await seed()
        tasks = (await client.get("/api/events", params={"filter": "tasks"})).json()["events"]
        agents = (await client.get("/api/events", params={"filter": "agents"})).json()["events"]
        everything = (await client.get("/api/events")).json()["events"]
        assert len(tasks) + len(agents) == len(everything)
        assert {e["type"] for e in agents} == {"agent_joined"}

    async def test_unknown_filter(self, client):
        resp = await client.get("/api/events", params={"filter": "everything"})
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "INVALID_FILTER"

    async def test_limit_bounds(self, client):
        resp = await client.get("/api/events", params={"limit": 0})
        assert resp.status_code == 422


class TestObservability:
    async def test_request_id_header(self, client):
        resp = await client.get("/health")
        assert len(resp.headers["X-Request-ID"]) == 26

    async def test_debug_logs(self, client, seed):
        await seed()
        resp = await client.get("/api/debug/logs")
        assert resp.status_code == 200
        assert isinstance(resp.json()["entries"], list)
