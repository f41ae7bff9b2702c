"""MissionControlClient -- Mission Control REST API 客户端

订阅方通过它读取权威快照并提交状态流转。
"""

import httpx
import structlog
from missionctl.core.models import Agent, Event, Session, Task

from .exceptions import ApiError, ConnectionLostError

log = structlog.get_logger()


def _parse_error(resp: httpx.Response) -> tuple[str, str]:
    try:
        error = resp.json().get("error", {})
        return str(error.get("code", f"HTTP_{resp.status_code}")), str(
            error.get("message", "")
        )
    except (ValueError, AttributeError):
        return f"HTTP_{resp.status_code}", resp.text[:200]


class MissionControlClient:
    """Mission Control HTTP 客户端"""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout_s,
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TransportError as e:
            raise ConnectionLostError(self._base_url, e) from e
        if resp.status_code >= 400:
            code, message = _parse_error(resp)
            raise ApiError(resp.status_code, code, message)
        return resp.json()

    async def list_tasks(self, workspace_id: str | None = None) -> list[Task]:
        params = {"workspace_id": workspace_id} if workspace_id else {}
        body = await self._request("GET", "/api/tasks", params=params)
        return [Task.model_validate(t) for t in body["tasks"]]

    async def get_task(self, task_id: str) -> Task:
        body = await self._request("GET", f"/api/tasks/{task_id}")
        return Task.model_validate(body["task"])

    async def update_task_status(self, task_id: str, status: str) -> Task:
        """PATCH /api/tasks/{task_id}，返回服务端确认后的任务"""
        body = await self._request(
            "PATCH", f"/api/tasks/{task_id}", json={"status": status}
        )
        return Task.model_validate(body["task"])

    async def list_agents(self, workspace_id: str | None = None) -> list[Agent]:
        params = {"workspace_id": workspace_id} if workspace_id else {}
        body = await self._request("GET", "/api/agents", params=params)
        return [Agent.model_validate(a) for a in body["agents"]]

    async def list_events(self, feed_filter: str = "all", limit: int = 50) -> list[Event]:
        body = await self._request(
            "GET", "/api/events", params={"filter": feed_filter, "limit": limit}
        )
        return [Event.model_validate(e) for e in body["events"]]

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
    ) -> list[Session]:
        params = {}
        if session_type:
            params["session_type"] = session_type
        if status:
            params["status"] = status
        body = await self._request("GET", "/api/sessions", params=params)
        return [Session.model_validate(s) for s in body["sessions"]]

    async def aclose(self) -> None:
        await self._http.aclose()
