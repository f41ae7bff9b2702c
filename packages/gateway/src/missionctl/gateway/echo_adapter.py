"""EchoGateway -- 进程内 Gateway 适配器

不依赖外部服务，与 GatewayClient 接口一致。
用于本地开发（MISSIONCTL_GATEWAY_MODE=echo）与测试。
"""

import asyncio
from datetime import UTC, datetime

from ulid import ULID

from .exceptions import GatewayError, GatewayRejectedError
from .models import CreateSessionRequest, GatewaySession


class EchoGateway:
    """内存 Gateway

    create_requests 记录每一次 create_session 调用，便于断言调用次数。
    delay_s 模拟远端延迟；fail_with 令后续 create_session 抛出指定异常。
    """

    def __init__(
        self,
        delay_s: float = 0.0,
        fail_with: GatewayError | None = None,
    ) -> None:
        self.delay_s = delay_s
        self.fail_with = fail_with
        self.create_requests: list[CreateSessionRequest] = []
        self._sessions: dict[str, GatewaySession] = {}

    async def create_session(self, request: CreateSessionRequest) -> GatewaySession:
        self.create_requests.append(request)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)
        if self.fail_with is not None:
            raise self.fail_with

        session = GatewaySession(
            session_id=f"echo-{ULID()}",
            status="active",
            session_type=request.session_type,
            agent_id=request.agent_id,
            task_id=request.task_id,
            channel="echo",
            created_at=datetime.now(UTC),
        )
        self._sessions[session.session_id] = session
        return session

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
    ) -> list[GatewaySession]:
        return [
            s
            for s in self._sessions.values()
            if (session_type is None or s.session_type == session_type)
            and (status is None or s.status == status)
        ]

    async def update_session(
        self,
        session_id: str,
        status: str,
        ended_at: datetime | None = None,
    ) -> None:
        session = self._sessions.get(session_id)
        if session is None:
            raise GatewayRejectedError(404, "SESSION_NOT_FOUND", session_id)
        self._sessions[session_id] = session.model_copy(
            update={"status": status, "ended_at": ended_at or datetime.now(UTC)}
        )

    async def delete_session(self, session_id: str) -> None:
        if self._sessions.pop(session_id, None) is None:
            raise GatewayRejectedError(404, "SESSION_NOT_FOUND", session_id)

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        return None
