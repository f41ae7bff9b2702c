"""Gateway Protocol 接口定义

GatewayClient（HTTP）与 EchoGateway（进程内）都满足此接口，
派发服务只依赖 Protocol。
update_session / delete_session 描述 Gateway 侧的会话接口，服务端本身不调用。
"""

from datetime import datetime
from typing import Protocol

from .models import CreateSessionRequest, GatewaySession


class Gateway(Protocol):
    """Gateway 边界接口"""

    async def create_session(self, request: CreateSessionRequest) -> GatewaySession:
        """为 Agent 创建会话"""
        ...

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
    ) -> list[GatewaySession]:
        """查询会话列表"""
        ...

    async def update_session(
        self,
        session_id: str,
        status: str,
        ended_at: datetime | None = None,
    ) -> None:
        """标记会话完成/失败"""
        ...

    async def delete_session(self, session_id: str) -> None:
        """删除会话"""
        ...

    async def health_check(self) -> bool:
        """可达性检查，不抛异常"""
        ...

    async def aclose(self) -> None:
        """释放连接资源"""
        ...
