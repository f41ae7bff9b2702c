"""Store Protocol 接口定义

定义 TaskStore、SessionStore、EventStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
外部持久化协作方只需满足这些简单的 get/create/list 调用。
"""

from collections.abc import Iterable
from typing import Protocol

from ..models.enums import EventType
from ..models.event import Event
from ..models.session import Session
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        ...

    async def list_tasks(
        self,
        workspace_id: str | None = None,
        status: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持按 workspace / 状态筛选"""
        ...

    async def update_task_status(
        self,
        task_id: str,
        status: str,
        updated_at: str,
    ) -> None:
        """更新任务状态（仅通过流转事务调用）"""
        ...


class SessionStore(Protocol):
    """Session 存储接口"""

    async def insert_session(self, session: Session) -> None:
        """插入会话记录"""
        ...

    async def get_session(self, session_id: str) -> Session | None:
        """根据 session_id 查询会话"""
        ...

    async def find_active(self, task_id: str, agent_id: str) -> Session | None:
        """查询 (task_id, agent_id) 的 active 会话"""
        ...

    async def list_by_task(self, task_id: str) -> list[Session]:
        """查询任务的全部会话"""
        ...

    async def mark_terminal(self, session_id: str, status: str, ended_at: str) -> bool:
        """将 active 会话置为终态"""
        ...

    async def delete_session(self, session_id: str) -> bool:
        """删除会话记录"""
        ...


class EventStore(Protocol):
    """Event 存储接口

    事件表 append-only：只允许插入，按保留上限整体淘汰。
    """

    async def append_event(self, event: Event) -> int:
        """追加事件，返回 seq"""
        ...

    async def prune(self, retention: int) -> int:
        """淘汰超出保留上限的最旧事件"""
        ...

    async def list_recent(
        self,
        limit: int = 50,
        types: Iterable[EventType] | None = None,
    ) -> list[Event]:
        """查询最近的事件，最新在前"""
        ...
