"""Session Registry -- 远端会话的本地登记表

所有变更（create / mark_terminal / delete）与派发前的 "active 会话是否存在"
检查共享同一把 (task_id, agent_id) 锁；SQLite 部分唯一索引作为第二道防线。
"""

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import aiosqlite
import structlog

from .clock import Clock, SystemClock
from .exceptions import (
    RegistryError,
    SessionConflictError,
    SessionNotFoundError,
    TaskValidationError,
)
from .models.enums import TERMINAL_SESSION_STATES, SessionStatus
from .models.session import Session
from .store.protocols import SessionStore

log = structlog.get_logger()

_LockKey = tuple[str | None, str | None]


def _is_active_conflict(error: Exception) -> bool:
    text = str(error)
    return "idx_sessions_one_active" in text or "sessions.task_id, sessions.agent_id" in text


def _as_utc(value: datetime) -> datetime:
    """无时区的时间按 UTC 解释"""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class KeyScope:
    """持有 (task_id, agent_id) 锁期间可用的操作"""

    def __init__(self, registry: "SessionRegistry", task_id: str, agent_id: str) -> None:
        self._registry = registry
        self.task_id = task_id
        self.agent_id = agent_id

    async def find_active(self) -> Session | None:
        return await self._registry._store.find_active(self.task_id, self.agent_id)

    async def register(self, session: Session) -> Session:
        return await self._registry._insert(session)


class SessionRegistry:
    """会话登记表"""

    def __init__(
        self,
        conn: aiosqlite.Connection,
        session_store: SessionStore,
        clock: Clock | None = None,
    ) -> None:
        self._conn = conn
        self._store = session_store
        self._clock = clock or SystemClock()
        self._locks: weakref.WeakValueDictionary[_LockKey, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, task_id: str | None, agent_id: str | None) -> asyncio.Lock:
        key = (task_id, agent_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def reserve(self, task_id: str, agent_id: str) -> AsyncIterator[KeyScope]:
        """获取 (task_id, agent_id) 锁，在锁内完成检查与登记"""
        lock = self._lock_for(task_id, agent_id)
        async with lock:
            yield KeyScope(self, task_id, agent_id)

    async def create(self, session: Session) -> Session:
        """登记新会话

        Raises:
            SessionConflictError: 同一 (task_id, agent_id) 已有 active 会话
            RegistryError: 持久化失败
        """
        lock = self._lock_for(session.task_id, session.agent_id)
        async with lock:
            return await self._insert(session)

    async def get(self, session_id: str) -> Session | None:
        return await self._store.get_session(session_id)

    async def find_active(self, task_id: str, agent_id: str) -> Session | None:
        """不加锁的只读查询；派发流程应使用 reserve()"""
        return await self._store.find_active(task_id, agent_id)

    async def list_by_task(self, task_id: str) -> list[Session]:
        return await self._store.list_by_task(task_id)

    async def list_active(
        self,
        session_type: str | None = None,
        agent_id: str | None = None,
        workspace_id: str | None = None,
    ) -> list[Session]:
        return await self._store.list_sessions(
            session_type=session_type,
            status=SessionStatus.ACTIVE.value,
            agent_id=agent_id,
            workspace_id=workspace_id,
        )

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
    ) -> list[Session]:
        return await self._store.list_sessions(session_type=session_type, status=status)

    async def mark_terminal(
        self,
        session_id: str,
        status: str,
        ended_at: datetime | None = None,
    ) -> tuple[Session, bool]:
        """将会话置为终态

        已处于终态的会话直接返回（幂等成功），ended_at 保持首次写入的值，
        以支持 Gateway 完成通知的至少一次投递。

        Returns:
            (会话, 是否本次发生了变化)

        Raises:
            TaskValidationError: 目标状态不是终态
            SessionNotFoundError: 会话不存在
        """
        try:
            target = SessionStatus(status)
        except ValueError:
            target = None
        if target not in TERMINAL_SESSION_STATES:
            raise TaskValidationError(
                f"Session status must be one of completed/failed, got {status}",
                code="INVALID_SESSION_STATUS",
            )

        session = await self._store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        lock = self._lock_for(session.task_id, session.agent_id)
        async with lock:
            ended = _as_utc(ended_at or self._clock.now())
            try:
                changed = await self._store.mark_terminal(
                    session_id, target.value, ended.isoformat()
                )
                await self._conn.commit()
            except aiosqlite.Error as e:
                await self._conn.rollback()
                raise RegistryError(f"Failed to update session {session_id}: {e}") from e

            current = await self._store.get_session(session_id)

        if current is None:
            raise SessionNotFoundError(session_id)
        if not changed:
            log.info(
                "session_terminal_mark_ignored",
                session_id=session_id,
                current_status=current.status.value,
                requested_status=target.value,
            )
        return current, changed

    async def delete(self, session_id: str) -> Session:
        """删除会话记录（不论状态），不会通知 Gateway 取消远端工作

        Raises:
            SessionNotFoundError: 会话不存在
        """
        session = await self._store.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)

        lock = self._lock_for(session.task_id, session.agent_id)
        async with lock:
            try:
                deleted = await self._store.delete_session(session_id)
                await self._conn.commit()
            except aiosqlite.Error as e:
                await self._conn.rollback()
                raise RegistryError(f"Failed to delete session {session_id}: {e}") from e

        if not deleted:
            raise SessionNotFoundError(session_id)
        if session.status == SessionStatus.ACTIVE:
            log.warning(
                "active_session_deleted",
                session_id=session_id,
                task_id=session.task_id,
                agent_id=session.agent_id,
            )
        return session

    async def _insert(self, session: Session) -> Session:
        try:
            await self._store.insert_session(session)
            await self._conn.commit()
        except aiosqlite.IntegrityError as e:
            await self._conn.rollback()
            if _is_active_conflict(e):
                raise SessionConflictError(session.task_id, session.agent_id) from e
            raise RegistryError(f"Failed to register session {session.session_id}: {e}") from e
        except aiosqlite.Error as e:
            await self._conn.rollback()
            raise RegistryError(f"Failed to register session {session.session_id}: {e}") from e
        return session
