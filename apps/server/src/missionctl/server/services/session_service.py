"""SessionService -- 会话终态通知与删除

Gateway（或操作员）通过 PATCH 报告会话结束；首次进入终态时写入
AGENT_STATUS_CHANGED 事件，重复通知不产生新事件。
删除会话只移除本地记录，不通知 Gateway 取消远端工作。
"""

from datetime import datetime

import structlog
from missionctl.core.clock import Clock, SystemClock
from missionctl.core.models import (
    Event,
    EventType,
    Session,
    SessionEndedPayload,
)
from missionctl.core.registry import SessionRegistry
from ulid import ULID

from .event_bus import EventBus

log = structlog.get_logger()


class SessionService:
    """会话业务服务"""

    def __init__(
        self,
        registry: SessionRegistry,
        event_bus: EventBus,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._bus = event_bus
        self._clock = clock or SystemClock()

    async def finish(
        self,
        session_id: str,
        status: str,
        ended_at: datetime | None = None,
    ) -> tuple[Session, Event | None]:
        """将会话置为 completed / failed

        Raises:
            TaskValidationError: 目标状态不是终态
            SessionNotFoundError: 会话不存在
        """
        session, changed = await self._registry.mark_terminal(
            session_id, status, ended_at or self._clock.now()
        )
        if not changed:
            return session, None

        duration_s = session.duration_seconds(self._clock.now())
        event = Event(
            event_id=str(ULID()),
            type=EventType.AGENT_STATUS_CHANGED,
            message=f"Session {session_id} {session.status.value} after {duration_s}s",
            task_id=session.task_id,
            agent_id=session.agent_id,
            session_id=session_id,
            workspace_id=session.workspace_id,
            payload=SessionEndedPayload(
                session_id=session_id,
                session_status=session.status,
                duration_s=duration_s,
            ).model_dump(mode="json"),
            created_at=self._clock.now(),
        )
        stored = await self._bus.publish(event)
        log.info(
            "session_finished",
            session_id=session_id,
            status=session.status.value,
            duration_s=duration_s,
        )
        return session, stored

    async def delete(self, session_id: str) -> Session:
        """删除会话记录

        Raises:
            SessionNotFoundError: 会话不存在
        """
        session = await self._registry.delete(session_id)
        log.info("session_deleted", session_id=session_id, status=session.status.value)
        return session
