"""DispatchService -- 自动派发执行器

流程：
1. 在 (task_id, agent_id) 登记锁内检查是否已有 active 会话，有则直接复用
2. 调用 Gateway 创建会话（asyncio.wait_for 限时）
3. 成功：登记 subagent/active 会话，写入 AGENT_STATUS_CHANGED 事件
4. Gateway 失败：不重试，写入 SYSTEM 事件
5. Gateway 成功但登记失败：critical 日志记录孤儿会话，写入 SYSTEM 事件

登记锁覆盖 Gateway 调用，同一 (task, agent) 的并发派发最多创建一个会话。
"""

import asyncio
from typing import Literal

import structlog
from missionctl.core.clock import Clock, SystemClock
from missionctl.core.exceptions import RegistryError, SessionConflictError
from missionctl.core.models import (
    DispatchFailedPayload,
    Event,
    EventType,
    Session,
    SessionStartedPayload,
    SessionStatus,
    SessionType,
    preview_title,
)
from missionctl.core.registry import SessionRegistry
from missionctl.gateway import CreateSessionRequest, Gateway, GatewayError
from pydantic import BaseModel, Field
from ulid import ULID

from .event_bus import EventBus

log = structlog.get_logger()

DispatchFailureReason = Literal[
    "gateway_unreachable",
    "gateway_rejected",
    "gateway_timeout",
    "registry_failed",
]

_GATEWAY_REASONS = ("gateway_unreachable", "gateway_rejected", "gateway_timeout")


def _failure_reason(error: GatewayError) -> str:
    """未细分的 GatewayError 归入 gateway_rejected"""
    return error.reason if error.reason in _GATEWAY_REASONS else "gateway_rejected"


class DispatchError(BaseModel):
    """派发失败原因"""

    reason: DispatchFailureReason
    message: str = Field(default="", description="错误说明")


class DispatchResult(BaseModel):
    """派发结果"""

    ok: bool
    session_id: str | None = Field(default=None, description="新建或复用的会话 ID")
    reused: bool = Field(default=False, description="是否复用了已有 active 会话")
    error: DispatchError | None = None


class DispatchService:
    """派发执行器 -- 应用级单例，持有后台派发任务"""

    def __init__(
        self,
        registry: SessionRegistry,
        gateway: Gateway,
        event_bus: EventBus,
        timeout_s: float = 10.0,
        clock: Clock | None = None,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._bus = event_bus
        self._timeout_s = timeout_s
        self._clock = clock or SystemClock()
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        task_id: str,
        task_title: str,
        agent_id: str,
        agent_name: str,
        workspace_id: str,
    ) -> asyncio.Task:
        """以后台任务运行 dispatch()，调用方不等待结果"""
        bg = asyncio.create_task(
            self.dispatch(task_id, task_title, agent_id, agent_name, workspace_id),
            name=f"dispatch-{task_id}-{agent_id}",
        )
        self._tasks.add(bg)
        bg.add_done_callback(self._on_done)
        return bg

    def _on_done(self, bg: asyncio.Task) -> None:
        self._tasks.discard(bg)
        if bg.cancelled():
            log.warning("dispatch_task_cancelled", task_name=bg.get_name())
            return
        exc = bg.exception()
        if exc is not None:
            log.error(
                "dispatch_task_crashed",
                task_name=bg.get_name(),
                error_type=type(exc).__name__,
                error=str(exc),
            )

    async def drain(self) -> None:
        """等待所有进行中的派发完成（关闭或测试时使用）"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def dispatch(
        self,
        task_id: str,
        task_title: str,
        agent_id: str,
        agent_name: str,
        workspace_id: str,
    ) -> DispatchResult:
        """为 (task, agent) 请求 Gateway 会话并登记"""
        orphaned_session_id: str | None = None

        async with self._registry.reserve(task_id, agent_id) as scope:
            existing = await scope.find_active()
            if existing is not None:
                log.info(
                    "dispatch_reused_session",
                    task_id=task_id,
                    agent_id=agent_id,
                    session_id=existing.session_id,
                )
                return DispatchResult(ok=True, session_id=existing.session_id, reused=True)

            request = CreateSessionRequest(
                agent_id=agent_id,
                agent_name=agent_name,
                task_id=task_id,
                task_title=task_title,
                workspace_id=workspace_id,
                session_type=SessionType.SUBAGENT.value,
            )
            log.info("dispatch_started", task_id=task_id, agent_id=agent_id)

            try:
                remote = await asyncio.wait_for(
                    self._gateway.create_session(request),
                    timeout=self._timeout_s,
                )
            except TimeoutError:
                error = DispatchError(
                    reason="gateway_timeout",
                    message=f"Gateway did not respond within {self._timeout_s}s",
                )
            except GatewayError as e:
                error = DispatchError(reason=_failure_reason(e), message=str(e))
            else:
                error = None

            if error is None:
                now = self._clock.now()
                session = Session(
                    session_id=remote.session_id,
                    task_id=task_id,
                    agent_id=agent_id,
                    workspace_id=workspace_id,
                    session_type=SessionType.SUBAGENT,
                    status=SessionStatus.ACTIVE,
                    channel=remote.channel,
                    created_at=now,
                    updated_at=now,
                )
                try:
                    await scope.register(session)
                except SessionConflictError:
                    # 锁外的写入方抢先登记；返回已有会话
                    existing = await scope.find_active()
                    if existing is not None:
                        log.warning(
                            "dispatch_session_conflict",
                            task_id=task_id,
                            agent_id=agent_id,
                            session_id=existing.session_id,
                            discarded_session_id=remote.session_id,
                        )
                        return DispatchResult(
                            ok=True, session_id=existing.session_id, reused=True
                        )
                    error = DispatchError(
                        reason="registry_failed",
                        message="Session conflict without an active session",
                    )
                    orphaned_session_id = remote.session_id
                except RegistryError as e:
                    error = DispatchError(reason="registry_failed", message=str(e))
                    orphaned_session_id = remote.session_id

        if error is not None:
            if orphaned_session_id is not None:
                log.critical(
                    "dispatch_session_orphaned",
                    task_id=task_id,
                    agent_id=agent_id,
                    session_id=orphaned_session_id,
                    error=error.message,
                )
            else:
                log.warning(
                    "dispatch_failed",
                    task_id=task_id,
                    agent_id=agent_id,
                    reason=error.reason,
                    error=error.message,
                )
            await self._emit(
                Event(
                    event_id=str(ULID()),
                    type=EventType.SYSTEM,
                    message=(
                        f'Dispatch of "{preview_title(task_title)}" to {agent_name} '
                        f"failed: {error.reason}"
                    ),
                    task_id=task_id,
                    agent_id=agent_id,
                    session_id=orphaned_session_id,
                    workspace_id=workspace_id,
                    payload=DispatchFailedPayload(
                        reason=error.reason,
                        agent_id=agent_id,
                        error_message=error.message,
                        orphaned_session_id=orphaned_session_id,
                    ).model_dump(mode="json"),
                    created_at=self._clock.now(),
                )
            )
            return DispatchResult(ok=False, error=error)

        log.info(
            "dispatch_succeeded",
            task_id=task_id,
            agent_id=agent_id,
            session_id=session.session_id,
        )
        await self._emit(
            Event(
                event_id=str(ULID()),
                type=EventType.AGENT_STATUS_CHANGED,
                message=(
                    f'Dispatched "{preview_title(task_title)}" to {agent_name} '
                    f"(session {session.session_id})"
                ),
                task_id=task_id,
                agent_id=agent_id,
                session_id=session.session_id,
                workspace_id=workspace_id,
                payload=SessionStartedPayload(
                    session_id=session.session_id,
                    agent_name=agent_name,
                ).model_dump(mode="json"),
                created_at=self._clock.now(),
            )
        )
        return DispatchResult(ok=True, session_id=session.session_id)

    async def _emit(self, event: Event) -> None:
        """写入派发事件；事件写入失败不改变派发结果"""
        try:
            await self._bus.publish(event)
        except Exception as e:
            log.error(
                "dispatch_event_write_failed",
                event_type=event.type.value,
                task_id=event.task_id,
                error_type=type(e).__name__,
                error=str(e),
            )
