"""TaskService -- 任务状态机

负责任务创建、指派与状态流转：
1. 校验目标状态，拒绝非法值与 no-op 流转
2. 同一事务内更新状态并写入 TASK_STATUS_CHANGED / TASK_COMPLETED 事件
3. 事件落盘后广播
4. 评估自动派发判定，命中时在后台调度 DispatchService

派发失败不会回滚已完成的流转。
"""

import asyncio
import weakref

import structlog
from missionctl.core.clock import Clock, SystemClock
from missionctl.core.dispatch import DISPATCH_STATUSES, should_dispatch
from missionctl.core.exceptions import (
    AgentNotFoundError,
    DispatchNotEligibleError,
    TaskNotFoundError,
    TaskValidationError,
)
from missionctl.core.models import (
    Agent,
    Event,
    EventType,
    StatusChangedPayload,
    Task,
    TaskAssignedPayload,
    TaskCreatedPayload,
    TaskPriority,
    TaskStatus,
    parse_task_status,
    preview_title,
)
from missionctl.core.store import (
    StoreGroup,
    assign_agent_and_append_event,
    create_task_with_event,
    update_status_and_append_event,
)
from pydantic import BaseModel, Field
from ulid import ULID

from .dispatch_service import DispatchResult, DispatchService
from .event_bus import EventBus

log = structlog.get_logger()


class TransitionResult(BaseModel):
    """状态流转结果"""

    task: Task
    event: Event | None = Field(default=None, description="no-op 流转时为 None")
    changed: bool
    dispatch_scheduled: bool = False


class TaskService:
    """任务业务服务"""

    # 同一任务的流转串行执行；不同任务互不阻塞
    _task_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
        weakref.WeakValueDictionary()
    )

    def __init__(
        self,
        store_group: StoreGroup,
        event_bus: EventBus,
        dispatcher: DispatchService | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._stores = store_group
        self._bus = event_bus
        self._dispatcher = dispatcher
        self._clock = clock or SystemClock()

    @classmethod
    def _get_task_lock(cls, task_id: str) -> asyncio.Lock:
        lock = cls._task_locks.get(task_id)
        if lock is None:
            lock = asyncio.Lock()
            cls._task_locks[task_id] = lock
        return lock

    async def create_task(
        self,
        title: str,
        workspace_id: str,
        description: str = "",
        priority: str = TaskPriority.NORMAL.value,
        status: str = TaskStatus.INBOX.value,
        assigned_agent_id: str | None = None,
    ) -> tuple[Task, Event]:
        """创建任务并写入 TASK_CREATED 事件

        创建不是状态流转，不会触发自动派发。

        Raises:
            TaskValidationError: 状态或优先级非法
            AgentNotFoundError: 指定的 Agent 不存在
        """
        initial_status = parse_task_status(status)
        if initial_status is None:
            raise TaskValidationError(f"Invalid status: {status}")
        try:
            task_priority = TaskPriority(priority)
        except ValueError as e:
            raise TaskValidationError(
                f"Invalid priority: {priority}", code="INVALID_PRIORITY"
            ) from e
        if assigned_agent_id is not None:
            await self._require_agent(assigned_agent_id)

        now = self._clock.now()
        task = Task(
            task_id=str(ULID()),
            workspace_id=workspace_id,
            title=title,
            description=description,
            status=initial_status,
            priority=task_priority,
            assigned_agent_id=assigned_agent_id,
            created_at=now,
            updated_at=now,
        )
        event = Event(
            event_id=str(ULID()),
            type=EventType.TASK_CREATED,
            message=f'Task "{preview_title(task.title)}" created',
            task_id=task.task_id,
            agent_id=assigned_agent_id,
            workspace_id=workspace_id,
            payload=TaskCreatedPayload(
                title=task.title,
                status=initial_status,
                priority=task_priority.value,
            ).model_dump(mode="json"),
            created_at=now,
        )

        stored = await create_task_with_event(
            self._stores.conn,
            self._stores.task_store,
            self._stores.event_store,
            task,
            event,
            self._bus.retention,
        )
        await self._bus.broadcast(stored)
        log.info("task_created", task_id=task.task_id, status=initial_status.value)
        return task, stored

    async def transition(self, task_id: str, new_status: str) -> TransitionResult:
        """状态流转

        Raises:
            TaskValidationError: 目标状态不是七个合法值之一
            TaskNotFoundError: 任务不存在
        """
        target = parse_task_status(new_status)
        if target is None:
            raise TaskValidationError(f"Invalid status: {new_status}")

        lock = self._get_task_lock(task_id)
        async with lock:
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)

            old_status = task.status
            if target == old_status:
                log.info("task_transition_noop", task_id=task_id, status=target.value)
                return TransitionResult(task=task, event=None, changed=False)

            now = self._clock.now()
            event_type = (
                EventType.TASK_COMPLETED
                if target == TaskStatus.DONE
                else EventType.TASK_STATUS_CHANGED
            )
            event = Event(
                event_id=str(ULID()),
                type=event_type,
                message=f'Task "{preview_title(task.title)}" moved to {target.value}',
                task_id=task_id,
                agent_id=task.assigned_agent_id,
                workspace_id=task.workspace_id,
                payload=StatusChangedPayload(
                    from_status=old_status,
                    to_status=target,
                ).model_dump(mode="json"),
                created_at=now,
            )
            stored = await update_status_and_append_event(
                self._stores.conn,
                self._stores.task_store,
                self._stores.event_store,
                task_id,
                target.value,
                event,
                self._bus.retention,
            )
            updated = task.model_copy(update={"status": target, "updated_at": now})

        await self._bus.broadcast(stored)
        log.info(
            "task_transition_applied",
            task_id=task_id,
            from_status=old_status.value,
            to_status=target.value,
        )

        scheduled = False
        if should_dispatch(old_status, target, updated.assigned_agent_id):
            scheduled = await self._schedule_dispatch(updated)

        return TransitionResult(
            task=updated,
            event=stored,
            changed=True,
            dispatch_scheduled=scheduled,
        )

    async def assign_agent(self, task_id: str, agent_id: str) -> tuple[Task, Event | None]:
        """指派 Agent 并写入 TASK_ASSIGNED 事件

        指派本身不触发派发；重复指派同一 Agent 不产生事件。

        Raises:
            TaskNotFoundError: 任务不存在
            AgentNotFoundError: Agent 不存在
        """
        agent = await self._require_agent(agent_id)

        lock = self._get_task_lock(task_id)
        async with lock:
            task = await self._stores.task_store.get_task(task_id)
            if task is None:
                raise TaskNotFoundError(task_id)
            if task.assigned_agent_id == agent_id:
                return task, None

            now = self._clock.now()
            event = Event(
                event_id=str(ULID()),
                type=EventType.TASK_ASSIGNED,
                message=f'Task "{preview_title(task.title)}" assigned to {agent.name}',
                task_id=task_id,
                agent_id=agent_id,
                workspace_id=task.workspace_id,
                payload=TaskAssignedPayload(
                    agent_id=agent_id,
                    agent_name=agent.name,
                    previous_agent_id=task.assigned_agent_id,
                ).model_dump(mode="json"),
                created_at=now,
            )
            stored = await assign_agent_and_append_event(
                self._stores.conn,
                self._stores.task_store,
                self._stores.event_store,
                task_id,
                agent_id,
                event,
                self._bus.retention,
            )
            updated = task.model_copy(
                update={"assigned_agent_id": agent_id, "updated_at": now}
            )

        await self._bus.broadcast(stored)
        log.info("task_assigned", task_id=task_id, agent_id=agent_id)
        return updated, stored

    async def redispatch(self, task_id: str) -> DispatchResult:
        """手动重新派发：不看流转边，只要求已指派且处于可派发状态

        Raises:
            TaskNotFoundError: 任务不存在
            DispatchNotEligibleError: 未指派 Agent 或状态不可派发
        """
        task = await self._stores.task_store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if not task.assigned_agent_id or task.status not in DISPATCH_STATUSES:
            raise DispatchNotEligibleError(
                f"Task {task_id} is not eligible for dispatch "
                f"(status={task.status.value}, agent={task.assigned_agent_id})"
            )
        if self._dispatcher is None:
            raise DispatchNotEligibleError("Dispatch is not configured")

        agent_name = await self._agent_name(task.assigned_agent_id)
        log.info("task_redispatch_requested", task_id=task_id)
        return await self._dispatcher.dispatch(
            task.task_id,
            task.title,
            task.assigned_agent_id,
            agent_name,
            task.workspace_id,
        )

    async def get_task(self, task_id: str) -> Task | None:
        """查询任务详情"""
        return await self._stores.task_store.get_task(task_id)

    async def list_tasks(
        self,
        workspace_id: str | None = None,
        status: str | None = None,
    ) -> list[Task]:
        """查询任务列表

        Raises:
            TaskValidationError: status 筛选值非法
        """
        if status is not None and parse_task_status(status) is None:
            raise TaskValidationError(f"Invalid status: {status}")
        return await self._stores.task_store.list_tasks(workspace_id, status)

    async def _schedule_dispatch(self, task: Task) -> bool:
        if self._dispatcher is None:
            log.warning("dispatch_not_configured", task_id=task.task_id)
            return False
        agent_name = await self._agent_name(task.assigned_agent_id)
        self._dispatcher.schedule(
            task.task_id,
            task.title,
            task.assigned_agent_id,
            agent_name,
            task.workspace_id,
        )
        return True

    async def _agent_name(self, agent_id: str) -> str:
        agent = await self._stores.agent_store.get_agent(agent_id)
        return agent.name if agent else agent_id

    async def _require_agent(self, agent_id: str) -> Agent:
        agent = await self._stores.agent_store.get_agent(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        return agent
