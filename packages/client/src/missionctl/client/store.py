"""ReconciliationStore -- 订阅方本地视图

- 状态变更先在本地乐观应用，再提交服务端；仅在失败时回滚
- 回滚不会覆盖同一任务上更新的乐观变更
- is_online 只由轮询通道的健康状况决定，与单次变更的结果无关
- 事件流只作为提示，权威状态来自轮询快照
"""

from collections import deque

import structlog
from missionctl.core.clock import Clock, SystemClock
from missionctl.core.config import POLL_INTERVAL_S
from missionctl.core.models import Agent, Event, SessionStatus, SessionType, Task

from .api import MissionControlClient
from .exceptions import ClientError

log = structlog.get_logger()


class LocalTransition:
    """一次本地乐观流转：快照 -> 应用 -> 提交或回滚"""

    def __init__(self, store: "ReconciliationStore", task_id: str, new_status: str) -> None:
        self._store = store
        self.task_id = task_id
        self.new_status = new_status
        self.previous_status: str | None = None
        self.version = 0
        self.state = "pending"

    def apply(self) -> bool:
        task = self._store.tasks.get(self.task_id)
        if task is None:
            return False
        self.previous_status = task.status
        self.version = self._store._bump_version(self.task_id)
        self._store.tasks[self.task_id] = task.model_copy(update={"status": self.new_status})
        self._store._pending[self.task_id] = self._store._pending.get(self.task_id, 0) + 1
        self.state = "applied"
        return True

    def _is_latest(self) -> bool:
        return self._store._versions.get(self.task_id) == self.version

    def commit(self, confirmed: Task | None = None) -> None:
        """服务端确认；本地值已经一致，只在没有更新的乐观变更时采用服务端副本"""
        self._release()
        self.state = "committed"
        if confirmed is not None and self._is_latest():
            self._store.tasks[self.task_id] = confirmed

    def revert(self) -> bool:
        """服务端失败；仅当本地仍是本次变更的结果时恢复原状态

        Returns:
            True 如果确实回滚
        """
        self._release()
        current = self._store.tasks.get(self.task_id)
        if current is None or not self._is_latest():
            self.state = "superseded"
            return False
        self._store.tasks[self.task_id] = current.model_copy(
            update={"status": self.previous_status}
        )
        self.state = "reverted"
        return True

    def _release(self) -> None:
        remaining = self._store._pending.get(self.task_id, 0) - 1
        if remaining > 0:
            self._store._pending[self.task_id] = remaining
        else:
            self._store._pending.pop(self.task_id, None)


class ReconciliationStore:
    """单订阅方的本地任务/Agent/事件视图"""

    def __init__(
        self,
        client: MissionControlClient,
        clock: Clock | None = None,
        poll_interval_s: float = POLL_INTERVAL_S,
        workspace_id: str | None = None,
        max_events: int = 100,
    ) -> None:
        self._client = client
        self._clock = clock or SystemClock()
        self._poll_interval_s = poll_interval_s
        self._workspace_id = workspace_id
        self.tasks: dict[str, Task] = {}
        self.agents: dict[str, Agent] = {}
        self.events: deque[Event] = deque(maxlen=max_events)
        self.active_subagents = 0
        self.is_online = False
        self._versions: dict[str, int] = {}
        self._pending: dict[str, int] = {}

    def _bump_version(self, task_id: str) -> int:
        version = self._versions.get(task_id, 0) + 1
        self._versions[task_id] = version
        return version

    async def move_task(self, task_id: str, new_status: str) -> bool:
        """用户发起的状态变更

        Returns:
            True 如果服务端接受（或目标状态与本地相同），False 如果失败并已处理回滚
        """
        task = self.tasks.get(task_id)
        if task is None:
            log.warning("move_unknown_task", task_id=task_id)
            return False
        if task.status == new_status:
            return True

        transition = LocalTransition(self, task_id, new_status)
        transition.apply()
        try:
            confirmed = await self._client.update_task_status(task_id, new_status)
        except ClientError as e:
            reverted = transition.revert()
            log.warning(
                "optimistic_move_failed",
                task_id=task_id,
                to_status=new_status,
                reverted=reverted,
                error=str(e),
            )
            return False

        transition.commit(confirmed)
        return True

    async def refresh(self) -> bool:
        """拉取权威快照；成功与否决定 is_online

        有进行中乐观变更的任务保留本地状态，待变更完成后由下一次轮询对齐。
        """
        try:
            tasks = await self._client.list_tasks(self._workspace_id)
            agents = await self._client.list_agents(self._workspace_id)
            events = await self._client.list_events(limit=self.events.maxlen or 50)
            active = await self._client.list_sessions(
                session_type=SessionType.SUBAGENT.value,
                status=SessionStatus.ACTIVE.value,
            )
        except ClientError as e:
            if self.is_online:
                log.warning("feed_offline", error=str(e))
            self.is_online = False
            return False

        snapshot = {t.task_id: t for t in tasks}
        for task_id in self._pending:
            local = self.tasks.get(task_id)
            if task_id in snapshot and local is not None:
                snapshot[task_id] = snapshot[task_id].model_copy(
                    update={"status": local.status}
                )
        self.tasks = snapshot
        self.agents = {a.agent_id: a for a in agents}
        self.events.clear()
        self.events.extend(events)
        self.active_subagents = len(active)
        if not self.is_online:
            log.info("feed_online", task_count=len(tasks))
        self.is_online = True
        return True

    def apply_event(self, event: Event) -> None:
        """事件流提示：加入本地事件列表（最新在前），不改变任务状态"""
        if any(e.event_id == event.event_id for e in self.events):
            return
        self.events.appendleft(event)

    async def run(self, ticks: int | None = None) -> None:
        """轮询循环；ticks 为 None 时一直运行"""
        count = 0
        while ticks is None or count < ticks:
            await self.refresh()
            count += 1
            if ticks is not None and count >= ticks:
                break
            await self._clock.sleep(self._poll_interval_s)
