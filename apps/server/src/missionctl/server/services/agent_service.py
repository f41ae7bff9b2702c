"""AgentService -- Agent 最小记录的登记与查询

Agent 档案由外部管理；此处只登记派发与事件消息需要的字段，
登记时写入 AGENT_JOINED 事件。
"""

import structlog
from missionctl.core.clock import Clock, SystemClock
from missionctl.core.models import Agent, Event, EventType
from missionctl.core.store import StoreGroup, create_agent_with_event
from ulid import ULID

from .event_bus import EventBus

log = structlog.get_logger()


class AgentService:
    """Agent 业务服务"""

    def __init__(
        self,
        store_group: StoreGroup,
        event_bus: EventBus,
        clock: Clock | None = None,
    ) -> None:
        self._stores = store_group
        self._bus = event_bus
        self._clock = clock or SystemClock()

    async def create_agent(
        self,
        name: str,
        workspace_id: str,
        role: str = "",
        agent_id: str | None = None,
    ) -> tuple[Agent, Event]:
        now = self._clock.now()
        agent = Agent(
            agent_id=agent_id or str(ULID()),
            workspace_id=workspace_id,
            name=name,
            role=role,
            created_at=now,
        )
        event = Event(
            event_id=str(ULID()),
            type=EventType.AGENT_JOINED,
            message=f"{agent.name} joined the team",
            agent_id=agent.agent_id,
            workspace_id=workspace_id,
            payload={"name": agent.name, "role": agent.role},
            created_at=now,
        )
        stored = await create_agent_with_event(
            self._stores.conn,
            self._stores.agent_store,
            self._stores.event_store,
            agent,
            event,
            self._bus.retention,
        )
        await self._bus.broadcast(stored)
        log.info("agent_registered", agent_id=agent.agent_id)
        return agent, stored

    async def get_agent(self, agent_id: str) -> Agent | None:
        return await self._stores.agent_store.get_agent(agent_id)

    async def list_agents(self, workspace_id: str | None = None) -> list[Agent]:
        return await self._stores.agent_store.list_agents(workspace_id)
