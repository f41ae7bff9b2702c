"""Agent 路由

POST /api/agents: 登记 Agent，写入 AGENT_JOINED 事件
GET  /api/agents: Agent 列表
"""

from fastapi import APIRouter, Depends, Query
from missionctl.core.models import Agent, Event
from pydantic import BaseModel, Field

from ..deps import get_agent_service
from ..services.agent_service import AgentService

router = APIRouter()


class CreateAgentRequest(BaseModel):
    """登记 Agent 请求体"""

    name: str = Field(min_length=1, description="展示名称")
    workspace_id: str = Field(default="default", description="所属工作区")
    role: str = Field(default="", description="角色描述")
    agent_id: str | None = Field(default=None, description="外部系统的 Agent ID，缺省时生成")


class AgentResponse(BaseModel):
    agent: Agent
    event: Event


class AgentListResponse(BaseModel):
    agents: list[Agent]


@router.post("/api/agents", status_code=201, response_model=AgentResponse)
async def create_agent(
    body: CreateAgentRequest,
    service: AgentService = Depends(get_agent_service),
):
    agent, event = await service.create_agent(
        name=body.name,
        workspace_id=body.workspace_id,
        role=body.role,
        agent_id=body.agent_id,
    )
    return AgentResponse(agent=agent, event=event)


@router.get("/api/agents", response_model=AgentListResponse)
async def list_agents(
    workspace_id: str | None = Query(default=None, description="按工作区筛选"),
    service: AgentService = Depends(get_agent_service),
):
    return AgentListResponse(agents=await service.list_agents(workspace_id))
