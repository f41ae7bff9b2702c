"""Agent 最小记录

Agent 档案由外部子系统管理，这里只保留派发与事件消息需要的字段。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import AgentStatus


class Agent(BaseModel):
    """可被派发的 Agent"""

    agent_id: str = Field(description="Agent 标识")
    workspace_id: str = Field(description="所属工作区")
    name: str = Field(description="展示名称")
    role: str = Field(default="", description="角色描述")
    status: AgentStatus = Field(default=AgentStatus.STANDBY, description="Agent 状态")
    created_at: datetime = Field(description="创建时间")
