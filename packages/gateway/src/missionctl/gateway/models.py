"""Gateway 请求/响应模型"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """POST /sessions 请求体"""

    agent_id: str = Field(description="目标 Agent")
    agent_name: str = Field(default="", description="Agent 名称")
    task_id: str = Field(description="关联的 Task ID")
    task_title: str = Field(default="", description="任务标题")
    workspace_id: str = Field(default="", description="所属工作区")
    session_type: Literal["primary", "subagent"] = Field(
        default="subagent",
        description="会话类型",
    )


class GatewaySession(BaseModel):
    """Gateway 返回的会话记录"""

    session_id: str = Field(description="Gateway 分配的会话 ID")
    status: Literal["active", "completed", "failed"] = Field(default="active")
    session_type: Literal["primary", "subagent"] = Field(default="subagent")
    agent_id: str | None = Field(default=None)
    task_id: str | None = Field(default=None)
    channel: str | None = Field(default=None, description="Gateway 通道标识")
    created_at: datetime | None = Field(default=None)
    ended_at: datetime | None = Field(default=None)


class UpdateSessionRequest(BaseModel):
    """PATCH /sessions/{id} 请求体"""

    status: Literal["completed", "failed"] = Field(description="终态")
    ended_at: datetime | None = Field(default=None, description="结束时间")
