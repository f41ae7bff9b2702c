"""事件 Payload 类型

各事件类型的结构化 payload，写入前通过 model_dump() 序列化。
"""

from pydantic import BaseModel, Field

from .enums import SessionStatus, TaskStatus


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED 事件 payload"""

    title: str = Field(description="任务标题")
    status: TaskStatus = Field(description="初始状态")
    priority: str = Field(description="优先级")


class TaskAssignedPayload(BaseModel):
    """TASK_ASSIGNED 事件 payload"""

    agent_id: str = Field(description="被指派的 Agent")
    agent_name: str = Field(default="", description="Agent 名称")
    previous_agent_id: str | None = Field(default=None, description="此前指派的 Agent")


class StatusChangedPayload(BaseModel):
    """TASK_STATUS_CHANGED / TASK_COMPLETED 事件 payload"""

    from_status: TaskStatus = Field(description="原状态")
    to_status: TaskStatus = Field(description="目标状态")


class SessionStartedPayload(BaseModel):
    """派发成功时的 AGENT_STATUS_CHANGED 事件 payload"""

    session_id: str = Field(description="Gateway 会话 ID")
    agent_name: str = Field(default="", description="Agent 名称")
    session_status: SessionStatus = Field(default=SessionStatus.ACTIVE)


class SessionEndedPayload(BaseModel):
    """会话进入终态时的 AGENT_STATUS_CHANGED 事件 payload"""

    session_id: str = Field(description="Gateway 会话 ID")
    session_status: SessionStatus = Field(description="终态")
    duration_s: int = Field(ge=0, description="会话时长（秒）")


class DispatchFailedPayload(BaseModel):
    """派发失败时的 SYSTEM 事件 payload"""

    reason: str = Field(description="失败原因，如 gateway_timeout")
    agent_id: str = Field(description="目标 Agent")
    error_message: str = Field(default="", description="脱敏后的错误说明")
    orphaned_session_id: str | None = Field(
        default=None,
        description="Gateway 已创建但未能登记的会话",
    )
