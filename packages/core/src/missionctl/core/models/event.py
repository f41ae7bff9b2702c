"""Event Domain Model

事件 append-only，创建后不可修改，不允许单条删除。
规范顺序为插入顺序（seq），展示时按最新在前。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .enums import EventType


class Event(BaseModel):
    """Live Feed 事件"""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    type: EventType = Field(description="事件类型")
    message: str = Field(description="人类可读的消息")
    task_id: str | None = Field(default=None, description="关联的 Task ID")
    agent_id: str | None = Field(default=None, description="关联的 Agent ID")
    session_id: str | None = Field(default=None, description="关联的 Session ID")
    workspace_id: str | None = Field(default=None, description="所属工作区")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
    created_at: datetime = Field(description="事件时间戳")
    seq: int | None = Field(default=None, description="写入后由存储分配的插入序号")
