"""Task Domain Model

workspace_id 与 created_at 创建后不可变；
status 的变更只能经由 TaskService.transition 完成。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ..config import TITLE_PREVIEW_LENGTH
from .enums import TaskPriority, TaskStatus


class Task(BaseModel):
    """Task 数据模型 -- 看板上的一个工作项"""

    task_id: str = Field(description="唯一标识，ULID 格式")
    workspace_id: str = Field(description="所属工作区，创建后不可变")
    title: str = Field(description="任务标题")
    description: str = Field(default="", description="任务描述")
    status: TaskStatus = Field(default=TaskStatus.INBOX, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.NORMAL, description="优先级")
    assigned_agent_id: str | None = Field(default=None, description="指派的 Agent ID")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


def preview_title(title: str) -> str:
    """事件消息中使用的标题，超过 TITLE_PREVIEW_LENGTH 时截断并加省略号"""
    if len(title) <= TITLE_PREVIEW_LENGTH:
        return title
    return title[: TITLE_PREVIEW_LENGTH - 1] + "…"
