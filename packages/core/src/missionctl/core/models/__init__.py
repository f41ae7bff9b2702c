"""Mission Control Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .agent import Agent
from .enums import (
    OUT_OF_QUEUE_STATES,
    PIPELINE_ORDER,
    TERMINAL_SESSION_STATES,
    AgentStatus,
    EventType,
    SessionStatus,
    SessionType,
    TaskPriority,
    TaskStatus,
    parse_task_status,
)
from .event import Event
from .payloads import (
    DispatchFailedPayload,
    SessionEndedPayload,
    SessionStartedPayload,
    StatusChangedPayload,
    TaskAssignedPayload,
    TaskCreatedPayload,
)
from .session import Session
from .task import Task, preview_title

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "AgentStatus",
    "SessionType",
    "SessionStatus",
    "EventType",
    "PIPELINE_ORDER",
    "OUT_OF_QUEUE_STATES",
    "TERMINAL_SESSION_STATES",
    "parse_task_status",
    "preview_title",
    # 实体
    "Task",
    "Agent",
    "Session",
    "Event",
    # Payloads
    "TaskCreatedPayload",
    "TaskAssignedPayload",
    "StatusChangedPayload",
    "SessionStartedPayload",
    "SessionEndedPayload",
    "DispatchFailedPayload",
]
