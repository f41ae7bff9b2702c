"""枚举定义

包含 TaskStatus 流水线、TaskPriority、SessionStatus/SessionType、
AgentStatus、EventType 枚举，以及 PIPELINE_ORDER 和 TERMINAL_SESSION_STATES。
"""

from enum import StrEnum


class TaskStatus(StrEnum):
    """Task 流水线状态

    任意状态之间都可以人工流转；自动派发只在特定边上触发。
    """

    PLANNING = "planning"
    INBOX = "inbox"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    TESTING = "testing"
    REVIEW = "review"
    DONE = "done"


# 看板列顺序（仅用于展示与统计，不约束流转）
PIPELINE_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.PLANNING,
    TaskStatus.INBOX,
    TaskStatus.ASSIGNED,
    TaskStatus.IN_PROGRESS,
    TaskStatus.TESTING,
    TaskStatus.REVIEW,
    TaskStatus.DONE,
)

# 不计入"排队中"的状态
OUT_OF_QUEUE_STATES: set[TaskStatus] = {TaskStatus.REVIEW, TaskStatus.DONE}


class TaskPriority(StrEnum):
    """任务优先级，仅供外部排序/筛选"""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class AgentStatus(StrEnum):
    """Agent 状态"""

    STANDBY = "standby"
    WORKING = "working"
    OFFLINE = "offline"


class SessionType(StrEnum):
    """会话类型"""

    PRIMARY = "primary"
    SUBAGENT = "subagent"


class SessionStatus(StrEnum):
    """会话状态"""

    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_SESSION_STATES: set[SessionStatus] = {
    SessionStatus.COMPLETED,
    SessionStatus.FAILED,
}


class EventType(StrEnum):
    """Live Feed 事件类型"""

    TASK_CREATED = "task_created"
    TASK_ASSIGNED = "task_assigned"
    TASK_STATUS_CHANGED = "task_status_changed"
    TASK_COMPLETED = "task_completed"
    AGENT_JOINED = "agent_joined"
    AGENT_STATUS_CHANGED = "agent_status_changed"
    MESSAGE_SENT = "message_sent"
    SYSTEM = "system"


def parse_task_status(value: str) -> TaskStatus | None:
    """将外部输入解析为 TaskStatus，非法值返回 None"""
    try:
        return TaskStatus(value)
    except ValueError:
        return None
