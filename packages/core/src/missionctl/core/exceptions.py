"""Core 异常体系

路由层把这些异常映射为 {"error": {"code", "message"}} 响应体。
"""


class MissionControlError(Exception):
    """Core 包基础异常"""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code


class TaskValidationError(MissionControlError):
    """请求格式非法（如非法状态值、未知过滤器），不产生事件也不触发派发"""

    code = "INVALID_STATUS"


class TaskNotFoundError(MissionControlError):
    """任务不存在"""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id {task_id} does not exist")
        self.task_id = task_id


class AgentNotFoundError(MissionControlError):
    """Agent 不存在"""

    code = "AGENT_NOT_FOUND"

    def __init__(self, agent_id: str) -> None:
        super().__init__(f"Agent with id {agent_id} does not exist")
        self.agent_id = agent_id


class SessionNotFoundError(MissionControlError):
    """会话不存在"""

    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session with id {session_id} does not exist")
        self.session_id = session_id


class SessionConflictError(MissionControlError):
    """同一 (task_id, agent_id) 已存在 active 会话

    派发流程内部消化此异常：返回已有会话，不视为失败。
    """

    code = "SESSION_CONFLICT"

    def __init__(self, task_id: str | None, agent_id: str | None) -> None:
        super().__init__(
            f"Active session already exists for task {task_id} / agent {agent_id}"
        )
        self.task_id = task_id
        self.agent_id = agent_id


class RegistryError(MissionControlError):
    """会话登记持久化失败

    发生在 Gateway 已创建会话之后时，远端会话成为孤儿。
    """

    code = "REGISTRY_FAILED"


class DispatchNotEligibleError(MissionControlError):
    """手动重新派发时任务不满足派发条件"""

    code = "DISPATCH_NOT_ELIGIBLE"
