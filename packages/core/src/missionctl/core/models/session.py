"""Session Domain Model -- Gateway 执行的单元

session_id 由 Gateway 分配；同一 (task_id, agent_id) 最多一个 active 会话。
completed / failed 为终态，ended_at 只在首次进入终态时写入。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import TERMINAL_SESSION_STATES, SessionStatus, SessionType


class Session(BaseModel):
    """远端 Agent 会话"""

    session_id: str = Field(description="Gateway 分配的会话 ID")
    task_id: str | None = Field(default=None, description="关联的 Task ID")
    agent_id: str | None = Field(default=None, description="关联的 Agent ID")
    workspace_id: str = Field(default="", description="所属工作区")
    session_type: SessionType = Field(
        default=SessionType.SUBAGENT, description="会话类型"
    )
    status: SessionStatus = Field(default=SessionStatus.ACTIVE, description="会话状态")
    channel: str | None = Field(default=None, description="Gateway 通道标识")
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")
    ended_at: datetime | None = Field(default=None, description="进入终态的时间")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_SESSION_STATES

    def duration_seconds(self, now: datetime) -> int:
        """会话时长（秒），未结束的会话按 now 计算"""
        end = self.ended_at or now
        return max(0, int((end - self.created_at).total_seconds()))
