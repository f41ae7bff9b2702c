"""自动派发判定

纯函数，无副作用、无 I/O，可对 状态 x 状态 x {有/无 Agent} 全量穷举测试。
"""

from .models.enums import TaskStatus

# 表示"Agent 现在应该开始工作"的状态；任务可以直接指派进入进行中
DISPATCH_STATUSES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS}
)


def should_dispatch(
    old_status: TaskStatus,
    new_status: TaskStatus,
    assigned_agent_id: str | None,
) -> bool:
    """判断一次状态流转是否需要自动派发

    Args:
        old_status: 流转前状态
        new_status: 流转后状态
        assigned_agent_id: 任务当前指派的 Agent，未指派为 None

    Returns:
        True 仅当状态确实变化、已指派 Agent、且新状态属于 DISPATCH_STATUSES
    """
    if not assigned_agent_id:
        return False
    if new_status == old_status:
        return False
    return new_status in DISPATCH_STATUSES
