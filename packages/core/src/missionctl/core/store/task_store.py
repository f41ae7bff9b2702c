"""TaskStore SQLite 实现

状态变更必须与事件写入处于同一事务（见 transaction.py），
此处仅提供数据库操作，不自动提交。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import TaskPriority, TaskStatus
from ..models.task import Task

_COLUMNS = (
    "task_id, workspace_id, title, description, status, priority, "
    "assigned_agent_id, created_at, updated_at"
)


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        await self._conn.execute(
            f"INSERT INTO tasks ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                task.task_id,
                task.workspace_id,
                task.title,
                task.description,
                task.status.value,
                task.priority.value,
                task.assigned_agent_id,
                task.created_at.isoformat(),
                task.updated_at.isoformat(),
            ),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """根据 task_id 查询任务"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks WHERE task_id = ?",
            (task_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def list_tasks(
        self,
        workspace_id: str | None = None,
        status: str | None = None,
    ) -> list[Task]:
        """查询任务列表，支持按 workspace_id / status 筛选，按 created_at 倒序"""
        clauses: list[str] = []
        params: list[str] = []
        if workspace_id:
            clauses.append("workspace_id = ?")
            params.append(workspace_id)
        if status:
            clauses.append("status = ?")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM tasks {where} ORDER BY created_at DESC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task_status(
        self,
        task_id: str,
        status: str,
        updated_at: str,
    ) -> None:
        """更新任务状态（仅由 TaskService.transition 在事务内调用）"""
        await self._conn.execute(
            "UPDATE tasks SET status = ?, updated_at = ? WHERE task_id = ?",
            (status, updated_at, task_id),
        )

    async def update_assigned_agent(
        self,
        task_id: str,
        agent_id: str | None,
        updated_at: str,
    ) -> None:
        """更新任务指派的 Agent"""
        await self._conn.execute(
            "UPDATE tasks SET assigned_agent_id = ?, updated_at = ? WHERE task_id = ?",
            (agent_id, updated_at, task_id),
        )

    async def count_by_status(self, workspace_id: str | None = None) -> dict[str, int]:
        """按状态统计任务数"""
        if workspace_id:
            cursor = await self._conn.execute(
                "SELECT status, COUNT(*) FROM tasks WHERE workspace_id = ? GROUP BY status",
                (workspace_id,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT status, COUNT(*) FROM tasks GROUP BY status"
            )
        rows = await cursor.fetchall()
        return {row[0]: row[1] for row in rows}

    @staticmethod
    def _row_to_task(row: aiosqlite.Row) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task(
            task_id=row[0],
            workspace_id=row[1],
            title=row[2],
            description=row[3],
            status=TaskStatus(row[4]),
            priority=TaskPriority(row[5]),
            assigned_agent_id=row[6],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
        )
