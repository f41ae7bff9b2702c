"""SessionStore SQLite 实现

提供会话表的原始读写；并发语义（锁、幂等终态）由 SessionRegistry 负责。
"""

from datetime import datetime

import aiosqlite

from ..models.enums import SessionStatus, SessionType
from ..models.session import Session

_COLUMNS = (
    "session_id, task_id, agent_id, workspace_id, session_type, status, "
    "channel, created_at, updated_at, ended_at"
)


class SqliteSessionStore:
    """SessionStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def insert_session(self, session: Session) -> None:
        """插入会话记录

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            f"INSERT INTO sessions ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                session.session_id,
                session.task_id,
                session.agent_id,
                session.workspace_id,
                session.session_type.value,
                session.status.value,
                session.channel,
                session.created_at.isoformat(),
                session.updated_at.isoformat(),
                session.ended_at.isoformat() if session.ended_at else None,
            ),
        )

    async def get_session(self, session_id: str) -> Session | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM sessions WHERE session_id = ?",
            (session_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    async def find_active(self, task_id: str, agent_id: str) -> Session | None:
        """查询 (task_id, agent_id) 的 active 会话，走 idx_sessions_task_agent_status"""
        cursor = await self._conn.execute(
            f"""
            SELECT {_COLUMNS} FROM sessions
            WHERE task_id = ? AND agent_id = ? AND status = ?
            LIMIT 1
            """,
            (task_id, agent_id, SessionStatus.ACTIVE.value),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    async def list_by_task(self, task_id: str) -> list[Session]:
        """查询任务的全部会话，按创建时间倒序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM sessions WHERE task_id = ? ORDER BY created_at DESC",
            (task_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
        agent_id: str | None = None,
        workspace_id: str | None = None,
    ) -> list[Session]:
        """按条件查询会话，按创建时间倒序"""
        clauses: list[str] = []
        params: list[str] = []
        for column, value in (
            ("session_type", session_type),
            ("status", status),
            ("agent_id", agent_id),
            ("workspace_id", workspace_id),
        ):
            if value:
                clauses.append(f"{column} = ?")
                params.append(value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM sessions {where} ORDER BY created_at DESC",
            params,
        )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def mark_terminal(
        self,
        session_id: str,
        status: str,
        ended_at: str,
    ) -> bool:
        """将 active 会话置为终态

        Returns:
            True 如果确有一行从 active 变为终态
        """
        cursor = await self._conn.execute(
            """
            UPDATE sessions
            SET status = ?, ended_at = ?, updated_at = ?
            WHERE session_id = ? AND status = ?
            """,
            (status, ended_at, ended_at, session_id, SessionStatus.ACTIVE.value),
        )
        return cursor.rowcount > 0

    async def delete_session(self, session_id: str) -> bool:
        """删除会话记录，不论状态"""
        cursor = await self._conn.execute(
            "DELETE FROM sessions WHERE session_id = ?",
            (session_id,),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_session(row: aiosqlite.Row) -> Session:
        """将数据库行转换为 Session 模型"""
        return Session(
            session_id=row[0],
            task_id=row[1],
            agent_id=row[2],
            workspace_id=row[3],
            session_type=SessionType(row[4]),
            status=SessionStatus(row[5]),
            channel=row[6],
            created_at=datetime.fromisoformat(row[7]),
            updated_at=datetime.fromisoformat(row[8]),
            ended_at=datetime.fromisoformat(row[9]) if row[9] else None,
        )
