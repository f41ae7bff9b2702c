"""EventStore SQLite 实现

事件表 append-only：只允许插入，不允许更新或单条删除。
唯一的删除路径是 prune()：超过保留上限时按 seq 淘汰最旧的事件。
"""

import json
from collections.abc import Iterable
from datetime import datetime

import aiosqlite

from ..models.enums import EventType
from ..models.event import Event

_COLUMNS = (
    "seq, event_id, type, message, task_id, agent_id, session_id, "
    "workspace_id, payload, created_at"
)


def _type_clause(types: Iterable[EventType] | None) -> tuple[str, list[str]]:
    if types is None:
        return "", []
    values = sorted(t.value for t in types)
    placeholders = ", ".join("?" for _ in values)
    return f"type IN ({placeholders})", values


class SqliteEventStore:
    """EventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: Event) -> int:
        """追加事件（append-only），返回分配的 seq

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        cursor = await self._conn.execute(
            """
            INSERT INTO events (event_id, type, message, task_id, agent_id,
                                session_id, workspace_id, payload, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.type.value,
                event.message,
                event.task_id,
                event.agent_id,
                event.session_id,
                event.workspace_id,
                json.dumps(event.payload, ensure_ascii=False, default=str),
                event.created_at.isoformat(),
            ),
        )
        return cursor.lastrowid

    async def prune(self, retention: int) -> int:
        """淘汰超出保留上限的最旧事件

        Returns:
            删除的事件数
        """
        cursor = await self._conn.execute(
            """
            DELETE FROM events
            WHERE seq <= (
                SELECT seq FROM events ORDER BY seq DESC LIMIT 1 OFFSET ?
            )
            """,
            (retention,),
        )
        return max(cursor.rowcount, 0)

    async def list_recent(
        self,
        limit: int = 50,
        types: Iterable[EventType] | None = None,
    ) -> list[Event]:
        """查询最近的事件，最新在前"""
        clause, params = _type_clause(types)
        where = f"WHERE {clause}" if clause else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events {where} ORDER BY seq DESC LIMIT ?",
            [*params, limit],
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def list_after(
        self,
        after_event_id: str,
        types: Iterable[EventType] | None = None,
    ) -> list[Event]:
        """查询指定事件之后的事件，按插入顺序（用于 SSE 断线重连）

        after_event_id 已被淘汰时返回空列表，订阅者需回退到快照读取。
        """
        cursor = await self._conn.execute(
            "SELECT seq FROM events WHERE event_id = ?",
            (after_event_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return []
        clause, params = _type_clause(types)
        extra = f"AND {clause}" if clause else ""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events WHERE seq > ? {extra} ORDER BY seq ASC",
            [row[0], *params],
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(r) for r in rows]

    async def get_all_events(self) -> list[Event]:
        """查询所有事件，按插入顺序"""
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM events ORDER BY seq ASC"
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    async def count_events(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM events")
        row = await cursor.fetchone()
        return row[0] if row else 0

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> Event:
        """将数据库行转换为 Event 模型"""
        payload = json.loads(row[8]) if row[8] else {}
        return Event(
            seq=row[0],
            event_id=row[1],
            type=EventType(row[2]),
            message=row[3],
            task_id=row[4],
            agent_id=row[5],
            session_id=row[6],
            workspace_id=row[7],
            payload=payload,
            created_at=datetime.fromisoformat(row[9]),
        )
