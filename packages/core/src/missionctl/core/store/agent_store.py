"""AgentStore SQLite 实现"""

from datetime import datetime

import aiosqlite

from ..models.agent import Agent
from ..models.enums import AgentStatus

_COLUMNS = "agent_id, workspace_id, name, role, status, created_at"


class SqliteAgentStore:
    """AgentStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_agent(self, agent: Agent) -> None:
        await self._conn.execute(
            f"INSERT INTO agents ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                agent.agent_id,
                agent.workspace_id,
                agent.name,
                agent.role,
                agent.status.value,
                agent.created_at.isoformat(),
            ),
        )

    async def get_agent(self, agent_id: str) -> Agent | None:
        cursor = await self._conn.execute(
            f"SELECT {_COLUMNS} FROM agents WHERE agent_id = ?",
            (agent_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_agent(row)

    async def list_agents(self, workspace_id: str | None = None) -> list[Agent]:
        if workspace_id:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM agents WHERE workspace_id = ? ORDER BY name",
                (workspace_id,),
            )
        else:
            cursor = await self._conn.execute(
                f"SELECT {_COLUMNS} FROM agents ORDER BY name"
            )
        rows = await cursor.fetchall()
        return [self._row_to_agent(row) for row in rows]

    @staticmethod
    def _row_to_agent(row: aiosqlite.Row) -> Agent:
        return Agent(
            agent_id=row[0],
            workspace_id=row[1],
            name=row[2],
            role=row[3],
            status=AgentStatus(row[4]),
            created_at=datetime.fromisoformat(row[5]),
        )
