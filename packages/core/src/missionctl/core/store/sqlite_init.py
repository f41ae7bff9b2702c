"""SQLite 数据库初始化

PRAGMA 配置 + 四张表 DDL + 索引创建。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# tasks 表 DDL
_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS tasks (
    task_id           TEXT PRIMARY KEY,
    workspace_id      TEXT NOT NULL,
    title             TEXT NOT NULL DEFAULT '',
    description       TEXT NOT NULL DEFAULT '',
    status            TEXT NOT NULL DEFAULT 'inbox',
    priority          TEXT NOT NULL DEFAULT 'normal',
    assigned_agent_id TEXT,
    created_at        TEXT NOT NULL,
    updated_at        TEXT NOT NULL
);
"""

_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_tasks_workspace_status ON tasks(workspace_id, status);",
    "CREATE INDEX IF NOT EXISTS idx_tasks_created_at ON tasks(created_at DESC);",
]

# agents 表 DDL
_AGENTS_DDL = """
CREATE TABLE IF NOT EXISTS agents (
    agent_id      TEXT PRIMARY KEY,
    workspace_id  TEXT NOT NULL,
    name          TEXT NOT NULL,
    role          TEXT NOT NULL DEFAULT '',
    status        TEXT NOT NULL DEFAULT 'standby',
    created_at    TEXT NOT NULL
);
"""

_AGENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_agents_workspace ON agents(workspace_id);",
]

# sessions 表 DDL（task_id / agent_id 可空：会话可以独立于任务存在）
_SESSIONS_DDL = """
CREATE TABLE IF NOT EXISTS sessions (
    session_id    TEXT PRIMARY KEY,
    task_id       TEXT,
    agent_id      TEXT,
    workspace_id  TEXT NOT NULL DEFAULT '',
    session_type  TEXT NOT NULL DEFAULT 'subagent',
    status        TEXT NOT NULL DEFAULT 'active',
    channel       TEXT,
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL,
    ended_at      TEXT
);
"""

_SESSIONS_INDEXES = [
    # 派发前的 "是否已有 active 会话" 查询走此索引
    (
        "CREATE INDEX IF NOT EXISTS idx_sessions_task_agent_status "
        "ON sessions(task_id, agent_id, status);"
    ),
    "CREATE INDEX IF NOT EXISTS idx_sessions_type_status ON sessions(session_type, status);",
    # 同一 (task_id, agent_id) 最多一个 active 会话
    (
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active "
        "ON sessions(task_id, agent_id) "
        "WHERE status = 'active' AND task_id IS NOT NULL AND agent_id IS NOT NULL;"
    ),
]

# events 表 DDL（seq 即插入顺序）
_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS events (
    seq           INTEGER PRIMARY KEY AUTOINCREMENT,
    event_id      TEXT NOT NULL UNIQUE,
    type          TEXT NOT NULL,
    message       TEXT NOT NULL DEFAULT '',
    task_id       TEXT,
    agent_id      TEXT,
    session_id    TEXT,
    workspace_id  TEXT,
    payload       TEXT NOT NULL DEFAULT '{}',
    created_at    TEXT NOT NULL
);
"""

_EVENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_events_type ON events(type);",
    "CREATE INDEX IF NOT EXISTS idx_events_task_id ON events(task_id);",
]


async def init_db(conn: aiosqlite.Connection) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引

    Args:
        conn: aiosqlite 数据库连接
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute("PRAGMA foreign_keys = ON;")
    await conn.execute("PRAGMA busy_timeout = 5000;")

    # 创建表
    await conn.execute(_TASKS_DDL)
    await conn.execute(_AGENTS_DDL)
    await conn.execute(_SESSIONS_DDL)
    await conn.execute(_EVENTS_DDL)

    # 创建索引
    for idx_sql in _TASKS_INDEXES + _AGENTS_INDEXES + _SESSIONS_INDEXES + _EVENTS_INDEXES:
        await conn.execute(idx_sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
