"""事件 + 实体变更原子事务封装

任务状态变更与对应事件在同一 SQLite 事务内提交：
事件日志中出现的每一次流转都对应已落盘的任务状态，反之亦然。
写入事件后按保留上限淘汰最旧事件。
"""

import aiosqlite

from ..models.agent import Agent
from ..models.event import Event
from ..models.task import Task
from .agent_store import SqliteAgentStore
from .event_store import SqliteEventStore
from .task_store import SqliteTaskStore


async def _append_and_prune(
    event_store: SqliteEventStore,
    event: Event,
    retention: int,
) -> Event:
    seq = await event_store.append_event(event)
    await event_store.prune(retention)
    return event.model_copy(update={"seq": seq})


async def append_event_only(
    conn: aiosqlite.Connection,
    event_store: SqliteEventStore,
    event: Event,
    retention: int,
) -> Event:
    """仅写入事件（不改变任何实体）

    Returns:
        带有 seq 的已落盘事件
    """
    try:
        stored = await _append_and_prune(event_store, event, retention)
        await conn.commit()
        return stored
    except Exception:
        await conn.rollback()
        raise


async def create_task_with_event(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    task: Task,
    event: Event,
    retention: int,
) -> Event:
    """单事务写入新任务及其 TASK_CREATED 事件"""
    try:
        await task_store.create_task(task)
        stored = await _append_and_prune(event_store, event, retention)
        await conn.commit()
        return stored
    except Exception:
        await conn.rollback()
        raise


async def update_status_and_append_event(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    task_id: str,
    new_status: str,
    event: Event,
    retention: int,
) -> Event:
    """在同一事务内原子提交任务状态更新和流转事件

    Raises:
        Exception: 如果事务提交失败，自动回滚
    """
    try:
        await task_store.update_task_status(
            task_id=task_id,
            status=new_status,
            updated_at=event.created_at.isoformat(),
        )
        stored = await _append_and_prune(event_store, event, retention)
        await conn.commit()
        return stored
    except Exception:
        await conn.rollback()
        raise


async def assign_agent_and_append_event(
    conn: aiosqlite.Connection,
    task_store: SqliteTaskStore,
    event_store: SqliteEventStore,
    task_id: str,
    agent_id: str | None,
    event: Event,
    retention: int,
) -> Event:
    """在同一事务内原子提交指派变更和 TASK_ASSIGNED 事件"""
    try:
        await task_store.update_assigned_agent(
            task_id=task_id,
            agent_id=agent_id,
            updated_at=event.created_at.isoformat(),
        )
        stored = await _append_and_prune(event_store, event, retention)
        await conn.commit()
        return stored
    except Exception:
        await conn.rollback()
        raise


async def create_agent_with_event(
    conn: aiosqlite.Connection,
    agent_store: SqliteAgentStore,
    event_store: SqliteEventStore,
    agent: Agent,
    event: Event,
    retention: int,
) -> Event:
    """单事务写入 Agent 记录及其 AGENT_JOINED 事件"""
    try:
        await agent_store.create_agent(agent)
        stored = await _append_and_prune(event_store, event, retention)
        await conn.commit()
        return stored
    except Exception:
        await conn.rollback()
        raise
