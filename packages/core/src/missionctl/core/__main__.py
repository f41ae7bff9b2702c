"""CLI 入口模块 -- python -m missionctl.core <command>

支持的命令：
  active-sessions  列出所有 active 会话
  prune-events     按保留上限淘汰最旧的事件
"""

import asyncio
import sys

from .config import EVENT_RETENTION, get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        print("用法: python -m missionctl.core <command>")
        print("命令:")
        print("  active-sessions  列出所有 active 会话")
        print("  prune-events     按保留上限淘汰最旧的事件")
        sys.exit(1)

    command = sys.argv[1]

    if command == "active-sessions":
        asyncio.run(active_sessions())
    elif command == "prune-events":
        asyncio.run(prune_events())
    else:
        print(f"未知命令: {command}")
        print("可用命令: active-sessions, prune-events")
        sys.exit(1)


async def active_sessions() -> None:
    """打印 active 会话列表"""
    from .registry import SessionRegistry
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        registry = SessionRegistry(store_group.conn, store_group.session_store)
        sessions = await registry.list_active()
        if not sessions:
            print("没有 active 会话")
            return
        for s in sessions:
            print(
                f"{s.session_id}\t{s.session_type.value}\t"
                f"task={s.task_id or '-'}\tagent={s.agent_id or '-'}\t"
                f"since={s.created_at.isoformat()}"
            )
        print(f"共 {len(sessions)} 个 active 会话")
    finally:
        await store_group.conn.close()


async def prune_events() -> None:
    """执行事件淘汰"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")
    print(f"保留上限: {EVENT_RETENTION}")

    store_group = await create_store_group(db_path)
    try:
        removed = await store_group.event_store.prune(EVENT_RETENTION)
        await store_group.conn.commit()
        print(f"淘汰完成，删除 {removed} 条事件")
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
