"""配置常量模块 -- 可通过环境变量覆盖

包含数据库路径、事件流保留上限、SSE 心跳、客户端轮询间隔等可配置常量。
"""

import os
from pathlib import Path


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("MISSIONCTL_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "MISSIONCTL_DB_PATH",
        str(_get_base_dir() / "sqlite" / "missionctl.db"),
    )


def is_debug_enabled() -> bool:
    """是否开启调试日志端点（/api/debug/logs）"""
    return os.environ.get("MISSIONCTL_DEBUG", "false").lower() == "true"


# 事件流保留上限（超过后淘汰最旧的事件）
EVENT_RETENTION: int = int(os.environ.get("MISSIONCTL_EVENT_RETENTION", "500"))

# SSE 心跳间隔（秒）
SSE_HEARTBEAT_INTERVAL: int = int(
    os.environ.get("MISSIONCTL_SSE_HEARTBEAT_INTERVAL", "15")
)

# 每个订阅者的队列容量，溢出的订阅者会被摘除
SSE_QUEUE_MAXSIZE: int = int(os.environ.get("MISSIONCTL_SSE_QUEUE_MAXSIZE", "100"))

# 客户端轮询间隔（秒）
POLL_INTERVAL_S: float = float(os.environ.get("MISSIONCTL_POLL_INTERVAL_S", "30"))

# 调试日志缓冲条数
DEBUG_LOG_BUFFER_SIZE: int = 50

# 事件消息中任务标题的截断长度
TITLE_PREVIEW_LENGTH: int = 100
