"""structlog 配置模块

dev 模式：pretty print 可读输出
json 模式：结构化 JSON 输出
Logfire APM：LOGFIRE_SEND_TO_LOGFIRE 环境变量控制，false 时降级为纯本地日志。
调试模式（MISSIONCTL_DEBUG=true）下 DebugLogSink 保留最近的日志条目供 /api/debug/logs 读取。
"""

import logging
import os
from collections import deque
from typing import Any

import structlog
from missionctl.core.config import DEBUG_LOG_BUFFER_SIZE, is_debug_enabled


class DebugLogSink:
    """structlog 处理器 -- 在渲染前复制一份日志条目到有界缓冲"""

    def __init__(self, maxlen: int = DEBUG_LOG_BUFFER_SIZE) -> None:
        self._entries: deque[dict[str, Any]] = deque(maxlen=maxlen)

    def __call__(self, logger, method_name: str, event_dict: dict) -> dict:
        entry = {k: v for k, v in event_dict.items() if not k.startswith("_")}
        self._entries.append(entry)
        return event_dict

    def entries(self, limit: int | None = None) -> list[dict[str, Any]]:
        """最近的日志条目，最新在前"""
        items = list(reversed(self._entries))
        return items[:limit] if limit else items

    def clear(self) -> None:
        self._entries.clear()


debug_log_sink = DebugLogSink()


def setup_logging() -> None:
    """初始化 structlog 配置

    根据 MISSIONCTL_LOG_FORMAT 环境变量选择渲染模式：
    - "json": 结构化 JSON 输出（生产环境）
    - "dev" (默认): pretty print 可读输出
    """
    log_format = os.environ.get("MISSIONCTL_LOG_FORMAT", "dev")
    log_level = os.environ.get("MISSIONCTL_LOG_LEVEL", "INFO")

    # 基础处理器链
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if is_debug_enabled():
        shared_processors.append(debug_log_sink)

    if log_format == "json":
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # 配置标准库 logging
    formatter = structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def setup_logfire() -> None:
    """Logfire 可选初始化

    LOGFIRE_SEND_TO_LOGFIRE 环境变量控制：
    - "true": 启用 Logfire APM（需要 LOGFIRE_TOKEN）
    - "false" (默认): 降级为纯本地日志
    """
    send_to_logfire = os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").lower()
    if send_to_logfire == "true":
        try:
            import logfire

            logfire.configure()
            logfire.instrument_fastapi()
        except Exception:
            # Logfire 初始化失败不影响系统运行
            structlog.get_logger().warning(
                "logfire_init_failed",
                message="Logfire 初始化失败，降级为纯本地日志",
            )
