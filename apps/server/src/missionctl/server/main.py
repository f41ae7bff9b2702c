"""FastAPI 应用主文件

app 创建 + lifespan 管理：DB 初始化/关闭 + Gateway 初始化 + 派发执行器 + 路由注册。
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from missionctl.core.clock import SystemClock
from missionctl.core.config import get_db_path, is_debug_enabled
from missionctl.core.registry import SessionRegistry
from missionctl.core.store import create_store_group
from missionctl.gateway import EchoGateway, GatewayClient, load_gateway_config

from .errors import register_exception_handlers
from .middleware.logging_config import setup_logfire, setup_logging
from .middleware.logging_mw import LoggingMiddleware
from .middleware.trace_mw import TraceMiddleware
from .routes import agents, debug, events, health, sessions, stream, tasks
from .services.dispatch_service import DispatchService
from .services.event_bus import EventBus

log = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期管理：启动时初始化 DB、Gateway 与派发执行器，关闭时等待派发并清理连接"""
    clock = SystemClock()
    app.state.clock = clock

    store_group = await create_store_group(get_db_path())
    app.state.store_group = store_group

    event_bus = EventBus(store_group)
    app.state.event_bus = event_bus

    registry = SessionRegistry(store_group.conn, store_group.session_store, clock=clock)
    app.state.registry = registry

    # Gateway 初始化（根据配置选择模式）
    gateway_config = load_gateway_config()
    app.state.gateway_config = gateway_config

    if gateway_config.mode == "http":
        gateway = GatewayClient(
            gateway_url=gateway_config.gateway_url,
            gateway_token=gateway_config.gateway_token.get_secret_value(),
            timeout_s=gateway_config.timeout_s,
        )
        log.info(
            "gateway_initialized",
            mode="http",
            gateway_url=gateway_config.gateway_url,
            timeout_s=gateway_config.timeout_s,
        )
    else:
        gateway = EchoGateway()
        log.info("gateway_initialized", mode="echo")
    app.state.gateway = gateway

    app.state.dispatcher = DispatchService(
        registry,
        gateway,
        event_bus,
        timeout_s=gateway_config.timeout_s,
        clock=clock,
    )

    yield

    # 关闭：等待进行中的派发，再清理连接
    await app.state.dispatcher.drain()
    await gateway.aclose()
    await store_group.conn.close()


def create_app() -> FastAPI:
    """创建 FastAPI 应用实例"""
    app = FastAPI(
        title="Mission Control",
        version="0.1.0",
        description="任务生命周期与自动派发 API",
        lifespan=lifespan,
    )

    # 注册中间件（顺序：先 Trace 后 Logging）
    app.add_middleware(TraceMiddleware)
    app.add_middleware(LoggingMiddleware)

    # 初始化日志
    setup_logging()
    setup_logfire()

    register_exception_handlers(app)

    # 注册路由
    app.include_router(tasks.router, tags=["tasks"])
    app.include_router(agents.router, tags=["agents"])
    app.include_router(sessions.router, tags=["sessions"])
    app.include_router(events.router, tags=["events"])
    app.include_router(stream.router, tags=["stream"])
    app.include_router(health.router, tags=["health"])
    if is_debug_enabled():
        app.include_router(debug.router, tags=["debug"])

    return app


# 默认 app 实例（uvicorn 入口）
app = create_app()
