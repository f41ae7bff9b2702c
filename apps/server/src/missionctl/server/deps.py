"""依赖注入模块 -- 通过 FastAPI Depends 注入应用级组件

组件通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Request
from missionctl.core.clock import Clock
from missionctl.core.registry import SessionRegistry
from missionctl.core.store import StoreGroup
from missionctl.gateway import Gateway, GatewayConfig

from .services.agent_service import AgentService
from .services.dispatch_service import DispatchService
from .services.event_bus import EventBus
from .services.session_service import SessionService
from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def get_gateway_config(request: Request) -> GatewayConfig:
    return request.app.state.gateway_config


def get_dispatcher(request: Request) -> DispatchService:
    return request.app.state.dispatcher


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_task_service(request: Request) -> TaskService:
    """每个请求构造一个 TaskService；流转锁在类级别共享"""
    state = request.app.state
    return TaskService(
        state.store_group,
        state.event_bus,
        dispatcher=state.dispatcher,
        clock=state.clock,
    )


def get_agent_service(request: Request) -> AgentService:
    state = request.app.state
    return AgentService(state.store_group, state.event_bus, clock=state.clock)


def get_session_service(request: Request) -> SessionService:
    state = request.app.state
    return SessionService(state.registry, state.event_bus, clock=state.clock)
