"""Mission Control Gateway -- 远端执行后端边界

packages/gateway 的公开接口导出。
"""

# 核心组件
from .client import GatewayClient

# 配置
from .config import GatewayConfig, load_gateway_config
from .echo_adapter import EchoGateway

# 异常
from .exceptions import (
    GatewayError,
    GatewayRejectedError,
    GatewayTimeoutError,
    GatewayUnreachableError,
)

# 数据模型
from .models import CreateSessionRequest, GatewaySession, UpdateSessionRequest
from .protocols import Gateway

__all__ = [
    "CreateSessionRequest",
    "GatewaySession",
    "UpdateSessionRequest",
    "Gateway",
    "GatewayClient",
    "EchoGateway",
    "GatewayConfig",
    "load_gateway_config",
    "GatewayError",
    "GatewayUnreachableError",
    "GatewayTimeoutError",
    "GatewayRejectedError",
]
