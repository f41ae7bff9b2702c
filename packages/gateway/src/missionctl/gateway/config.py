"""GatewayConfig -- Gateway 配置加载

从环境变量加载配置，非法值记录 warning 后回退默认值，不阻塞启动。
"""

import os
from typing import Literal

import structlog
from pydantic import BaseModel, Field, SecretStr

log = structlog.get_logger()

DEFAULT_GATEWAY_URL = "http://localhost:18789"
DEFAULT_TIMEOUT_S = 10.0

_VALID_MODES = ("http", "echo")


class GatewayConfig(BaseModel):
    """Gateway 包配置 -- 从环境变量加载

    环境变量:
        MISSIONCTL_GATEWAY_URL: Gateway 地址（默认 http://localhost:18789）
        MISSIONCTL_GATEWAY_TOKEN: Gateway 访问令牌
        MISSIONCTL_GATEWAY_MODE: 运行模式（http/echo）
        MISSIONCTL_GATEWAY_TIMEOUT_S: 创建会话的超时（秒，默认 10）
    """

    gateway_url: str = Field(
        default=DEFAULT_GATEWAY_URL,
        description="Gateway 基础 URL",
    )
    gateway_token: SecretStr = Field(
        default=SecretStr(""),
        description="Gateway 访问令牌，以 Bearer 头发送",
    )
    mode: Literal["http", "echo"] = Field(
        default="http",
        description="运行模式：http 调用真实 Gateway，echo 使用进程内适配器",
    )
    timeout_s: float = Field(
        default=DEFAULT_TIMEOUT_S,
        gt=0,
        description="Gateway 调用超时（秒）",
    )


def load_gateway_config() -> GatewayConfig:
    """从环境变量加载 Gateway 配置

    Returns:
        GatewayConfig 实例
    """
    kwargs: dict = {}

    if val := os.environ.get("MISSIONCTL_GATEWAY_URL"):
        kwargs["gateway_url"] = val.rstrip("/")

    if val := os.environ.get("MISSIONCTL_GATEWAY_TOKEN"):
        kwargs["gateway_token"] = SecretStr(val)

    if val := os.environ.get("MISSIONCTL_GATEWAY_MODE"):
        if val in _VALID_MODES:
            kwargs["mode"] = val
        else:
            log.warning(
                "invalid_gateway_mode_config",
                env_var="MISSIONCTL_GATEWAY_MODE",
                value=val,
                fallback="http",
            )

    if val := os.environ.get("MISSIONCTL_GATEWAY_TIMEOUT_S"):
        try:
            timeout = float(val)
            if timeout <= 0:
                raise ValueError(val)
            kwargs["timeout_s"] = timeout
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="MISSIONCTL_GATEWAY_TIMEOUT_S",
                value=val,
                fallback=DEFAULT_TIMEOUT_S,
            )

    return GatewayConfig(**kwargs)
