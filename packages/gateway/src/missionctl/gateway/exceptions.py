"""Gateway 异常体系

每个异常携带 reason，派发结果与 SYSTEM 事件直接使用该值。
"""


class GatewayError(Exception):
    """Gateway 包基础异常"""

    reason = "gateway_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class GatewayUnreachableError(GatewayError):
    """Gateway 不可达（连接失败、DNS 解析失败等）"""

    reason = "gateway_unreachable"

    def __init__(self, gateway_url: str, original_error: Exception) -> None:
        """
        Args:
            gateway_url: 尝试连接的 Gateway 地址
            original_error: 原始异常
        """
        super().__init__(f"Gateway 不可达: {gateway_url} -- {original_error}")
        self.gateway_url = gateway_url
        self.original_error = original_error


class GatewayTimeoutError(GatewayError):
    """Gateway 调用超时

    超时不代表远端没有创建会话，只是本地不再等待。
    """

    reason = "gateway_timeout"

    def __init__(self, gateway_url: str, timeout_s: float) -> None:
        super().__init__(f"Gateway 调用超时: {gateway_url} ({timeout_s}s)")
        self.gateway_url = gateway_url
        self.timeout_s = timeout_s


class GatewayRejectedError(GatewayError):
    """Gateway 返回错误响应"""

    reason = "gateway_rejected"

    def __init__(self, status_code: int, code: str, message: str) -> None:
        """
        Args:
            status_code: HTTP 状态码
            code: 错误体中的 error.code
            message: 错误体中的 error.message
        """
        super().__init__(f"Gateway 拒绝请求 ({status_code} {code}): {message}")
        self.status_code = status_code
        self.code = code
        self.detail = message
