"""Client 异常体系"""


class ClientError(Exception):
    """Client 包基础异常"""


class ApiError(ClientError):
    """服务端返回非 2xx 响应"""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(f"{status_code} {code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message


class ConnectionLostError(ClientError):
    """无法连接服务端（连接失败、超时）"""

    def __init__(self, base_url: str, original_error: Exception) -> None:
        super().__init__(f"Mission Control 不可达: {base_url} -- {original_error}")
        self.base_url = base_url
        self.original_error = original_error
