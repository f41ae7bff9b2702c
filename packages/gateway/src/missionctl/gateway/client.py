"""GatewayClient -- 远端执行 Gateway 的 HTTP 客户端

通过 httpx.AsyncClient 以 JSON 调用 Gateway 的会话接口，
传输层异常与无法解析的响应体统一映射为 GatewayError 子类。

update_session / delete_session 只为完整覆盖 Gateway 会话接口而保留：
本地的会话终态与删除只作用于 SessionRegistry，不回调 Gateway。
"""

from datetime import datetime

import httpx
import structlog
from pydantic import ValidationError

from .exceptions import (
    GatewayRejectedError,
    GatewayTimeoutError,
    GatewayUnreachableError,
)
from .models import CreateSessionRequest, GatewaySession, UpdateSessionRequest

log = structlog.get_logger()

# 健康检查超时（硬编码，应快速响应）
HEALTH_CHECK_TIMEOUT_S = 5


def _parse_error(resp: httpx.Response) -> tuple[str, str]:
    """从 {"error": {"code", "message"}} 错误体提取 code 与 message"""
    try:
        body = resp.json()
    except ValueError:
        return f"HTTP_{resp.status_code}", resp.text[:200]
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        return (
            str(error.get("code") or f"HTTP_{resp.status_code}"),
            str(error.get("message") or ""),
        )
    return f"HTTP_{resp.status_code}", str(body)[:200]


def _sessions_from_body(body) -> list[GatewaySession]:
    items = body.get("sessions", []) if isinstance(body, dict) else body
    if not isinstance(items, list):
        raise ValueError("sessions must be a list")
    return [GatewaySession.model_validate(item) for item in items]


def _parse_body(resp: httpx.Response, parse):
    """解析 2xx 响应体；非 JSON 或结构不符时视为 Gateway 拒绝"""
    try:
        return parse(resp.json())
    except (ValueError, ValidationError) as e:
        log.warning(
            "gateway_invalid_response",
            path=resp.request.url.path,
            status_code=resp.status_code,
            error=str(e)[:200],
        )
        raise GatewayRejectedError(
            resp.status_code, "INVALID_RESPONSE", f"Unexpected Gateway response: {e}"
        ) from e


class GatewayClient:
    """Gateway HTTP 客户端"""

    def __init__(
        self,
        gateway_url: str = "http://localhost:18789",
        gateway_token: str = "",
        timeout_s: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """初始化 Gateway 客户端

        Args:
            gateway_url: Gateway 基础 URL
            gateway_token: 访问令牌，非空时以 Bearer 头发送
            timeout_s: 单次请求超时（秒）
            transport: 自定义 httpx transport（测试中注入 MockTransport）
        """
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout_s = timeout_s
        headers = {"Accept": "application/json"}
        if gateway_token:
            headers["Authorization"] = f"Bearer {gateway_token}"
        self._http = httpx.AsyncClient(
            base_url=self._gateway_url,
            headers=headers,
            timeout=timeout_s,
            transport=transport,
        )

    @property
    def gateway_url(self) -> str:
        return self._gateway_url

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            log.warning(
                "gateway_request_timeout",
                method=method,
                path=path,
                timeout_s=self._timeout_s,
            )
            raise GatewayTimeoutError(self._gateway_url, self._timeout_s) from e
        except (httpx.TransportError, OSError) as e:
            log.warning(
                "gateway_unreachable",
                method=method,
                path=path,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GatewayUnreachableError(self._gateway_url, e) from e

        if resp.status_code >= 400:
            code, message = _parse_error(resp)
            log.warning(
                "gateway_request_rejected",
                method=method,
                path=path,
                status_code=resp.status_code,
                code=code,
            )
            raise GatewayRejectedError(resp.status_code, code, message)
        return resp

    async def create_session(self, request: CreateSessionRequest) -> GatewaySession:
        """为 Agent 创建会话

        Raises:
            GatewayUnreachableError: 连接失败
            GatewayTimeoutError: 请求超时
            GatewayRejectedError: Gateway 返回非 2xx 或响应体无效
        """
        resp = await self._request(
            "POST", "/sessions", json=request.model_dump(mode="json")
        )
        session = _parse_body(resp, GatewaySession.model_validate)
        log.info(
            "gateway_session_created",
            session_id=session.session_id,
            task_id=request.task_id,
            agent_id=request.agent_id,
        )
        return session

    async def list_sessions(
        self,
        session_type: str | None = None,
        status: str | None = None,
    ) -> list[GatewaySession]:
        """查询会话列表

        响应体可以是列表，也可以是 {"sessions": [...]}。
        """
        params = {}
        if session_type:
            params["session_type"] = session_type
        if status:
            params["status"] = status
        resp = await self._request("GET", "/sessions", params=params)
        return _parse_body(resp, _sessions_from_body)

    async def update_session(
        self,
        session_id: str,
        status: str,
        ended_at: datetime | None = None,
    ) -> None:
        """标记会话完成/失败"""
        body = UpdateSessionRequest(status=status, ended_at=ended_at)
        await self._request(
            "PATCH",
            f"/sessions/{session_id}",
            json=body.model_dump(mode="json", exclude_none=True),
        )

    async def delete_session(self, session_id: str) -> None:
        """删除会话"""
        await self._request("DELETE", f"/sessions/{session_id}")

    async def health_check(self) -> bool:
        """检查 Gateway 可达性

        发送 GET {gateway_url}/health 请求。

        Returns:
            True 如果 Gateway 响应 200，False 如果不可达或异常

        注意: 此方法不抛出异常，所有异常内部捕获并返回 False。
        """
        try:
            resp = await self._http.get("/health", timeout=HEALTH_CHECK_TIMEOUT_S)
            return resp.status_code == 200
        except Exception as e:
            log.debug("gateway_health_check_failed", url=self._gateway_url, error=str(e))
            return False

    async def aclose(self) -> None:
        await self._http.aclose()
