"""TraceMiddleware -- 任务/会话级追踪

为 /api/tasks/{task_id}/... 与 /api/sessions/{session_id} 请求绑定 trace_id，
同一任务的流转与派发日志可按 trace_id 串联。
"""

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ULID 长度
_ULID_LENGTH = 26


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 为任务操作绑定 trace_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        parts = request.url.path.strip("/").split("/")
        trace_id = None

        # /api/tasks/{task_id}[/...]
        if len(parts) >= 3 and parts[0] == "api" and parts[1] == "tasks":
            if len(parts[2]) == _ULID_LENGTH:
                trace_id = f"trace-{parts[2]}"
        elif len(parts) >= 3 and parts[0] == "api" and parts[1] == "sessions":
            structlog.contextvars.bind_contextvars(session_id=parts[2])

        if trace_id:
            structlog.contextvars.bind_contextvars(trace_id=trace_id)

        return await call_next(request)
