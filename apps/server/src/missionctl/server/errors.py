"""错误响应 -- 统一的 {"error": {"code", "message"}} 响应体

Core 异常按类型映射 HTTP 状态码；请求体校验失败同样使用该响应体。
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from missionctl.core.exceptions import (
    AgentNotFoundError,
    DispatchNotEligibleError,
    MissionControlError,
    RegistryError,
    SessionConflictError,
    SessionNotFoundError,
    TaskNotFoundError,
    TaskValidationError,
)
from starlette.responses import JSONResponse

_STATUS_CODES: dict[type[MissionControlError], int] = {
    TaskValidationError: 422,
    TaskNotFoundError: 404,
    AgentNotFoundError: 404,
    SessionNotFoundError: 404,
    SessionConflictError: 409,
    DispatchNotEligibleError: 409,
    RegistryError: 500,
}


def error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": code, "message": message}},
    )


async def _handle_core_error(request: Request, exc: MissionControlError) -> JSONResponse:
    status_code = 500
    for exc_type in type(exc).__mro__:
        if exc_type in _STATUS_CODES:
            status_code = _STATUS_CODES[exc_type]
            break
    return error_response(status_code, exc.code, str(exc))


async def _handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return error_response(422, "VALIDATION_ERROR", f"{location}: {message}")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MissionControlError, _handle_core_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
