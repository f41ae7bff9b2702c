"""会话路由

GET    /api/sessions: 会话列表，支持 session_type / status 筛选
GET    /api/sessions/{session_id}: 会话详情
PATCH  /api/sessions/{session_id}: 标记 completed / failed（重复通知幂等）
DELETE /api/sessions/{session_id}: 删除会话记录（不取消远端工作）
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from missionctl.core.exceptions import SessionNotFoundError, TaskValidationError
from missionctl.core.models import Event, Session, SessionStatus, SessionType
from missionctl.core.registry import SessionRegistry
from pydantic import BaseModel, Field

from ..deps import get_clock, get_registry, get_session_service
from ..services.session_service import SessionService

router = APIRouter()


class FinishSessionRequest(BaseModel):
    """会话终态请求体"""

    status: str = Field(description="completed / failed")
    ended_at: datetime | None = Field(default=None, description="结束时间，缺省为当前时间")


class SessionView(BaseModel):
    """会话响应（附带时长）"""

    session: Session
    duration_s: int


class FinishSessionResponse(SessionView):
    event: Event | None = None


class SessionListResponse(BaseModel):
    sessions: list[Session]


class DeleteSessionResponse(BaseModel):
    session_id: str
    deleted: bool


def _validate_filter(value: str | None, enum_type, code: str) -> None:
    if value is None:
        return
    try:
        enum_type(value)
    except ValueError as e:
        raise TaskValidationError(f"Invalid filter value: {value}", code=code) from e


@router.get("/api/sessions", response_model=SessionListResponse)
async def list_sessions(
    session_type: str | None = Query(default=None, description="primary / subagent"),
    status: str | None = Query(default=None, description="active / completed / failed"),
    registry: SessionRegistry = Depends(get_registry),
):
    _validate_filter(session_type, SessionType, "INVALID_SESSION_TYPE")
    _validate_filter(status, SessionStatus, "INVALID_SESSION_STATUS")
    sessions = await registry.list_sessions(session_type=session_type, status=status)
    return SessionListResponse(sessions=sessions)


@router.get("/api/sessions/{session_id}", response_model=SessionView)
async def get_session(
    session_id: str,
    registry: SessionRegistry = Depends(get_registry),
    clock=Depends(get_clock),
):
    session = await registry.get(session_id)
    if session is None:
        raise SessionNotFoundError(session_id)
    return SessionView(session=session, duration_s=session.duration_seconds(clock.now()))


@router.patch("/api/sessions/{session_id}", response_model=FinishSessionResponse)
async def finish_session(
    session_id: str,
    body: FinishSessionRequest,
    service: SessionService = Depends(get_session_service),
    clock=Depends(get_clock),
):
    session, event = await service.finish(session_id, body.status, body.ended_at)
    return FinishSessionResponse(
        session=session,
        duration_s=session.duration_seconds(clock.now()),
        event=event,
    )


@router.delete("/api/sessions/{session_id}", response_model=DeleteSessionResponse)
async def delete_session(
    session_id: str,
    service: SessionService = Depends(get_session_service),
):
    await service.delete(session_id)
    return DeleteSessionResponse(session_id=session_id, deleted=True)
