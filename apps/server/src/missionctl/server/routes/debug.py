"""调试日志路由（仅 MISSIONCTL_DEBUG=true 时注册）

GET /api/debug/logs?limit=N: 最近的结构化日志条目，最新在前
"""

from fastapi import APIRouter, Query

from ..middleware.logging_config import debug_log_sink

router = APIRouter()


@router.get("/api/debug/logs")
async def debug_logs(
    limit: int = Query(default=50, ge=1, le=50, description="返回条数上限"),
):
    return {"entries": debug_log_sink.entries(limit)}
