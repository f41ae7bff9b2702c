"""健康检查与状态路由

GET /health: Liveness 检查，永远返回 200。
GET /ready: Readiness 检查，包含 SQLite 连通性、WAL 模式、磁盘空间；
         profile=gateway 时额外探测 Gateway。
GET /api/gateway/status: Gateway 连接状态与会话数。
GET /api/stats: 活跃子 Agent 数、排队任务数、各状态任务数。
"""

import shutil

import structlog
from fastapi import APIRouter, Depends, Query, Request
from missionctl.core.models import OUT_OF_QUEUE_STATES, PIPELINE_ORDER, SessionType
from missionctl.core.store.sqlite_init import verify_wal_mode
from missionctl.gateway import GatewayError
from starlette.responses import JSONResponse

from ..deps import get_gateway, get_gateway_config, get_registry, get_store_group

log = structlog.get_logger()

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness 检查 -- 永远返回 200"""
    return {"status": "ok"}


@router.get("/ready")
async def ready(
    request: Request,
    profile: str | None = Query(
        default=None,
        description="检查配置文件：core（默认）仅核心检查；gateway 包含 Gateway 健康检查",
    ),
):
    """Readiness 检查 -- 验证核心依赖可用性

    检查项：
    1. sqlite: 数据库连通性
    2. wal_mode: 是否运行在 WAL 模式
    3. disk_space_mb: 磁盘剩余空间
    4. gateway: 根据 profile 决定是否探测 Gateway
    """
    effective_profile = profile or "core"

    checks = {}
    all_ok = True

    # 1. SQLite 连通性检查
    try:
        store_group = request.app.state.store_group
        cursor = await store_group.conn.execute("SELECT 1")
        await cursor.fetchone()
        checks["sqlite"] = "ok"
    except Exception as e:
        checks["sqlite"] = f"error: {str(e)}"
        all_ok = False

    # 2. WAL 模式检查（内存数据库不支持 WAL，只记录不判失败）
    try:
        wal = await verify_wal_mode(request.app.state.store_group.conn)
        checks["wal_mode"] = "ok" if wal else "disabled"
    except Exception as e:
        checks["wal_mode"] = f"error: {str(e)}"
        all_ok = False

    # 3. 磁盘空间检查
    try:
        disk_usage = shutil.disk_usage("/")
        checks["disk_space_mb"] = disk_usage.free // (1024 * 1024)
    except Exception:
        checks["disk_space_mb"] = 0
        all_ok = False

    # 4. Gateway 健康检查
    if effective_profile in ("gateway", "full"):
        gateway = request.app.state.gateway
        if await gateway.health_check():
            checks["gateway"] = "ok"
        else:
            checks["gateway"] = "unreachable"
            all_ok = False
    else:
        checks["gateway"] = "skipped"

    status_code = 200 if all_ok else 503
    status_text = "ready" if all_ok else "not_ready"

    return JSONResponse(
        status_code=status_code,
        content={
            "status": status_text,
            "profile": effective_profile,
            "checks": checks,
        },
    )


@router.get("/api/gateway/status")
async def gateway_status(
    gateway=Depends(get_gateway),
    config=Depends(get_gateway_config),
):
    """Gateway 连接状态

    连接失败或会话列表失败时仍返回 200，由 connected / error 字段表达。
    """
    gateway_url = config.gateway_url if config.mode == "http" else "echo"
    if not await gateway.health_check():
        return {
            "connected": False,
            "error": "Failed to connect to Gateway",
            "gateway_url": gateway_url,
        }
    try:
        sessions = await gateway.list_sessions()
    except GatewayError as e:
        log.warning("gateway_list_sessions_failed", error=str(e))
        return {
            "connected": True,
            "error": "Connected but failed to list sessions",
            "gateway_url": gateway_url,
        }
    return {
        "connected": True,
        "sessions_count": len(sessions),
        "gateway_url": gateway_url,
    }


@router.get("/api/stats")
async def stats(
    workspace_id: str | None = Query(default=None, description="按工作区统计"),
    store_group=Depends(get_store_group),
    registry=Depends(get_registry),
):
    """看板统计：活跃子 Agent 数与排队任务数"""
    counts = await store_group.task_store.count_by_status(workspace_id)
    by_status = {status.value: counts.get(status.value, 0) for status in PIPELINE_ORDER}
    queued = sum(
        n for status, n in by_status.items() if status not in OUT_OF_QUEUE_STATES
    )
    active_subagents = await registry.list_active(
        session_type=SessionType.SUBAGENT.value,
        workspace_id=workspace_id,
    )
    return {
        "active_subagents": len(active_subagents),
        "tasks_in_queue": queued,
        "tasks_by_status": by_status,
    }
