"""任务路由

POST  /api/tasks: 创建任务
GET   /api/tasks: 任务列表，支持 workspace_id / status 筛选
GET   /api/tasks/{task_id}: 任务详情
PATCH /api/tasks/{task_id}: 状态流转，命中派发条件时后台派发
POST  /api/tasks/{task_id}/assign: 指派 Agent
POST  /api/tasks/{task_id}/dispatch: 手动重新派发（不自动重试）
GET   /api/tasks/{task_id}/sessions: 任务关联的会话
"""

from fastapi import APIRouter, Depends, Query
from missionctl.core.exceptions import TaskNotFoundError
from missionctl.core.models import Event, Session, Task
from pydantic import BaseModel, Field
from starlette.responses import JSONResponse

from ..deps import get_registry, get_task_service
from ..services.dispatch_service import DispatchResult
from ..services.task_service import TaskService

router = APIRouter()


class CreateTaskRequest(BaseModel):
    """创建任务请求体"""

    title: str = Field(min_length=1, description="任务标题")
    workspace_id: str = Field(default="default", description="所属工作区")
    description: str = Field(default="", description="任务描述")
    priority: str = Field(default="normal", description="优先级")
    status: str = Field(default="inbox", description="初始状态")
    assigned_agent_id: str | None = Field(default=None, description="指派的 Agent")


class TransitionRequest(BaseModel):
    """状态流转请求体"""

    status: str = Field(description="目标状态")


class AssignRequest(BaseModel):
    """指派请求体"""

    agent_id: str = Field(min_length=1, description="Agent ID")


class TaskResponse(BaseModel):
    """单个任务响应"""

    task: Task
    event: Event | None = None


class TransitionResponse(BaseModel):
    """状态流转响应"""

    task: Task
    event: Event | None = None
    changed: bool
    dispatch_scheduled: bool


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[Task]


class SessionListResponse(BaseModel):
    """会话列表响应"""

    sessions: list[Session]


@router.post("/api/tasks", status_code=201, response_model=TaskResponse)
async def create_task(
    body: CreateTaskRequest,
    service: TaskService = Depends(get_task_service),
):
    """创建任务，写入 TASK_CREATED 事件"""
    task, event = await service.create_task(
        title=body.title,
        workspace_id=body.workspace_id,
        description=body.description,
        priority=body.priority,
        status=body.status,
        assigned_agent_id=body.assigned_agent_id,
    )
    return TaskResponse(task=task, event=event)


@router.get("/api/tasks", response_model=TaskListResponse)
async def list_tasks(
    workspace_id: str | None = Query(default=None, description="按工作区筛选"),
    status: str | None = Query(default=None, description="按状态筛选"),
    service: TaskService = Depends(get_task_service),
):
    """查询任务列表，按 created_at 倒序"""
    tasks = await service.list_tasks(workspace_id=workspace_id, status=status)
    return TaskListResponse(tasks=tasks)


@router.get("/api/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    task = await service.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return TaskResponse(task=task)


@router.patch("/api/tasks/{task_id}", response_model=TransitionResponse)
async def transition_task(
    task_id: str,
    body: TransitionRequest,
    service: TaskService = Depends(get_task_service),
):
    """状态流转

    - 非法状态返回 422，不产生事件
    - 目标状态与当前相同返回 200，changed=false，不产生事件
    - 派发在后台进行，响应不等待 Gateway
    """
    result = await service.transition(task_id, body.status)
    return TransitionResponse(
        task=result.task,
        event=result.event,
        changed=result.changed,
        dispatch_scheduled=result.dispatch_scheduled,
    )


@router.post("/api/tasks/{task_id}/assign", response_model=TaskResponse)
async def assign_task(
    task_id: str,
    body: AssignRequest,
    service: TaskService = Depends(get_task_service),
):
    task, event = await service.assign_agent(task_id, body.agent_id)
    return TaskResponse(task=task, event=event)


@router.post("/api/tasks/{task_id}/dispatch", response_model=DispatchResult)
async def redispatch_task(
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """手动重新派发

    - 派发失败返回 502 与失败原因
    - 任务未指派或状态不可派发返回 409
    """
    result = await service.redispatch(task_id)
    if not result.ok:
        return JSONResponse(status_code=502, content=result.model_dump(mode="json"))
    return result


@router.get("/api/tasks/{task_id}/sessions", response_model=SessionListResponse)
async def list_task_sessions(
    task_id: str,
    service: TaskService = Depends(get_task_service),
    registry=Depends(get_registry),
):
    task = await service.get_task(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    sessions = await registry.list_by_task(task_id)
    return SessionListResponse(sessions=sessions)
