"""项目任务路由

GET    /api/projects/{project_id}/tasks: 项目任务列表，支持 stage 筛选
POST   /api/projects/{project_id}/tasks: 创建自定义任务
GET    /api/projects/{project_id}/tasks/{task_id}: 解析并返回单个任务
PUT    /api/projects/{project_id}/tasks/{task_id}: 部分更新（PATCH 同义）
DELETE /api/projects/{project_id}/tasks/{task_id}: 硬删除
GET    /api/projects/{project_id}/tasks/{task_id}/events: 审计事件

task_id 为客户端标识，可以是存储键、复合标识或模板 ID。
解析成功的响应带 X-Task-Lookup-Method 头。
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, Query
from pydantic import BaseModel
from starlette.responses import JSONResponse, Response
from tcof.core.models import LookupMethod, TaskStage, TaskView

from ..deps import get_task_service
from ..services.task_service import TaskService

router = APIRouter(prefix="/api/projects/{project_id}/tasks")

LOOKUP_METHOD_HEADER = "X-Task-Lookup-Method"


class TaskListResponse(BaseModel):
    """任务列表响应"""

    tasks: list[TaskView]


def _lookup_headers(method: LookupMethod) -> dict[str, str]:
    return {LOOKUP_METHOD_HEADER: method.value}


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    project_id: str,
    stage: TaskStage | None = Query(default=None, description="按阶段筛选"),
    service: TaskService = Depends(get_task_service),
):
    """查询项目任务列表，按 sortOrder、createdAt 排序"""
    tasks = await service.list_tasks(project_id, stage)
    return TaskListResponse(tasks=tasks)


@router.post("", status_code=201)
async def create_task(
    project_id: str,
    payload: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    """创建用户自定义任务"""
    view = await service.create_task(project_id, payload)
    return JSONResponse(status_code=201, content=view.model_dump(mode="json"))


@router.get("/{task_id}")
async def get_task(
    project_id: str,
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """解析客户端标识并返回任务外部视图"""
    view, method = await service.get_task(project_id, task_id)
    return JSONResponse(content=view.model_dump(mode="json"), headers=_lookup_headers(method))


@router.api_route("/{task_id}", methods=["PUT", "PATCH"])
async def update_task(
    project_id: str,
    task_id: str,
    payload: dict[str, Any] = Body(...),
    service: TaskService = Depends(get_task_service),
):
    """部分更新任务，返回更新后的完整记录"""
    view, method = await service.update_task(project_id, task_id, payload)
    return JSONResponse(content=view.model_dump(mode="json"), headers=_lookup_headers(method))


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    project_id: str,
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """硬删除任务"""
    method = await service.delete_task(project_id, task_id)
    return Response(status_code=204, headers=_lookup_headers(method))


@router.get("/{task_id}/events")
async def list_task_events(
    project_id: str,
    task_id: str,
    service: TaskService = Depends(get_task_service),
):
    """查询任务的审计事件（按时间正序）"""
    events, method = await service.list_events(project_id, task_id)
    return JSONResponse(
        content={"events": [e.model_dump(mode="json") for e in events]},
        headers=_lookup_headers(method),
    )
