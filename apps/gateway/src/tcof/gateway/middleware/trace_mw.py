"""TraceMiddleware

从 /api/projects/{project_id}/tasks/{task_id} 路径提取项目作用域与客户端任务标识，
绑定到 structlog contextvars，贯穿本次请求的解析/更新日志。
"""

from urllib.parse import unquote

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response


def extract_task_scope(path: str) -> tuple[str | None, str | None]:
    """从路径解析 (project_id, client_task_id)，不匹配时返回 None"""
    parts = [p for p in path.split("/") if p]
    project_id = None
    task_id = None
    for i, part in enumerate(parts):
        if part == "projects" and i + 1 < len(parts):
            project_id = unquote(parts[i + 1])
        elif part == "tasks" and i + 1 < len(parts) and project_id is not None:
            task_id = unquote(parts[i + 1])
            break
    return project_id, task_id


class TraceMiddleware(BaseHTTPMiddleware):
    """任务级追踪中间件 -- 绑定 project_id / client_task_id"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        project_id, task_id = extract_task_scope(request.url.path)

        if project_id:
            structlog.contextvars.bind_contextvars(project_id=project_id)
        if task_id:
            structlog.contextvars.bind_contextvars(client_task_id=task_id)

        return await call_next(request)
