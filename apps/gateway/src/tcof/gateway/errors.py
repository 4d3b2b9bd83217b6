"""异常处理器 -- 所有错误响应统一为 {"error": {"code", "message", "details"}}

管线异常按类型映射 HTTP 状态码；请求校验失败与未知路由/方法同样返回 JSON。
"""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse
from tcof.core.exceptions import (
    AmbiguousMatchError,
    CrossProjectViolationError,
    InvalidIdentifierError,
    InvalidTaskUpdateError,
    TaskGoneError,
    TaskNotFoundError,
    TaskPipelineError,
    TaskStoreError,
    TransientStoreError,
)

log = structlog.get_logger()

# 按顺序匹配，子类在前
_STATUS_BY_ERROR: tuple[tuple[type[TaskPipelineError], int], ...] = (
    (InvalidIdentifierError, 400),
    (InvalidTaskUpdateError, 400),
    (TaskNotFoundError, 404),
    (CrossProjectViolationError, 404),
    (AmbiguousMatchError, 409),
    (TaskGoneError, 410),
    (TransientStoreError, 503),
    (TaskStoreError, 500),
)

_CODE_BY_HTTP_STATUS: dict[int, str] = {
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
}


def error_response(
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """构建结构化错误响应"""
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": code,
                "message": message,
                "details": details or {},
            }
        },
        headers=headers,
    )


def status_for(exc: TaskPipelineError) -> int:
    """管线异常 -> HTTP 状态码"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def pipeline_error_handler(request: Request, exc: TaskPipelineError) -> JSONResponse:
    status_code = status_for(exc)

    if isinstance(exc, CrossProjectViolationError):
        # 与 not-found 完全一致，不暴露记录所属项目
        exc = TaskNotFoundError(
            request.path_params.get("task_id", exc.task_id),
            exc.requested_project_id,
        )

    if status_code >= 500:
        await log.aerror("task_pipeline_error", code=exc.code, error=exc.message)
    else:
        await log.ainfo("task_pipeline_rejected", code=exc.code, status_code=status_code)

    return error_response(status_code, exc.code, exc.message, exc.details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = jsonable_encoder(exc.errors())
    await log.ainfo("request_validation_failed", errors=errors)
    return error_response(
        400,
        "VALIDATION_ERROR",
        "Request validation failed",
        {"errors": errors},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    code = _CODE_BY_HTTP_STATUS.get(exc.status_code, "HTTP_ERROR")
    return error_response(
        exc.status_code,
        code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """兜底：未归类异常同样返回结构化 500，不回显异常文本"""
    await log.aexception("unhandled_error", error_type=type(exc).__name__)
    return error_response(500, "INTERNAL_ERROR", "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    """注册异常处理器"""
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.add_exception_handler(TaskPipelineError, pipeline_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
