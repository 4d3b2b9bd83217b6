"""LoggingMiddleware -- 请求级 request_id 与访问日志

每个请求都会得到 request_started / request_completed 两条日志和 X-Request-ID 响应头，
下游抛出未处理异常时也不例外：此时返回结构化 500。
"""

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from ulid import ULID

from ..errors import unhandled_error_handler

REQUEST_ID_HEADER = "X-Request-ID"

log = structlog.get_logger()


class LoggingMiddleware(BaseHTTPMiddleware):
    """绑定 request_id / method / path 到 structlog contextvars"""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = str(ULID())
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )
        await log.ainfo("request_started")

        started = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
        except Exception as e:
            response = await unhandled_error_handler(request, e)
        finally:
            status_code = response.status_code if response is not None else 500
            await log.ainfo(
                "request_completed",
                status_code=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            if response is not None:
                response.headers[REQUEST_ID_HEADER] = request_id

        return response
