"""存储调用超时与异常归类

每次存储调用都带调用方提供的超时：
- 超时 / OperationalError（锁等待、连接失败） -> TransientStoreError（可重试）
- IntegrityError 原样抛出，由更新执行器映射为字段级校验错误
- 参数绑定失败（整数越界、无法编码的文本） -> InvalidTaskUpdateError
- 其他 DatabaseError -> TaskStoreError
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

import aiosqlite
import structlog

from ..exceptions import InvalidTaskUpdateError, TaskStoreError, TransientStoreError

log = structlog.get_logger()

T = TypeVar("T")

# 绑定阶段无法定位到具体列
UNBOUND_FIELD = "unknown"


async def bounded(awaitable: Awaitable[T], *, operation: str, timeout_s: float) -> T:
    """在超时限制内执行一次存储调用

    Args:
        awaitable: 存储协程
        operation: 操作名（日志与错误详情使用）
        timeout_s: 超时（秒）
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except TimeoutError as e:
        await log.awarning("store_call_timeout", operation=operation, timeout_s=timeout_s)
        raise TransientStoreError(operation, e) from e
    except aiosqlite.IntegrityError:
        raise
    except aiosqlite.OperationalError as e:
        await log.awarning("store_call_unavailable", operation=operation, error=str(e))
        raise TransientStoreError(operation, e) from e
    except aiosqlite.DatabaseError as e:
        await log.aerror("store_call_failed", operation=operation, error=str(e))
        raise TaskStoreError(operation, e) from e
    except (OverflowError, UnicodeEncodeError) as e:
        await log.awarning(
            "store_call_unbindable", operation=operation, error_type=type(e).__name__
        )
        raise InvalidTaskUpdateError(UNBOUND_FIELD, "value cannot be stored") from e
