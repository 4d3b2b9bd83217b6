"""任务写入 + 审计事件原子事务封装

在同一 SQLite 事务内提交任务写入和审计事件。
调用方需持有 StoreGroup.write_lock，避免共享连接上的事务交错。
"""

from collections.abc import Callable
from typing import Any

import aiosqlite

from ..models.event import TaskEvent
from ..models.task import Task
from .protocols import TaskEventStore, TaskStore


async def create_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: TaskEventStore,
    task: Task,
    event: TaskEvent,
) -> None:
    """单事务写入新任务与 TASK_CREATED 事件"""
    try:
        await task_store.create_task(task)
        await event_store.append_event(event)
        await conn.commit()
    except BaseException:
        # 取消（超时）时同样回滚，避免共享连接残留未结束事务
        await conn.rollback()
        raise


async def update_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: TaskEventStore,
    task_id: str,
    project_id: str,
    patch: dict[str, Any],
    build_event: Callable[[Task], TaskEvent],
) -> Task | None:
    """单事务执行条件更新并追加审计事件

    Args:
        conn: 数据库连接（需在同一连接上操作以保证事务性）
        task_store: TaskStore 实例
        event_store: TaskEventStore 实例
        task_id: 权威存储键
        project_id: 项目作用域
        patch: 内部补丁
        build_event: 根据更新后记录构建审计事件

    Returns:
        更新后的 Task；影响 0 行时返回 None（不写事件）
    """
    try:
        updated = await task_store.update_task(task_id, project_id, patch)
        if updated is None:
            await conn.rollback()
            return None

        await event_store.append_event(build_event(updated))
        await conn.commit()
        return updated
    except BaseException:
        await conn.rollback()
        raise


async def delete_task_with_event(
    conn: aiosqlite.Connection,
    task_store: TaskStore,
    event_store: TaskEventStore,
    task_id: str,
    project_id: str,
    event: TaskEvent,
) -> bool:
    """单事务删除任务并追加 TASK_DELETED 事件

    Returns:
        True 如果删除了记录
    """
    try:
        deleted = await task_store.delete_task(task_id, project_id)
        if not deleted:
            await conn.rollback()
            return False

        await event_store.append_event(event)
        await conn.commit()
        return True
    except BaseException:
        await conn.rollback()
        raise
