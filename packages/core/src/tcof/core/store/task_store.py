"""TaskStore SQLite 实现

所有查询都按 project_id 过滤（作用域在查询层强制）。
写入方法不自动提交事务，由调用方（transaction 模块）管理。
"""

from datetime import datetime
from enum import Enum
from typing import Any

import aiosqlite

from ..models.enums import TaskOrigin
from ..models.task import Task

TASK_COLUMNS: tuple[str, ...] = (
    "id",
    "project_id",
    "origin",
    "template_id",
    "text",
    "stage",
    "completed",
    "status",
    "notes",
    "priority",
    "owner",
    "due_date",
    "task_type",
    "factor_id",
    "sort_order",
    "assigned_to",
    "task_notes",
    "created_at",
    "updated_at",
)

_SELECT_COLUMNS = ", ".join(TASK_COLUMNS)

# 前缀匹配返回的候选上限（只需判断是否唯一，保留少量用于错误详情）
PREFIX_CANDIDATE_LIMIT = 10


def _to_db(value: Any) -> Any:
    """Python 值 -> SQLite 参数"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SqliteTaskStore:
    """TaskStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        values = task.model_dump()
        placeholders = ", ".join("?" for _ in TASK_COLUMNS)
        await self._conn.execute(
            f"INSERT INTO project_tasks ({_SELECT_COLUMNS}) VALUES ({placeholders})",
            tuple(_to_db(values[col]) for col in TASK_COLUMNS),
        )

    async def get_task(self, task_id: str, project_id: str) -> Task | None:
        """按存储键查询（限定项目作用域）"""
        cursor = await self._conn.execute(
            f"SELECT {_SELECT_COLUMNS} FROM project_tasks WHERE id = ? AND project_id = ?",
            (task_id, project_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    async def find_by_template_id(
        self,
        template_id: str,
        project_id: str,
    ) -> list[Task]:
        """按模板 ID 查询模板任务（限定项目作用域）

        同一模板在同一项目的不同阶段可能有多条记录，按 id 排序返回全部。
        """
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM project_tasks
            WHERE template_id = ? AND project_id = ? AND origin = ?
            ORDER BY id
            """,
            (template_id, project_id, TaskOrigin.TEMPLATE.value),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def find_by_prefix(
        self,
        prefix: str,
        project_id: str,
        limit: int = PREFIX_CANDIDATE_LIMIT,
    ) -> list[Task]:
        """查询 id 或 template_id 以 prefix 开头的记录（限定项目作用域，大小写不敏感）

        使用 substr 比较而非 LIKE，避免通配符转义问题。
        """
        cursor = await self._conn.execute(
            f"""
            SELECT {_SELECT_COLUMNS} FROM project_tasks
            WHERE project_id = ?
              AND (lower(substr(id, 1, ?)) = lower(?)
                   OR lower(substr(template_id, 1, ?)) = lower(?))
            ORDER BY id
            LIMIT ?
            """,
            (project_id, len(prefix), prefix, len(prefix), prefix, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def list_tasks(
        self,
        project_id: str,
        stage: str | None = None,
    ) -> list[Task]:
        """查询项目任务列表，按 sort_order、created_at 排序"""
        if stage:
            cursor = await self._conn.execute(
                f"""
                SELECT {_SELECT_COLUMNS} FROM project_tasks
                WHERE project_id = ? AND stage = ?
                ORDER BY COALESCE(sort_order, 0), created_at
                """,
                (project_id, stage),
            )
        else:
            cursor = await self._conn.execute(
                f"""
                SELECT {_SELECT_COLUMNS} FROM project_tasks
                WHERE project_id = ?
                ORDER BY COALESCE(sort_order, 0), created_at
                """,
                (project_id,),
            )
        rows = await cursor.fetchall()
        return [self._row_to_task(row) for row in rows]

    async def update_task(
        self,
        task_id: str,
        project_id: str,
        patch: dict[str, Any],
    ) -> Task | None:
        """单条条件写入：按权威存储键更新并返回更新后的完整记录

        Returns:
            更新后的 Task；影响 0 行时返回 None
        """
        unknown = set(patch) - set(TASK_COLUMNS)
        if unknown:
            raise ValueError(f"unknown task columns: {sorted(unknown)}")
        if not patch:
            return await self.get_task(task_id, project_id)

        columns = list(patch)
        assignments = ", ".join(f"{col} = ?" for col in columns)
        cursor = await self._conn.execute(
            f"""
            UPDATE project_tasks SET {assignments}
            WHERE id = ? AND project_id = ?
            RETURNING {_SELECT_COLUMNS}
            """,
            (*(_to_db(patch[col]) for col in columns), task_id, project_id),
        )
        # RETURNING 语句需完整步进后才能提交
        rows = await cursor.fetchall()
        if not rows:
            return None
        return self._row_to_task(rows[0])

    async def delete_task(self, task_id: str, project_id: str) -> bool:
        """按权威存储键删除

        Returns:
            True 如果删除了一行
        """
        cursor = await self._conn.execute(
            "DELETE FROM project_tasks WHERE id = ? AND project_id = ?",
            (task_id, project_id),
        )
        return cursor.rowcount > 0

    @staticmethod
    def _row_to_task(row: Any) -> Task:
        """将数据库行转换为 Task 模型"""
        return Task.model_validate(dict(zip(TASK_COLUMNS, row, strict=True)))
