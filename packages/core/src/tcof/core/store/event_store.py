"""TaskEventStore SQLite 实现

审计事件表 append-only：只允许插入，不允许更新或删除。
"""

import json
from datetime import datetime

import aiosqlite

from ..models.enums import EventType
from ..models.event import TaskEvent


class SqliteTaskEventStore:
    """TaskEventStore 的 SQLite 实现"""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def append_event(self, event: TaskEvent) -> None:
        """追加事件（append-only）

        注意：此方法不自动提交事务，需由调用方管理事务。
        """
        await self._conn.execute(
            """
            INSERT INTO task_events (event_id, task_id, project_id, ts, type,
                                     payload, request_id)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                event.event_id,
                event.task_id,
                event.project_id,
                event.ts.isoformat(),
                event.type.value,
                json.dumps(event.payload, ensure_ascii=False, default=str),
                event.request_id,
            ),
        )

    async def get_events_for_task(self, task_id: str, project_id: str) -> list[TaskEvent]:
        """查询指定任务的所有事件，按 event_id（时间）正序"""
        cursor = await self._conn.execute(
            """
            SELECT event_id, task_id, project_id, ts, type, payload, request_id
            FROM task_events
            WHERE task_id = ? AND project_id = ?
            ORDER BY event_id ASC
            """,
            (task_id, project_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_event(row) for row in rows]

    @staticmethod
    def _row_to_event(row: aiosqlite.Row) -> TaskEvent:
        """将数据库行转换为 TaskEvent 模型"""
        payload = json.loads(row[5]) if row[5] else {}
        return TaskEvent(
            event_id=row[0],
            task_id=row[1],
            project_id=row[2],
            ts=datetime.fromisoformat(row[3]),
            type=EventType(row[4]),
            payload=payload,
            request_id=row[6],
        )
