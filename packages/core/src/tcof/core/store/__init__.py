"""TCOF Core Store -- SQLite 持久化实现

提供工厂函数创建 Store 实例组：一条写连接 + 一条只读连接。
"""

import asyncio
from pathlib import Path

import aiosqlite

from .calls import bounded
from .event_store import SqliteTaskEventStore
from .sqlite_init import init_db
from .task_store import SqliteTaskStore
from .transaction import (
    create_task_with_event,
    delete_task_with_event,
    update_task_with_event,
)

_MEMORY_DB = ":memory:"


class StoreGroup:
    """Store 实例组

    conn 承载全部写事务，write_lock 串行化其上的事务。
    read_conn 只读（query_only），WAL 模式下只能看到已提交的数据；
    解析、列表、事件查询都走 read_* store。
    """

    def __init__(
        self,
        conn: aiosqlite.Connection,
        read_conn: aiosqlite.Connection | None = None,
    ) -> None:
        self.conn = conn
        self.read_conn = read_conn or conn
        self.task_store = SqliteTaskStore(conn)
        self.event_store = SqliteTaskEventStore(conn)
        self.read_task_store = SqliteTaskStore(self.read_conn)
        self.read_event_store = SqliteTaskEventStore(self.read_conn)
        self.write_lock = asyncio.Lock()

    async def close(self) -> None:
        """关闭只读连接与写连接"""
        if self.read_conn is not self.conn:
            await self.read_conn.close()
        await self.conn.close()


async def _open_read_conn(db_path: str, busy_timeout_ms: int) -> aiosqlite.Connection:
    read_conn = await aiosqlite.connect(db_path)
    read_conn.row_factory = aiosqlite.Row
    await read_conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)}")
    await read_conn.execute("PRAGMA query_only = ON")
    return read_conn


async def create_store_group(db_path: str, busy_timeout_ms: int = 5000) -> StoreGroup:
    """创建 Store 实例组

    Args:
        db_path: SQLite 数据库文件路径（":memory:" 时读写共用一条连接）
        busy_timeout_ms: SQLite 锁等待时间

    Returns:
        StoreGroup 实例
    """
    if db_path == _MEMORY_DB:
        conn = await aiosqlite.connect(db_path)
        conn.row_factory = aiosqlite.Row
        await init_db(conn, busy_timeout_ms=busy_timeout_ms)
        return StoreGroup(conn=conn)

    # 确保数据库目录存在
    db_dir = Path(db_path).parent
    db_dir.mkdir(parents=True, exist_ok=True)

    conn = await aiosqlite.connect(db_path)
    conn.row_factory = aiosqlite.Row
    await init_db(conn, busy_timeout_ms=busy_timeout_ms)

    # 只读连接在 schema 就绪后再打开
    read_conn = await _open_read_conn(db_path, busy_timeout_ms)
    return StoreGroup(conn=conn, read_conn=read_conn)


__all__ = [
    "StoreGroup",
    "create_store_group",
    "SqliteTaskStore",
    "SqliteTaskEventStore",
    "init_db",
    "bounded",
    "create_task_with_event",
    "update_task_with_event",
    "delete_task_with_event",
]
