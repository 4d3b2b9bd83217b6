"""SQLite 数据库初始化

PRAGMA 配置 + project_tasks / task_events 两张表 DDL + 索引 + 不可变触发器。
使用 aiosqlite 异步操作。
"""

import aiosqlite

# project_tasks 表 DDL
# 约束命名 ck_project_tasks_<列名>，违反时可反查出错字段
_PROJECT_TASKS_DDL = """
CREATE TABLE IF NOT EXISTS project_tasks (
    id           TEXT PRIMARY KEY,
    project_id   TEXT NOT NULL,
    origin       TEXT NOT NULL DEFAULT 'custom'
        CONSTRAINT ck_project_tasks_origin CHECK (origin IN ('custom', 'template')),
    template_id  TEXT,
    text         TEXT NOT NULL DEFAULT '',
    stage        TEXT
        CONSTRAINT ck_project_tasks_stage
        CHECK (stage IS NULL OR stage IN ('identification', 'definition', 'delivery', 'closure')),
    completed    INTEGER NOT NULL DEFAULT 0
        CONSTRAINT ck_project_tasks_completed CHECK (completed IN (0, 1)),
    status       TEXT
        CONSTRAINT ck_project_tasks_status
        CHECK (status IS NULL OR status IN ('todo', 'in_progress', 'done')),
    notes        TEXT,
    priority     TEXT,
    owner        TEXT,
    due_date     TEXT,
    task_type    TEXT,
    factor_id    TEXT,
    sort_order   INTEGER,
    assigned_to  TEXT,
    task_notes   TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL,

    CONSTRAINT ck_project_tasks_template_id
        CHECK (origin = 'custom' OR template_id IS NOT NULL)
);
"""

_PROJECT_TASKS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_project_tasks_project ON project_tasks(project_id);",
    (
        "CREATE INDEX IF NOT EXISTS idx_project_tasks_template "
        "ON project_tasks(project_id, template_id);"
    ),
]

# project_id 创建后不可变；模板任务的 template_id 不可变
_PROJECT_TASKS_TRIGGERS = [
    """
    CREATE TRIGGER IF NOT EXISTS trg_project_tasks_project_id_immutable
    BEFORE UPDATE OF project_id ON project_tasks
    WHEN NEW.project_id IS NOT OLD.project_id
    BEGIN
        SELECT RAISE(ABORT, 'immutable column: project_id');
    END;
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_project_tasks_template_id_immutable
    BEFORE UPDATE OF template_id ON project_tasks
    WHEN OLD.origin = 'template' AND NEW.template_id IS NOT OLD.template_id
    BEGIN
        SELECT RAISE(ABORT, 'immutable column: template_id');
    END;
    """,
]

# task_events 表 DDL（append-only 审计日志，任务删除后保留）
_TASK_EVENTS_DDL = """
CREATE TABLE IF NOT EXISTS task_events (
    event_id    TEXT PRIMARY KEY,
    task_id     TEXT NOT NULL,
    project_id  TEXT NOT NULL,
    ts          TEXT NOT NULL,
    type        TEXT NOT NULL,
    payload     TEXT NOT NULL DEFAULT '{}',
    request_id  TEXT NOT NULL DEFAULT ''
);
"""

_TASK_EVENTS_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_task_events_task ON task_events(task_id, event_id);",
]


async def init_db(conn: aiosqlite.Connection, busy_timeout_ms: int = 5000) -> None:
    """初始化数据库：设置 PRAGMA + 创建表 + 创建索引/触发器

    Args:
        conn: aiosqlite 数据库连接
        busy_timeout_ms: SQLite 锁等待时间
    """
    # 设置 PRAGMA
    await conn.execute("PRAGMA journal_mode = WAL;")
    await conn.execute(f"PRAGMA busy_timeout = {int(busy_timeout_ms)};")

    # 创建表
    await conn.execute(_PROJECT_TASKS_DDL)
    await conn.execute(_TASK_EVENTS_DDL)

    # 创建索引与触发器
    for sql in _PROJECT_TASKS_INDEXES + _TASK_EVENTS_INDEXES + _PROJECT_TASKS_TRIGGERS:
        await conn.execute(sql)

    await conn.commit()


async def verify_wal_mode(conn: aiosqlite.Connection) -> bool:
    """验证 WAL 模式是否生效

    Returns:
        True 如果 WAL 模式已启用
    """
    cursor = await conn.execute("PRAGMA journal_mode;")
    row = await cursor.fetchone()
    return row is not None and row[0].lower() == "wal"
