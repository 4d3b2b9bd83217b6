"""apps/gateway 测试配置 -- httpx AsyncClient + async DB fixture"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from tcof.core.config import PipelineConfig
from tcof.core.models import Task, TaskOrigin, TaskStage, TaskStatus
from tcof.core.store import create_store_group

_ENV_KEYS = ["TCOF_DB_PATH", "LOGFIRE_SEND_TO_LOGFIRE"]


@pytest_asyncio.fixture
async def app(tmp_path: Path):
    """创建测试用 FastAPI app 实例（手动初始化，绕过 lifespan）"""
    os.environ["TCOF_DB_PATH"] = str(tmp_path / "sqlite" / "test.db")
    os.environ["LOGFIRE_SEND_TO_LOGFIRE"] = "false"

    from tcof.gateway.main import create_app

    application = create_app()
    store_group = await create_store_group(os.environ["TCOF_DB_PATH"])
    application.state.store_group = store_group
    application.state.pipeline_config = PipelineConfig(store_timeout_s=2.0)

    yield application

    await store_group.close()
    for key in _ENV_KEYS:
        os.environ.pop(key, None)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """提供 httpx AsyncClient 用于测试"""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def seed_task(app) -> Callable[..., Awaitable[Task]]:
    """直接写入任务记录（模拟外部模板克隆）"""
    store_group = app.state.store_group

    async def _seed(
        task_id: str,
        project_id: str = "P1",
        template_id: str | None = None,
        **fields,
    ) -> Task:
        now = datetime.now(UTC)
        fields.setdefault("text", f"任务 {task_id}")
        fields.setdefault("stage", TaskStage.IDENTIFICATION)
        fields.setdefault("status", TaskStatus.TODO)
        task = Task(
            id=task_id,
            project_id=project_id,
            origin=TaskOrigin.TEMPLATE if template_id else TaskOrigin.CUSTOM,
            template_id=template_id,
            created_at=now,
            updated_at=now,
            **fields,
        )
        await store_group.task_store.create_task(task)
        await store_group.conn.commit()
        return task

    return _seed
