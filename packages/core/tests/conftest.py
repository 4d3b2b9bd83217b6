"""packages/core 测试配置 -- 核心层 fixture"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from tcof.core.models import Task, TaskOrigin, TaskStage, TaskStatus
from tcof.core.store import StoreGroup, create_store_group

# 默认存储键（规范形态）
TASK_A = "3f2b8c1e-9d4a-4e7b-8c2d-1a2b3c4d5e6f"


@pytest_asyncio.fixture
async def core_db_path(tmp_path: Path) -> Path:
    """核心层临时数据库路径"""
    return tmp_path / "core_test.db"


@pytest_asyncio.fixture
async def store_group(core_db_path: Path) -> AsyncGenerator[StoreGroup, None]:
    """核心层已初始化的 Store 实例组"""
    group = await create_store_group(str(core_db_path))
    yield group
    await group.close()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Task 工厂：默认生成项目 P1 内的自定义任务"""

    def _make(
        task_id: str = TASK_A,
        project_id: str = "P1",
        origin: TaskOrigin = TaskOrigin.CUSTOM,
        template_id: str | None = None,
        text: str = "确认项目目标",
        stage: TaskStage | None = TaskStage.IDENTIFICATION,
        completed: bool = False,
        status: TaskStatus | None = TaskStatus.TODO,
        **extra,
    ) -> Task:
        now = datetime.now(UTC)
        return Task(
            id=task_id,
            project_id=project_id,
            origin=origin,
            template_id=template_id,
            text=text,
            stage=stage,
            completed=completed,
            status=status,
            created_at=now,
            updated_at=now,
            **extra,
        )

    return _make


@pytest.fixture
def seed(store_group: StoreGroup) -> Callable[..., Awaitable[list[Task]]]:
    """直接通过 TaskStore 写入任务（模拟外部模板克隆）"""

    async def _seed(*tasks: Task) -> list[Task]:
        for task in tasks:
            await store_group.task_store.create_task(task)
        await store_group.conn.commit()
        return list(tasks)

    return _seed
