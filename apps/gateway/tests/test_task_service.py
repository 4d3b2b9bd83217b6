"""TaskService 单元测试 -- 管线编排（不经 HTTP）"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio
from tcof.core.config import PipelineConfig
from tcof.core.exceptions import (
    CrossProjectViolationError,
    InvalidIdentifierError,
    TaskGoneError,
    TaskNotFoundError,
)
from tcof.core.models import LookupMethod, ResolvedTask, Task, TaskOrigin, TaskStage
from tcof.core.store import StoreGroup, create_store_group
from tcof.gateway.services.task_service import TaskService


@pytest_asyncio.fixture
async def service_with_store(tmp_path: Path) -> AsyncGenerator[tuple[TaskService, StoreGroup], None]:
    store_group = await create_store_group(str(tmp_path / "service.db"))
    service = TaskService(store_group, PipelineConfig(store_timeout_s=1.0))
    yield service, store_group
    await store_group.close()


async def _seed(store_group: StoreGroup, task_id: str, project_id: str = "P1", **fields) -> Task:
    now = datetime.now(UTC)
    task = Task(
        id=task_id,
        project_id=project_id,
        text="种子任务",
        stage=TaskStage.IDENTIFICATION,
        created_at=now,
        updated_at=now,
        **fields,
    )
    await store_group.task_store.create_task(task)
    await store_group.conn.commit()
    return task


class TestTaskService:
    async def test_update_pipeline(self, service_with_store):
        service, store_group = service_with_store
        await _seed(store_group, "a1", origin=TaskOrigin.TEMPLATE, template_id="t1")

        view, method = await service.update_task("P1", "t1", {"completed": True})
        assert method == LookupMethod.TEMPLATE
        assert view.id == "a1"
        assert view.completed is True
        assert view.status == "done"

    async def test_invalid_identifier_before_resolution(self, service_with_store):
        service, _ = service_with_store
        with pytest.raises(InvalidIdentifierError):
            await service.get_task("P1", "bad id")

    async def test_guard_before_write(self, service_with_store, monkeypatch):
        """解析结果不在作用域内时，执行器不会被调用"""
        service, store_group = service_with_store
        foreign = await _seed(store_group, "a1", project_id="P2")

        async def leaky_resolve(client_id, project_id):
            return ResolvedTask(task=foreign, lookup_method=LookupMethod.EXACT, client_id=client_id)

        async def fail_apply(*args, **kwargs):
            raise AssertionError("executor must not run")

        monkeypatch.setattr(service._resolver, "resolve", leaky_resolve)
        monkeypatch.setattr(service._executor, "apply", fail_apply)

        with pytest.raises(CrossProjectViolationError):
            await service.update_task("P1", "a1", {"text": "x"})
        with pytest.raises(CrossProjectViolationError):
            await service.delete_task("P1", "a1")

    async def test_delete_then_update_gone(self, service_with_store, monkeypatch):
        """解析后记录被并发删除 -> TaskGoneError"""
        service, store_group = service_with_store
        task = await _seed(store_group, "a1")
        original_resolve = service._resolver.resolve

        async def resolve_then_delete(client_id, project_id):
            resolved = await original_resolve(client_id, project_id)
            await store_group.task_store.delete_task(task.id, project_id)
            await store_group.conn.commit()
            return resolved

        monkeypatch.setattr(service._resolver, "resolve", resolve_then_delete)
        with pytest.raises(TaskGoneError):
            await service.update_task("P1", "a1", {"text": "x"})

    async def test_delete_records_event(self, service_with_store):
        service, store_group = service_with_store
        await _seed(store_group, "a1")

        method = await service.delete_task("P1", "a1")
        assert method == LookupMethod.EXACT

        with pytest.raises(TaskNotFoundError):
            await service.get_task("P1", "a1")
        events = await store_group.event_store.get_events_for_task("a1", "P1")
        assert [e.type for e in events] == ["TASK_DELETED"]
        assert events[0].payload == {"client_id": "a1", "lookup_method": "exact"}

    async def test_create_and_list(self, service_with_store):
        service, _ = service_with_store
        created = await service.create_task("P1", {"text": "新任务", "status": "In Progress"})
        assert created.status == "in_progress"
        assert created.completed is False

        listed = await service.list_tasks("P1")
        assert [v.id for v in listed] == [created.id]
        assert await service.list_tasks("P1", TaskStage.CLOSURE) == []

    async def test_create_null_stage_uses_default(self, service_with_store):
        service, _ = service_with_store
        created = await service.create_task("P1", {"text": "x", "stage": None})
        assert created.stage == TaskStage.IDENTIFICATION
