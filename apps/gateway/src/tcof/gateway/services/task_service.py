"""TaskService -- 任务解析/更新管线编排

路由层只与本服务交互：
validate_client_id -> Resolver -> Boundary Guard -> Update Executor -> Response Projector
"""

import uuid
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog
from tcof.core.boundary import assert_in_scope
from tcof.core.config import PipelineConfig, load_pipeline_config
from tcof.core.exceptions import InvalidTaskUpdateError, TaskGoneError
from tcof.core.executor import TaskUpdateExecutor, constraint_field, reconcile_completion
from tcof.core.field_mapper import LINKAGE_FIELDS, internal_name, to_internal
from tcof.core.identifiers import validate_client_id
from tcof.core.models import (
    EventType,
    ExternalTaskPatch,
    LookupMethod,
    ResolvedTask,
    Task,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskEvent,
    TaskOrigin,
    TaskStage,
    TaskStatus,
    TaskView,
)
from tcof.core.projector import project_task
from tcof.core.resolver import TaskResolver
from tcof.core.store import StoreGroup, bounded, create_task_with_event, delete_task_with_event
from ulid import ULID

log = structlog.get_logger()

# 审计事件中的文本预览长度
_TEXT_PREVIEW_LENGTH = 200

_TEXT = internal_name("text")
_DEFAULTED_ON_CREATE: tuple[str, ...] = tuple(
    internal_name(name) for name in ("stage", "completed", "status", "sortOrder")
)


def _request_id() -> str:
    return structlog.contextvars.get_contextvars().get("request_id", "")


class TaskService:
    """任务业务服务层"""

    def __init__(
        self,
        store_group: StoreGroup,
        config: PipelineConfig | None = None,
    ) -> None:
        self._stores = store_group
        self._config = config or load_pipeline_config()
        self._resolver = TaskResolver(store_group.read_task_store, self._config.store_timeout_s)
        self._executor = TaskUpdateExecutor(store_group, self._config.store_timeout_s)

    async def resolve(self, project_id: str, client_id: str) -> ResolvedTask:
        """校验并解析客户端标识"""
        validate_client_id(client_id)
        return await self._resolver.resolve(client_id, project_id)

    async def get_task(self, project_id: str, client_id: str) -> tuple[TaskView, LookupMethod]:
        """查询单个任务的外部视图"""
        resolved = await self.resolve(project_id, client_id)
        return project_task(resolved.task, client_id), resolved.lookup_method

    async def update_task(
        self,
        project_id: str,
        client_id: str,
        payload: dict[str, Any],
    ) -> tuple[TaskView, LookupMethod]:
        """部分更新任务

        Returns:
            (更新后的外部视图, 命中策略)
        """
        patch = ExternalTaskPatch.from_payload(payload)
        resolved = await self.resolve(project_id, client_id)
        task = assert_in_scope(resolved.task, project_id)

        updated = await self._executor.apply(
            task,
            patch,
            client_id=client_id,
            lookup_method=resolved.lookup_method,
            request_id=_request_id(),
        )
        return project_task(updated, client_id), resolved.lookup_method

    async def delete_task(self, project_id: str, client_id: str) -> LookupMethod:
        """硬删除任务，同事务写入 TASK_DELETED 事件"""
        resolved = await self.resolve(project_id, client_id)
        task = assert_in_scope(resolved.task, project_id)

        event = TaskEvent(
            event_id=str(ULID()),
            task_id=task.id,
            project_id=project_id,
            ts=datetime.now(UTC),
            type=EventType.TASK_DELETED,
            payload=TaskDeletedPayload(
                client_id=client_id,
                lookup_method=resolved.lookup_method,
            ).model_dump(mode="json"),
            request_id=_request_id(),
        )

        async def _write() -> bool:
            async with self._stores.write_lock:
                return await delete_task_with_event(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    task.id,
                    project_id,
                    event,
                )

        deleted = await bounded(
            _write(), operation="delete_task", timeout_s=self._config.store_timeout_s
        )
        if not deleted:
            raise TaskGoneError(task.id)

        await log.ainfo(
            "task_deleted",
            task_id=task.id,
            project_id=project_id,
            lookup_method=resolved.lookup_method.value,
        )
        return resolved.lookup_method

    async def create_task(self, project_id: str, payload: dict[str, Any]) -> TaskView:
        """创建用户自定义任务（origin 固定为 custom）

        Raises:
            InvalidTaskUpdateError: text 缺失或字段校验失败
        """
        patch = ExternalTaskPatch.from_payload(payload)
        now = datetime.now(UTC)
        internal = to_internal(patch, now=now)
        for column in LINKAGE_FIELDS:
            internal.pop(column, None)

        if not internal.get(_TEXT):
            raise InvalidTaskUpdateError("text", "text is required")
        # 显式 null 对新记录等同于缺省
        for column in _DEFAULTED_ON_CREATE:
            if column in internal and internal[column] is None:
                del internal[column]

        draft = Task(
            id=str(uuid.uuid4()),
            project_id=project_id,
            origin=TaskOrigin.CUSTOM,
            stage=TaskStage.IDENTIFICATION,
            status=TaskStatus.TODO,
            created_at=now,
            updated_at=now,
        )
        reconcile_completion(draft, internal)
        task = draft.model_copy(update=internal)

        event = TaskEvent(
            event_id=str(ULID()),
            task_id=task.id,
            project_id=project_id,
            ts=now,
            type=EventType.TASK_CREATED,
            payload=TaskCreatedPayload(
                origin=task.origin,
                template_id=task.template_id,
                text_preview=task.text[:_TEXT_PREVIEW_LENGTH],
            ).model_dump(mode="json"),
            request_id=_request_id(),
        )

        async def _write() -> None:
            async with self._stores.write_lock:
                await create_task_with_event(
                    self._stores.conn,
                    self._stores.task_store,
                    self._stores.event_store,
                    task,
                    event,
                )

        try:
            await bounded(_write(), operation="create_task", timeout_s=self._config.store_timeout_s)
        except aiosqlite.IntegrityError as e:
            raise InvalidTaskUpdateError(constraint_field(str(e)), str(e)) from e

        await log.ainfo("task_created", task_id=task.id, project_id=project_id)
        return project_task(task)

    async def list_tasks(self, project_id: str, stage: TaskStage | None = None) -> list[TaskView]:
        """列出项目内的任务"""
        tasks = await bounded(
            self._stores.read_task_store.list_tasks(project_id, stage.value if stage else None),
            operation="list_tasks",
            timeout_s=self._config.store_timeout_s,
        )
        return [project_task(t) for t in tasks]

    async def list_events(
        self, project_id: str, client_id: str
    ) -> tuple[list[TaskEvent], LookupMethod]:
        """查询已解析任务的审计事件"""
        resolved = await self.resolve(project_id, client_id)
        events = await bounded(
            self._stores.read_event_store.get_events_for_task(resolved.task.id, project_id),
            operation="list_events",
            timeout_s=self._config.store_timeout_s,
        )
        return events, resolved.lookup_method
