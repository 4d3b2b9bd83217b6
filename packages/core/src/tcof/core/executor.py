"""Update Executor -- 将外部补丁原子、幂等地应用到已解析的任务

流程：
1. Field Mapper to_internal
2. 保留模板关联元数据（origin / template_id 不随补丁变化）
3. 协调 completed 与 status
4. 按权威存储键执行单条条件写入，同事务追加 TASK_UPDATED 审计事件

写入是纯字段赋值（非增量），重复应用同一补丁得到相同状态。
"""

import re
from datetime import UTC, datetime
from typing import Any

import aiosqlite
import structlog
from ulid import ULID

from .exceptions import InvalidTaskUpdateError, TaskGoneError
from .field_mapper import (
    LINKAGE_FIELDS,
    UPDATED_AT_FIELD,
    InternalTaskPatch,
    external_name,
    internal_name,
    to_internal,
)
from .models import (
    EventType,
    ExternalTaskPatch,
    FieldChange,
    LookupMethod,
    Task,
    TaskEvent,
    TaskStatus,
    TaskUpdatedPayload,
)
from .store import StoreGroup
from .store.calls import bounded
from .store.transaction import update_task_with_event

log = structlog.get_logger()

_COMPLETED = internal_name("completed")
_STATUS = internal_name("status")

_NOT_NULL_PATTERN = re.compile(r"NOT NULL constraint failed: \w+\.(\w+)")
_CHECK_PATTERN = re.compile(r"CHECK constraint failed: ck_project_tasks_(\w+)")
_IMMUTABLE_PATTERN = re.compile(r"immutable column: (\w+)")


def constraint_field(message: str) -> str:
    """从 SQLite 约束错误信息反查出错字段（外部字段名）"""
    for pattern in (_NOT_NULL_PATTERN, _CHECK_PATTERN, _IMMUTABLE_PATTERN):
        match = pattern.search(message)
        if match:
            return external_name(match.group(1))
    return "unknown"


def reconcile_completion(current: Task, patch: InternalTaskPatch) -> None:
    """保持 completed 与 status 一致（就地修改补丁）

    - completed 出现时以其为准：true -> done；false -> 保留非 done 的状态，否则 todo
    - 仅 status 出现时：completed = (status == done)；status 为 null 时按当前完成状态推导
    """
    if _COMPLETED in patch:
        completed = patch[_COMPLETED]
        if completed is None:
            return
        if completed:
            patch[_STATUS] = TaskStatus.DONE
            return
        requested = patch.get(_STATUS)
        if requested is None or requested == TaskStatus.DONE:
            keep_current = current.status not in (None, TaskStatus.DONE)
            patch[_STATUS] = current.status if keep_current else TaskStatus.TODO
    elif _STATUS in patch:
        status = patch[_STATUS]
        if status is None:
            patch[_STATUS] = TaskStatus.DONE if current.completed else TaskStatus.TODO
        else:
            patch[_COMPLETED] = status == TaskStatus.DONE


class TaskUpdateExecutor:
    """任务更新执行器"""

    def __init__(self, stores: StoreGroup, timeout_s: float) -> None:
        self._stores = stores
        self._timeout_s = timeout_s

    async def apply(
        self,
        task: Task,
        patch: ExternalTaskPatch,
        *,
        client_id: str | None = None,
        lookup_method: LookupMethod = LookupMethod.EXACT,
        request_id: str | None = None,
    ) -> Task:
        """应用补丁并返回更新后的完整记录

        Args:
            task: 已解析（且已通过边界校验）的记录
            patch: 外部补丁
            client_id: 客户端使用的标识（审计用）
            lookup_method: 命中策略（审计用）
            request_id: 请求 ID，默认取 structlog contextvars

        Raises:
            TaskGoneError: 写入影响 0 行（解析后记录已被删除）
            InvalidTaskUpdateError: 违反存储约束
            TransientStoreError: 存储超时或不可用
        """
        internal = to_internal(patch)
        preserved = self._preserve_linkage(task, internal)
        reconcile_completion(task, internal)

        if request_id is None:
            request_id = structlog.contextvars.get_contextvars().get("request_id", "")

        def build_event(updated: Task) -> TaskEvent:
            payload = TaskUpdatedPayload(
                client_id=client_id or task.id,
                lookup_method=lookup_method,
                changes=self._diff(task, updated, internal),
                preserved_fields=preserved,
            )
            return TaskEvent(
                event_id=str(ULID()),
                task_id=updated.id,
                project_id=updated.project_id,
                ts=datetime.now(UTC),
                type=EventType.TASK_UPDATED,
                payload=payload.model_dump(mode="json"),
                request_id=request_id,
            )

        try:
            updated = await bounded(
                self._write(task, internal, build_event),
                operation="update_task",
                timeout_s=self._timeout_s,
            )
        except aiosqlite.IntegrityError as e:
            field = constraint_field(str(e))
            await log.awarning(
                "task_update_rejected",
                task_id=task.id,
                field=field,
                error=str(e),
            )
            raise InvalidTaskUpdateError(field, str(e)) from e

        if updated is None:
            await log.awarning("task_update_gone", task_id=task.id, project_id=task.project_id)
            raise TaskGoneError(task.id)

        await log.ainfo(
            "task_updated",
            task_id=updated.id,
            project_id=updated.project_id,
            lookup_method=lookup_method.value,
            fields=sorted(external_name(col) for col in internal if col != UPDATED_AT_FIELD),
            completed=updated.completed,
        )
        return updated

    async def _write(self, task: Task, internal: InternalTaskPatch, build_event) -> Task | None:
        # 锁等待也计入超时
        async with self._stores.write_lock:
            return await update_task_with_event(
                self._stores.conn,
                self._stores.task_store,
                self._stores.event_store,
                task.id,
                task.project_id,
                internal,
                build_event,
            )

    @staticmethod
    def _preserve_linkage(task: Task, internal: InternalTaskPatch) -> list[str]:
        """移除补丁中的关联字段，返回试图修改的外部字段名"""
        preserved = []
        for column in sorted(LINKAGE_FIELDS & internal.keys()):
            value = internal.pop(column)
            if value != getattr(task, column):
                preserved.append(external_name(column))
        if preserved:
            log.warning(
                "linkage_field_preserved",
                task_id=task.id,
                fields=preserved,
                origin=task.origin.value,
            )
        return preserved

    @staticmethod
    def _diff(before: Task, after: Task, internal: InternalTaskPatch) -> dict[str, FieldChange]:
        changes: dict[str, FieldChange] = {}
        for column in internal:
            if column == UPDATED_AT_FIELD:
                continue
            old: Any = getattr(before, column)
            new: Any = getattr(after, column)
            if old != new:
                changes[external_name(column)] = FieldChange(before=old, after=new)
        return changes
