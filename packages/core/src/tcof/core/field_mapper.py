"""Field Mapper -- 外部（camelCase）与内部（snake_case 列）字段双向翻译

FIELD_MAPPINGS 是名称对应关系的唯一来源，其他模块不得硬编码字段名对应。

翻译规则:
    to_internal: 仅翻译出现且可修改的字段；可选字段的 "" 转为显式缺省（NULL）；
                 projectId 为作用域字段，不可修改，直接丢弃；补丁打上 updated_at。
    to_external: 每个字段反向翻译；内部为空时替换为缺省值，外部消费者不会看到 null。
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from .config import DEFAULT_STAGE, DEFAULT_STATUS
from .models import ExternalTaskPatch, Task, TaskOrigin, TaskStatus, TaskView

# 内部补丁：列名 -> 值
InternalTaskPatch = dict[str, Any]


class FieldMapping(BaseModel):
    """单个字段的外部/内部对应关系"""

    external: str = Field(description="外部字段名（camelCase）")
    internal: str = Field(description="内部列名（snake_case）")
    optional: bool = Field(default=False, description="空字符串是否视为缺省")
    patchable: bool = Field(default=True, description="是否允许通过补丁修改")
    default: Any = Field(default="", description="外部视图中的缺省值")


FIELD_MAPPINGS: tuple[FieldMapping, ...] = (
    FieldMapping(external="id", internal="id", patchable=False),
    FieldMapping(external="projectId", internal="project_id", patchable=False),
    FieldMapping(external="text", internal="text"),
    FieldMapping(external="stage", internal="stage", default=DEFAULT_STAGE),
    FieldMapping(external="origin", internal="origin", default=TaskOrigin.CUSTOM.value),
    FieldMapping(external="sourceId", internal="template_id", optional=True),
    FieldMapping(external="completed", internal="completed", default=False),
    FieldMapping(external="status", internal="status", default=DEFAULT_STATUS),
    FieldMapping(external="notes", internal="notes", optional=True),
    FieldMapping(external="priority", internal="priority", optional=True),
    FieldMapping(external="owner", internal="owner", optional=True),
    FieldMapping(external="dueDate", internal="due_date", optional=True),
    FieldMapping(external="taskType", internal="task_type", optional=True),
    FieldMapping(external="factorId", internal="factor_id", optional=True),
    FieldMapping(external="sortOrder", internal="sort_order", default=0),
    FieldMapping(external="assignedTo", internal="assigned_to", optional=True),
    FieldMapping(external="taskNotes", internal="task_notes", optional=True),
    FieldMapping(external="createdAt", internal="created_at", patchable=False),
    FieldMapping(external="updatedAt", internal="updated_at", patchable=False),
)

_BY_EXTERNAL: dict[str, FieldMapping] = {m.external: m for m in FIELD_MAPPINGS}
_BY_INTERNAL: dict[str, FieldMapping] = {m.internal: m for m in FIELD_MAPPINGS}


def internal_name(external: str) -> str:
    """外部字段名 -> 内部列名"""
    return _BY_EXTERNAL[external].internal


def external_name(internal: str) -> str:
    """内部列名 -> 外部字段名；未知列原样返回"""
    mapping = _BY_INTERNAL.get(internal)
    return mapping.external if mapping else internal


# 模板关联元数据：更新时必须保留
LINKAGE_FIELDS: frozenset[str] = frozenset(
    {internal_name("origin"), internal_name("sourceId")}
)

UPDATED_AT_FIELD: str = internal_name("updatedAt")


def to_internal(
    patch: ExternalTaskPatch,
    now: datetime | None = None,
) -> InternalTaskPatch:
    """外部补丁 -> 内部补丁

    Args:
        patch: 外部补丁（仅 model_fields_set 中的字段被视为出现）
        now: 更新时间戳，默认当前 UTC 时间

    Returns:
        列名 -> 值 的内部补丁，始终包含 updated_at
    """
    internal: InternalTaskPatch = {}
    for name in sorted(patch.model_fields_set):
        mapping = _BY_EXTERNAL.get(name)
        if mapping is None or not mapping.patchable:
            continue
        value = getattr(patch, name)
        if mapping.optional and value == "":
            value = None
        internal[mapping.internal] = value

    internal[UPDATED_AT_FIELD] = now or datetime.now(UTC)
    return internal


def to_external(task: Task) -> TaskView:
    """内部记录 -> 外部视图，空字段替换为缺省值"""
    fields: dict[str, Any] = {}
    for mapping in FIELD_MAPPINGS:
        value = getattr(task, mapping.internal)
        if value is None:
            value = mapping.default
        elif isinstance(value, datetime):
            value = value.isoformat()
        fields[mapping.external] = value
    # 未记录状态时由完成标记推导，保持 completed 与 status 一致
    if task.status is None and task.completed:
        fields[external_name("status")] = TaskStatus.DONE.value
    return TaskView(**fields)
