"""外部（客户端）任务表示

ExternalTaskPatch 与 TaskView 的属性名即外部 wire 字段名（camelCase）。
名称到内部列的翻译只在 field_mapper.FIELD_MAPPINGS 中定义。
"""

from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..exceptions import InvalidTaskUpdateError
from .enums import LEGACY_STATUS_LABELS, TaskOrigin, TaskStage, TaskStatus

log = structlog.get_logger()

_TRUE_VALUES = {"true", "1", "yes", "on", "y", "t"}
_FALSE_VALUES = {"false", "0", "no", "off", "n", "f"}

# SQLite INTEGER 为 64 位有符号整数
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1

_TEXT_FIELDS = (
    "text",
    "notes",
    "priority",
    "owner",
    "sourceId",
    "projectId",
    "dueDate",
    "taskType",
    "factorId",
    "assignedTo",
    "taskNotes",
)


class ExternalTaskPatch(BaseModel):
    """外部部分更新 -- 每个字段独立地“出现/缺省”

    出现的字段由 model_fields_set 判定（显式 null 也算出现），
    未识别的键直接丢弃。
    """

    model_config = ConfigDict(extra="ignore")

    text: str | None = None
    stage: TaskStage | None = None
    origin: TaskOrigin | None = None
    notes: str | None = None
    priority: str | None = None
    owner: str | None = None
    status: TaskStatus | None = None
    completed: bool | None = None
    sourceId: str | None = None
    projectId: str | None = None
    dueDate: str | None = None
    taskType: str | None = None
    factorId: str | None = None
    sortOrder: int | None = Field(default=None, ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)
    assignedTo: str | None = None
    taskNotes: str | None = None

    @field_validator("completed", mode="before")
    @classmethod
    def _coerce_completed(cls, value: Any) -> Any:
        """布尔形态输入（"true"/1/"yes"...）强制转换为严格布尔"""
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, int | float) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
        raise ValueError(f"not a boolean-like value: {value!r}")

    @field_validator(*_TEXT_FIELDS)
    @classmethod
    def _require_utf8(cls, value: str | None) -> str | None:
        """拒绝无法编码为 UTF-8 的文本（如孤立代理项 \\ud800）"""
        if value is not None:
            try:
                value.encode("utf-8")
            except UnicodeEncodeError as e:
                raise ValueError(f"text is not valid UTF-8 at position {e.start}") from e
        return value

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        """兼容旧客户端状态标签（"To Do" / "In Progress" / "Done"）"""
        if isinstance(value, str):
            return LEGACY_STATUS_LABELS.get(value.strip().lower(), value)
        return value

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ExternalTaskPatch":
        """从请求体构建补丁

        Raises:
            InvalidTaskUpdateError: 字段值无法通过校验（field 为外部字段名）
        """
        try:
            patch = cls.model_validate(payload)
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first["loc"] else "body"
            raise InvalidTaskUpdateError(field, first["msg"]) from e

        dropped = sorted(set(payload) - set(cls.model_fields))
        if dropped:
            log.debug("patch_fields_dropped", fields=dropped)
        return patch


class TaskView(BaseModel):
    """外部任务视图 -- 期望始终存在的字段不会为 null"""

    id: str
    projectId: str
    text: str
    stage: TaskStage
    origin: TaskOrigin
    sourceId: str
    completed: bool
    status: TaskStatus
    notes: str
    priority: str
    owner: str
    dueDate: str
    taskType: str
    factorId: str
    sortOrder: int
    assignedTo: str
    taskNotes: str
    createdAt: str
    updatedAt: str
    requestedId: str | None = None
