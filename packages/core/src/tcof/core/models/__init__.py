"""TCOF Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    LEGACY_STATUS_LABELS,
    EventType,
    IdentifierKind,
    LookupMethod,
    TaskOrigin,
    TaskStage,
    TaskStatus,
)
from .event import TaskEvent
from .patch import ExternalTaskPatch, TaskView
from .payloads import (
    FieldChange,
    TaskCreatedPayload,
    TaskDeletedPayload,
    TaskUpdatedPayload,
)
from .task import NormalizedId, ResolvedTask, Task

__all__ = [
    # 枚举
    "TaskOrigin",
    "TaskStage",
    "TaskStatus",
    "LookupMethod",
    "IdentifierKind",
    "EventType",
    "LEGACY_STATUS_LABELS",
    # Task
    "Task",
    "NormalizedId",
    "ResolvedTask",
    # 外部表示
    "ExternalTaskPatch",
    "TaskView",
    # Event
    "TaskEvent",
    # Payloads
    "FieldChange",
    "TaskCreatedPayload",
    "TaskUpdatedPayload",
    "TaskDeletedPayload",
]
