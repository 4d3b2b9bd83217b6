"""枚举定义

包含 TaskOrigin、TaskStage、TaskStatus、LookupMethod、EventType 枚举。
"""

from enum import StrEnum


class TaskOrigin(StrEnum):
    """任务来源"""

    CUSTOM = "custom"
    TEMPLATE = "template"


class TaskStage(StrEnum):
    """项目生命周期阶段（按顺序）"""

    IDENTIFICATION = "identification"
    DEFINITION = "definition"
    DELIVERY = "delivery"
    CLOSURE = "closure"


class TaskStatus(StrEnum):
    """任务显示状态 -- 与 completed 保持一致"""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class LookupMethod(StrEnum):
    """命中记录的解析策略名称"""

    EXACT = "exact"
    NORMALIZED = "normalized"
    TEMPLATE = "template"
    PREFIX = "prefix"


class IdentifierKind(StrEnum):
    """规范化标识的来源"""

    EXACT = "exact"
    DERIVED = "derived"


class EventType(StrEnum):
    """任务审计事件类型"""

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_DELETED = "TASK_DELETED"


# 旧客户端使用的状态标签 -> 规范状态
LEGACY_STATUS_LABELS: dict[str, TaskStatus] = {
    "to do": TaskStatus.TODO,
    "to_do": TaskStatus.TODO,
    "todo": TaskStatus.TODO,
    "open": TaskStatus.TODO,
    "pending": TaskStatus.TODO,
    "in progress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.DONE,
    "completed": TaskStatus.DONE,
}
