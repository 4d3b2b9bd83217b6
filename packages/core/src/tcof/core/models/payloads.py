"""审计事件 Payload 子类型"""

from typing import Any

from pydantic import BaseModel, Field

from .enums import LookupMethod, TaskOrigin


class FieldChange(BaseModel):
    """单字段变更（外部字段名）"""

    before: Any = None
    after: Any = None


class TaskCreatedPayload(BaseModel):
    """TASK_CREATED 事件 payload"""

    origin: TaskOrigin
    template_id: str | None = None
    text_preview: str = Field(description="任务文本预览（截断到 200 字符）")


class TaskUpdatedPayload(BaseModel):
    """TASK_UPDATED 事件 payload"""

    client_id: str = Field(description="客户端使用的标识")
    lookup_method: LookupMethod = Field(description="命中策略")
    changes: dict[str, FieldChange] = Field(
        default_factory=dict,
        description="字段级变更（外部字段名 -> before/after）",
    )
    preserved_fields: list[str] = Field(
        default_factory=list,
        description="补丁试图修改但被保留的关联字段",
    )


class TaskDeletedPayload(BaseModel):
    """TASK_DELETED 事件 payload"""

    client_id: str
    lookup_method: LookupMethod
