"""Task Domain Model

project_tasks 表的内部（存储侧）表示，字段名与列名一致。
模板克隆的任务 origin=template 且 template_id 非空；
同一 template_id 可存在于多个项目中。
"""

from datetime import datetime

from pydantic import BaseModel, Field

from .enums import IdentifierKind, LookupMethod, TaskOrigin, TaskStage, TaskStatus


class Task(BaseModel):
    """Task 数据模型（内部字段命名）"""

    id: str = Field(description="全局唯一存储键")
    project_id: str = Field(description="所属项目，创建后不可变")
    origin: TaskOrigin = Field(default=TaskOrigin.CUSTOM, description="任务来源")
    template_id: str | None = Field(
        default=None,
        description="克隆来源模板 ID，仅 origin=template 时非空",
    )
    text: str = Field(default="", description="任务文本")
    stage: TaskStage | None = Field(default=None, description="生命周期阶段")
    completed: bool = Field(default=False, description="是否完成")
    status: TaskStatus | None = Field(default=None, description="显示状态")
    notes: str | None = None
    priority: str | None = None
    owner: str | None = None
    due_date: str | None = None
    task_type: str | None = None
    factor_id: str | None = None
    sort_order: int | None = None
    assigned_to: str | None = None
    task_notes: str | None = None
    created_at: datetime = Field(description="创建时间")
    updated_at: datetime = Field(description="更新时间")


class NormalizedId(BaseModel):
    """规范化后的客户端标识"""

    value: str = Field(description="规范形态的标识")
    kind: IdentifierKind = Field(description="exact: 原样；derived: 从复合标识截取")
    raw: str = Field(description="客户端原始输入（审计用）")


class ResolvedTask(BaseModel):
    """解析结果：记录 + 命中策略"""

    task: Task
    lookup_method: LookupMethod
    client_id: str
