"""Task 审计事件模型

task_events 表 append-only，与任务写入处于同一事务。
event_id 使用 ULID 格式，时间有序。
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from .enums import EventType


class TaskEvent(BaseModel):
    """任务审计事件"""

    event_id: str = Field(description="唯一标识，ULID 格式，时间有序")
    task_id: str = Field(description="关联的 Task ID（权威存储键）")
    project_id: str = Field(description="所属项目")
    ts: datetime = Field(description="事件时间戳")
    type: EventType = Field(description="事件类型")
    payload: dict[str, Any] = Field(default_factory=dict, description="结构化 payload")
    request_id: str = Field(default="", description="触发事件的请求 ID")
