"""Store Protocol 接口定义

定义 TaskStore、TaskEventStore 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
解析器与执行器只依赖这些接口。
"""

from typing import Any, Protocol

from ..models.event import TaskEvent
from ..models.task import Task


class TaskStore(Protocol):
    """Task 存储接口 -- 所有查询均限定项目作用域"""

    async def create_task(self, task: Task) -> None:
        """创建任务记录"""
        ...

    async def get_task(self, task_id: str, project_id: str) -> Task | None:
        """按存储键查询"""
        ...

    async def find_by_template_id(self, template_id: str, project_id: str) -> list[Task]:
        """按模板 ID 查询模板任务"""
        ...

    async def find_by_prefix(
        self, prefix: str, project_id: str, limit: int = 10
    ) -> list[Task]:
        """按 id / template_id 前缀查询"""
        ...

    async def list_tasks(self, project_id: str, stage: str | None = None) -> list[Task]:
        """查询项目任务列表"""
        ...

    async def update_task(
        self,
        task_id: str,
        project_id: str,
        patch: dict[str, Any],
    ) -> Task | None:
        """条件更新，返回更新后的记录或 None"""
        ...

    async def delete_task(self, task_id: str, project_id: str) -> bool:
        """删除记录"""
        ...


class TaskEventStore(Protocol):
    """审计事件存储接口（append-only）"""

    async def append_event(self, event: TaskEvent) -> None:
        """追加事件"""
        ...

    async def get_events_for_task(self, task_id: str, project_id: str) -> list[TaskEvent]:
        """查询指定任务的所有事件"""
        ...
