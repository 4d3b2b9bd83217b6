"""Project Boundary Guard

解析器对每个候选记录调用一次；更新/删除执行前再调用一次。
project_id 与请求作用域不一致的记录不得被返回或修改。
"""

import structlog

from .exceptions import CrossProjectViolationError
from .models import Task

log = structlog.get_logger()


def assert_in_scope(task: Task, project_id: str) -> Task:
    """断言记录属于请求的项目作用域

    Returns:
        原记录（便于链式调用）

    Raises:
        CrossProjectViolationError: 记录属于其他项目
    """
    if task.project_id != project_id:
        log.warning(
            "task_boundary_violation",
            task_id=task.id,
            requested_project_id=project_id,
            actual_project_id=task.project_id,
        )
        raise CrossProjectViolationError(
            task_id=task.id,
            requested_project_id=project_id,
            actual_project_id=task.project_id,
        )
    return task
