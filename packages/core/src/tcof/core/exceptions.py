"""任务管线异常体系

解析、边界校验、更新、存储各阶段的失败都以类型化异常表达，
网关层按 code 映射为结构化 JSON 错误响应。
"""

from typing import Any


class TaskPipelineError(Exception):
    """任务管线基础异常"""

    code: str = "TASK_PIPELINE_ERROR"

    def __init__(self, message: str, recoverable: bool = False) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方是否可通过重试恢复
        """
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable

    @property
    def details(self) -> dict[str, Any]:
        """结构化错误详情（供响应体 details 字段使用）"""
        return {}


class InvalidIdentifierError(TaskPipelineError):
    """路径中的任务标识缺失或格式错误"""

    code = "INVALID_TASK_ID"

    def __init__(self, client_id: str, reason: str) -> None:
        super().__init__(f"Invalid task identifier: {reason}")
        self.client_id = client_id
        self.reason = reason

    @property
    def details(self) -> dict[str, Any]:
        return {"reason": self.reason}


class TaskNotFoundError(TaskPipelineError):
    """所有解析策略均未命中"""

    code = "TASK_NOT_FOUND"

    def __init__(self, client_id: str, project_id: str) -> None:
        super().__init__(
            f"Task with id {client_id} not found in project {project_id}"
        )
        self.client_id = client_id
        self.project_id = project_id

    @property
    def details(self) -> dict[str, Any]:
        return {"taskId": self.client_id, "projectId": self.project_id}


class CrossProjectViolationError(TaskPipelineError):
    """记录存在但不属于请求的项目作用域

    对外与 TaskNotFoundError 表现一致，避免泄露其他项目的记录。
    """

    code = "TASK_NOT_FOUND"

    def __init__(
        self,
        task_id: str,
        requested_project_id: str,
        actual_project_id: str,
    ) -> None:
        super().__init__(
            f"Task {task_id} is outside project {requested_project_id}"
        )
        self.task_id = task_id
        self.requested_project_id = requested_project_id
        self.actual_project_id = actual_project_id


class AmbiguousMatchError(TaskPipelineError):
    """同一策略命中多条候选记录，拒绝猜测"""

    code = "AMBIGUOUS_TASK_ID"

    def __init__(
        self,
        client_id: str,
        project_id: str,
        strategy: str,
        candidate_ids: list[str],
    ) -> None:
        super().__init__(
            f"Task id {client_id} matches {len(candidate_ids)} tasks "
            f"in project {project_id}"
        )
        self.client_id = client_id
        self.project_id = project_id
        self.strategy = strategy
        self.candidate_ids = candidate_ids

    @property
    def details(self) -> dict[str, Any]:
        return {
            "taskId": self.client_id,
            "strategy": self.strategy,
            "candidates": self.candidate_ids,
        }


class TaskUpdateError(TaskPipelineError):
    """更新执行失败基类"""

    code = "TASK_UPDATE_FAILED"


class TaskGoneError(TaskUpdateError):
    """解析与写入之间记录已被删除（写入影响 0 行）"""

    code = "TASK_GONE"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task {task_id} no longer exists")
        self.task_id = task_id

    @property
    def details(self) -> dict[str, Any]:
        return {"taskId": self.task_id}


class InvalidTaskUpdateError(TaskUpdateError):
    """补丁违反字段校验或存储约束，field 为外部字段名"""

    code = "INVALID_TASK_UPDATE"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"Invalid value for field '{field}': {message}")
        self.field = field

    @property
    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class TaskStoreError(TaskPipelineError):
    """底层存储失败（不可重试）"""

    code = "STORE_ERROR"

    def __init__(
        self,
        operation: str,
        original_error: BaseException | None = None,
        recoverable: bool = False,
    ) -> None:
        super().__init__(
            f"Store operation '{operation}' failed",
            recoverable=recoverable,
        )
        self.operation = operation
        self.original_error = original_error

    @property
    def details(self) -> dict[str, Any]:
        return {"operation": self.operation, "retryable": self.recoverable}


class TransientStoreError(TaskStoreError):
    """存储超时或连接失败 -- 调用方可重试，管线内部不重试"""

    code = "STORE_UNAVAILABLE"

    def __init__(
        self,
        operation: str,
        original_error: BaseException | None = None,
    ) -> None:
        super().__init__(operation, original_error, recoverable=True)
