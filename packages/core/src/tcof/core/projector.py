"""Response Projector

id 字段始终是权威存储键：原样再次提交给解析器时，经 exact 策略命中同一条记录，
无论本次是通过哪种策略找到的。requestedId 回显调用方使用的标识。
"""

from .field_mapper import to_external
from .models import Task, TaskView


def project_task(task: Task, client_id: str | None = None) -> TaskView:
    """构建更新后记录的外部视图"""
    view = to_external(task)
    if client_id is not None:
        view = view.model_copy(update={"requestedId": client_id})
    return view
