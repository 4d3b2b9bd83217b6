"""依赖注入模块 -- 通过 FastAPI Depends 注入 Store 实例与服务

Store 实例通过 app.state 管理，在 lifespan 中初始化/清理。
"""

from fastapi import Depends, Request
from tcof.core.config import PipelineConfig, load_pipeline_config
from tcof.core.store import StoreGroup

from .services.task_service import TaskService


def get_store_group(request: Request) -> StoreGroup:
    """从 app.state 获取 StoreGroup 实例"""
    return request.app.state.store_group


def get_pipeline_config(request: Request) -> PipelineConfig:
    """从 app.state 获取管线配置，未初始化时从环境变量加载"""
    config = getattr(request.app.state, "pipeline_config", None)
    if config is None:
        config = load_pipeline_config()
        request.app.state.pipeline_config = config
    return config


def get_task_service(
    store_group: StoreGroup = Depends(get_store_group),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> TaskService:
    """构建请求级 TaskService"""
    return TaskService(store_group, config)
