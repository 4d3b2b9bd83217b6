"""配置模块 -- 可通过环境变量覆盖

包含数据库路径、客户端标识长度限制、默认阶段/状态，
以及 PipelineConfig（存储调用超时等运行参数）。
"""

import os
from pathlib import Path

import structlog
from pydantic import BaseModel, Field

log = structlog.get_logger()


def _get_base_dir() -> Path:
    """获取项目 data 基础目录"""
    return Path(os.environ.get("TCOF_DATA_DIR", "data"))


def get_db_path() -> str:
    """获取 SQLite 数据库路径"""
    return os.environ.get(
        "TCOF_DB_PATH",
        str(_get_base_dir() / "sqlite" / "tcof.db"),
    )


# 客户端传入的任务标识最大长度（超过视为格式错误）
MAX_CLIENT_ID_LENGTH: int = 256

# 外部视图的缺省值（内部字段为空时替换）
DEFAULT_STAGE: str = "identification"
DEFAULT_STATUS: str = "todo"


class PipelineConfig(BaseModel):
    """任务解析/更新管线配置 -- 从环境变量加载

    环境变量:
        TCOF_STORE_TIMEOUT_S: 单次存储调用超时（秒，默认 5.0）
        TCOF_BUSY_TIMEOUT_MS: SQLite busy_timeout（毫秒，默认 5000）
    """

    store_timeout_s: float = Field(
        default=5.0,
        gt=0,
        description="单次存储调用超时（秒），超时视为可重试的瞬时错误",
    )
    busy_timeout_ms: int = Field(
        default=5000,
        ge=0,
        description="SQLite 锁等待时间（毫秒）",
    )


def load_pipeline_config() -> PipelineConfig:
    """从环境变量加载管线配置

    非法数值记录 warning 并回退到默认值，不阻塞启动。
    """
    kwargs: dict = {}

    if val := os.environ.get("TCOF_STORE_TIMEOUT_S"):
        try:
            timeout_s = float(val)
            if timeout_s <= 0:
                raise ValueError(val)
            kwargs["store_timeout_s"] = timeout_s
        except ValueError:
            log.warning(
                "invalid_timeout_config",
                env_var="TCOF_STORE_TIMEOUT_S",
                value=val,
                fallback=5.0,
            )

    if val := os.environ.get("TCOF_BUSY_TIMEOUT_MS"):
        try:
            kwargs["busy_timeout_ms"] = max(int(val), 0)
        except ValueError:
            log.warning(
                "invalid_busy_timeout_config",
                env_var="TCOF_BUSY_TIMEOUT_MS",
                value=val,
                fallback=5000,
            )

    return PipelineConfig(**kwargs)
