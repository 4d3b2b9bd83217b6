"""网关日志配置

TCOF_LOG_FORMAT 选择渲染方式（json / dev），TCOF_LOG_LEVEL 选择级别；
标准库 logging（uvicorn、aiosqlite）经 ProcessorFormatter 与 structlog 共用同一输出。
Logfire 仅在 LOGFIRE_SEND_TO_LOGFIRE=true 且安装了 logfire extra 时启用。
"""

import logging
import os

import structlog
from fastapi import FastAPI

SERVICE_NAME = "tcof-checklist"

LOG_FORMATS: tuple[str, ...] = ("json", "dev")
DEFAULT_LOG_FORMAT = "dev"
DEFAULT_LOG_LEVEL = "INFO"

# aiosqlite 每次调用都会打 DEBUG；uvicorn.access 与 request_completed 重复
_QUIET_LOGGERS: dict[str, int] = {
    "aiosqlite": logging.WARNING,
    "uvicorn.access": logging.WARNING,
}


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> list[structlog.types.Processor]:
    if log_format == "json":
        # 异常栈以结构化字段输出，便于按 request_id 检索
        return [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(ensure_ascii=False),
        ]
    return [structlog.dev.ConsoleRenderer()]


def setup_logging() -> None:
    """初始化 structlog 与标准库 logging

    非法的 TCOF_LOG_FORMAT / TCOF_LOG_LEVEL 回退到默认值，并在配置完成后记录告警。
    """
    raw_format = os.environ.get("TCOF_LOG_FORMAT", DEFAULT_LOG_FORMAT).strip().lower()
    raw_level = os.environ.get("TCOF_LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()

    log_format = raw_format if raw_format in LOG_FORMATS else DEFAULT_LOG_FORMAT
    level = logging.getLevelNamesMapping().get(raw_level)
    level_is_valid = isinstance(level, int)
    if not level_is_valid:
        level = logging.INFO

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *_renderer(log_format),
            ],
            foreign_pre_chain=shared,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    for name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(quiet_level, level))

    log = structlog.get_logger()
    if log_format != raw_format:
        log.warning("log_format_invalid", value=raw_format, fallback=log_format)
    if not level_is_valid:
        log.warning("log_level_invalid", value=raw_level, fallback=DEFAULT_LOG_LEVEL)


def setup_logfire(app: FastAPI) -> bool:
    """按环境变量为 app 启用 Logfire

    Returns:
        True 表示已完成 instrument；未开启或初始化失败时返回 False，服务照常运行
    """
    if os.environ.get("LOGFIRE_SEND_TO_LOGFIRE", "false").strip().lower() != "true":
        return False

    log = structlog.get_logger()
    try:
        import logfire

        logfire.configure(service_name=SERVICE_NAME)
        logfire.instrument_fastapi(app)
    except Exception as e:
        log.warning("logfire_init_failed", error_type=type(e).__name__, error=str(e))
        return False

    log.info("logfire_enabled", service_name=SERVICE_NAME)
    return True
