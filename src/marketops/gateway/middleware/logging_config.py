"""structlog 配置模块

所有日志（含 uvicorn / 标准库 logging）统一经 structlog 渲染：
- dev（默认）：ConsoleRenderer 可读输出
- json：一行一个 JSON 对象，中文原样输出

请求上下文（request_id / viewer / instance_id / trace_id）由中间件绑定到
contextvars，这里负责合并、补齐服务名并按固定顺序排列。
"""

import logging

import structlog
from marketops.core.config import get_log_format, get_log_level

SERVICE_NAME = "marketops"

# 业务日志中优先展示的上下文字段
_CONTEXT_KEYS = ("request_id", "viewer", "instance_id", "trace_id")

# 由 LoggingMiddleware 记录请求，避免与 uvicorn 访问日志重复
_QUIET_LOGGERS = ("uvicorn.access",)


def add_service_name(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def order_context_keys(
    logger: object, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """event 之后紧跟请求上下文字段，缺失的不补空值"""
    ordered: structlog.types.EventDict = {}
    if "event" in event_dict:
        ordered["event"] = event_dict.pop("event")
    for key in _CONTEXT_KEYS:
        value = event_dict.pop(key, None)
        if value is not None:
            ordered[key] = value
    ordered.update(event_dict)
    return ordered


def build_processors() -> list[structlog.types.Processor]:
    """structlog 与标准库 logging 共用的处理链"""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_service_name,
        order_context_keys,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer()


def setup_logging(log_format: str | None = None, log_level: str | None = None) -> None:
    """初始化 structlog 配置

    Args:
        log_format: "dev" 或 "json"，默认读取 MARKETOPS_LOG_FORMAT
        log_level: 日志级别名，默认读取 MARKETOPS_LOG_LEVEL（非法值按 INFO）
    """
    log_format = log_format or get_log_format()
    level_name = (log_level or get_log_level()).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    shared_processors = build_processors()
    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_renderer(log_format),
            foreign_pre_chain=shared_processors,
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
