"""Structured logging for AwareScore.

Every entry carries the request context (correlation, tenant and actor ids)
when one is active, plus the deployment environment. Production renders
JSON lines; other environments use the console renderer.
"""
# ruff: noqa: ARG001  # Processor signatures required by structlog API

import logging
import sys
from typing import Any, Literal
from uuid import UUID

import structlog
from structlog.types import Processor

from awarescore.config.settings import Settings, get_settings
from awarescore.core.context import get_current_context_or_none

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# Third-party loggers routed through the structlog formatter
_LIBRARY_LOGGERS = ("sqlalchemy", "aiosqlite", "alembic")


def add_request_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Copy correlation, tenant and actor ids from the active RequestContext.

    Fields already bound on the event (e.g. a tenant_id passed explicitly by
    a bulk run) are left untouched.
    """
    ctx = get_current_context_or_none()
    if ctx is not None:
        event_dict.setdefault("correlation_id", str(ctx.correlation_id))
        event_dict.setdefault("tenant_id", str(ctx.tenant_id))
        event_dict.setdefault("actor_id", str(ctx.actor_id))
        event_dict.setdefault("actor_type", ctx.actor_type.value)

    return event_dict


def add_environment_info(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Tag entries with the deployment environment."""
    event_dict["environment"] = get_settings().ENVIRONMENT
    return event_dict


def _build_processors(add_timestamp: bool, json_format: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        add_request_context,
        add_environment_info,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if add_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))
    if json_format:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(
    log_level: LogLevel | None = None,
    json_format: bool | None = None,
    add_timestamp: bool = True,
    settings: Settings | None = None,
) -> None:
    """Configure structlog and route library logging through it.

    Args:
        log_level: Override log level (default from settings)
        json_format: Use JSON output (default: only in production)
        add_timestamp: Include an ISO UTC timestamp in log entries
        settings: Settings to read defaults from (default: cached settings)
    """
    settings = settings or get_settings()

    level_name = log_level or settings.log_level
    if json_format is None:
        json_format = settings.ENVIRONMENT == "production"
    numeric_level = getattr(logging, level_name.upper(), logging.INFO)

    processors = _build_processors(add_timestamp, json_format)
    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *processors],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(numeric_level)

    for name in _LIBRARY_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = [handler]
        library_logger.propagate = False
        # SQL echo is controlled by DEBUG on the engine, not by the log level
        library_logger.setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger, usually ``get_logger(__name__)``."""
    return structlog.get_logger(name)


class LogContext:
    """Bind fields to every entry logged inside the block.

    Example:
        with LogContext(campaign_id="PHISH-LX3K9-ABC123"):
            logger.info("campaign_stats_requested")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())


def log_user_failure(
    logger: structlog.stdlib.BoundLogger,
    event: str,
    exc: Exception,
    *,
    tenant_id: UUID,
    user_id: UUID,
    **kwargs: Any,
) -> None:
    """Log a per-user failure that the caller skips rather than raises."""
    logger.error(
        event,
        tenant_id=str(tenant_id),
        user_id=str(user_id),
        error_type=type(exc).__name__,
        error_message=str(exc),
        **kwargs,
    )
