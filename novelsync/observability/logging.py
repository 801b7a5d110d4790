"""Structured logging setup.

Builds the structlog processor chain used by every command:
- run_id injection from the current context
- contextvars merging, so per-series / per-chapter context bound inside a
  pool task shows up on every line that task emits
- JSON output for log shipping, or a colored console renderer

Usage:
    from novelsync.observability.logging import configure_logging, get_logger

    configure_logging(level="INFO", json_output=False)

    logger = get_logger("translation_pipeline")
    logger.info("chapter_saved", series="abc", chapter="0001 - Start")
"""

import logging
import sys
from typing import Any, Optional

import structlog
from structlog.typing import EventDict, WrappedLogger

from novelsync.observability.context import get_run_id


def add_run_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds run_id to log entries.

    Uses "none" when no run is active (e.g. during config validation).
    """
    run_id = get_run_id()
    event_dict.setdefault("run_id", run_id if run_id else "none")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON. If False, use console format.
        add_timestamp: If True, add ISO timestamp to each log entry.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_run_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(
    component: Optional[str] = None,
    **initial_context: Any,
) -> Any:
    """Get a structured logger with optional component context.

    Example:
        logger = get_logger("task_pool", pool="translation")
        logger.info("task_started")  # Includes component and pool
    """
    logger = structlog.get_logger()

    if component:
        logger = logger.bind(component=component)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger


def bind_context(**context: Any) -> None:
    """Bind context to all subsequent log entries in the current context.

    Inside a pool task this only affects that task: each asyncio task runs
    in its own copy of the context.
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Clear all bound context from structlog contextvars."""
    structlog.contextvars.clear_contextvars()
