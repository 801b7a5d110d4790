"""Observability: run-scoped logging context and Prometheus metrics.

Usage:
    from novelsync.observability import configure_logging, get_logger, run_id_context

    configure_logging(level="INFO")
    with run_id_context() as run_id:
        get_logger().info("run_started")  # carries run_id
"""

from novelsync.observability.context import (
    set_run_id,
    get_run_id,
    clear_run_id,
    run_id_context,
)
from novelsync.observability.logging import (
    get_logger,
    configure_logging,
    add_run_id_processor,
    bind_context,
    clear_context,
)
from novelsync.observability.metrics import (
    CHAPTERS_PROCESSED,
    CHAPTERS_SKIPPED,
    TRANSLATION_ATTEMPTS,
    RETRIES_SCHEDULED,
    MALFORMED_FRAGMENTS,
    POOL_TASK_FAILURES,
    POOL_RUNNING_TASKS,
    POOL_QUEUED_TASKS,
    TRANSLATION_DURATION,
    get_metrics_text,
    write_metrics_file,
)

__all__ = [
    # Context
    "set_run_id",
    "get_run_id",
    "clear_run_id",
    "run_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "add_run_id_processor",
    "bind_context",
    "clear_context",
    # Metrics
    "CHAPTERS_PROCESSED",
    "CHAPTERS_SKIPPED",
    "TRANSLATION_ATTEMPTS",
    "RETRIES_SCHEDULED",
    "MALFORMED_FRAGMENTS",
    "POOL_TASK_FAILURES",
    "POOL_RUNNING_TASKS",
    "POOL_QUEUED_TASKS",
    "TRANSLATION_DURATION",
    "get_metrics_text",
    "write_metrics_file",
]
