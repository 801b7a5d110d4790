"""Run ID context management.

A run ID ties together every log line of one `scrape` or `translate`
invocation. It lives in a ContextVar, so tasks created by the task pool
inherit it automatically (asyncio copies the context at task creation).

Usage:
    from novelsync.observability.context import run_id_context

    with run_id_context() as run_id:
        asyncio.run(pipeline.run())
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from typing import Generator, Optional

_run_id_var: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


def generate_run_id(prefix: str = "run") -> str:
    """Build a sortable run identifier, e.g. run-20250203-141500-1a2b3c4d."""
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    return f"{prefix}-{stamp}-{uuid.uuid4().hex[:8]}"


def set_run_id(run_id: Optional[str] = None) -> str:
    """Set the run ID for the current context, generating one if omitted."""
    if run_id is None:
        run_id = generate_run_id()
    _run_id_var.set(run_id)
    return run_id


def get_run_id() -> Optional[str]:
    return _run_id_var.get()


def clear_run_id() -> None:
    _run_id_var.set(None)


@contextmanager
def run_id_context(run_id: Optional[str] = None) -> Generator[str, None, None]:
    """Scope a run ID; the previous value is restored on exit."""
    if run_id is None:
        run_id = generate_run_id()

    token = _run_id_var.set(run_id)
    try:
        yield run_id
    finally:
        _run_id_var.reset(token)
