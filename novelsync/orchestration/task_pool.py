"""Bounded task pool.

Runs zero-argument coroutine functions with a fixed ceiling on how many are
in flight at once:
- Fire-and-forget submission: submit() returns nothing to await
- FIFO queue for tasks submitted while the pool is saturated
- One shared drain barrier for every join() caller
- Per-task outcomes captured for an end-of-run report

A task that raises is logged and recorded as failed; it never cancels its
siblings or stops the pool.
"""

import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Set, Tuple

import structlog

from novelsync.models.concurrency import PoolReport, TaskOutcome
from novelsync.observability.metrics import (
    POOL_QUEUED_TASKS,
    POOL_RUNNING_TASKS,
    POOL_TASK_FAILURES,
)
from novelsync.utils.exceptions import InvalidConfigurationError

logger = structlog.get_logger()

Task = Callable[[], Awaitable[Any]]


class BoundedTaskPool:
    """Concurrency limiter for asynchronous work.

    Must be used from inside a running event loop: submit() schedules
    tasks with asyncio.create_task.

    Example:
        pool = BoundedTaskPool(3, name="translation")
        for unit in units:
            pool.submit(lambda unit=unit: translate(unit), label=unit.label)
        await pool.join()
        report = pool.report()
    """

    def __init__(self, concurrency_limit: int, name: str = "pool") -> None:
        """Initialize the pool.

        Args:
            concurrency_limit: Maximum number of tasks running at once
            name: Pool name used in logs and metric labels

        Raises:
            InvalidConfigurationError: If concurrency_limit is not a positive int
        """
        if (
            isinstance(concurrency_limit, bool)
            or not isinstance(concurrency_limit, int)
            or concurrency_limit <= 0
        ):
            raise InvalidConfigurationError(
                f"Concurrency limit must be a positive integer, got {concurrency_limit!r}"
            )

        self.concurrency_limit = concurrency_limit
        self.name = name

        self._running: Set[asyncio.Task] = set()
        self._queue: Deque[Tuple[Task, str]] = deque()
        self._drain: Optional[asyncio.Future] = None

        self._submitted = 0
        self._outcomes: List[TaskOutcome] = []

        logger.debug(
            "task_pool_initialized", pool=name, concurrency_limit=concurrency_limit
        )

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def queued_count(self) -> int:
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        return not self._running and not self._queue

    def submit(self, task: Task, label: Optional[str] = None) -> None:
        """Add a task to the pool.

        Starts the task right away when a slot is free, otherwise queues it
        behind every task already waiting.

        Args:
            task: Zero-argument function returning an awaitable
            label: Optional name for logs and the report
        """
        self._submitted += 1
        label = label or f"task-{self._submitted}"

        if len(self._running) < self.concurrency_limit:
            self._start(task, label)
        else:
            self._queue.append((task, label))
            logger.debug(
                "pool_task_queued",
                pool=self.name,
                task=label,
                queued=len(self._queue),
            )
        self._update_gauges()

    async def join(self) -> None:
        """Wait until no task is running or queued.

        Returns immediately on an idle pool. Concurrent callers share one
        barrier, and tasks submitted while waiting extend the wait.
        """
        if self.is_idle:
            return

        if self._drain is None:
            self._drain = asyncio.get_running_loop().create_future()

        # Shield: cancelling one waiter must not cancel the shared barrier
        await asyncio.shield(self._drain)

    def report(self) -> PoolReport:
        succeeded = sum(1 for o in self._outcomes if o.succeeded)
        return PoolReport(
            name=self.name,
            concurrency_limit=self.concurrency_limit,
            submitted=self._submitted,
            succeeded=succeeded,
            failed=len(self._outcomes) - succeeded,
            outcomes=list(self._outcomes),
        )

    def _start(self, task: Task, label: str) -> None:
        handle = asyncio.create_task(self._execute(task, label))
        self._running.add(handle)

    async def _execute(self, task: Task, label: str) -> None:
        start_time = time.monotonic()
        try:
            result = await task()
        except Exception as e:
            duration = time.monotonic() - start_time
            self._outcomes.append(
                TaskOutcome(
                    label=label,
                    succeeded=False,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    duration_seconds=duration,
                )
            )
            POOL_TASK_FAILURES.labels(pool=self.name).inc()
            logger.error(
                "pool_task_failed",
                pool=self.name,
                task=label,
                error_type=type(e).__name__,
                error=str(e),
                duration_seconds=round(duration, 3),
            )
        else:
            self._outcomes.append(
                TaskOutcome(
                    label=label,
                    succeeded=True,
                    result=result,
                    duration_seconds=time.monotonic() - start_time,
                )
            )
        finally:
            current = asyncio.current_task()
            if current is not None:
                self._running.discard(current)
            self._promote()

    def _promote(self) -> None:
        """Fill free slots from the queue, then release the barrier if idle."""
        while len(self._running) < self.concurrency_limit and self._queue:
            task, label = self._queue.popleft()
            self._start(task, label)

        self._update_gauges()

        if self.is_idle and self._drain is not None:
            if not self._drain.done():
                self._drain.set_result(None)
            self._drain = None

    def _update_gauges(self) -> None:
        POOL_RUNNING_TASKS.labels(pool=self.name).set(len(self._running))
        POOL_QUEUED_TASKS.labels(pool=self.name).set(len(self._queue))
