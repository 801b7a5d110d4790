"""Tests for the bounded task pool."""

import asyncio

import pytest
from structlog.testing import capture_logs

from novelsync.orchestration.task_pool import BoundedTaskPool
from novelsync.utils.exceptions import InvalidConfigurationError


def make_task(task_id, delay_ms, started=None, finished=None, tracker=None):
    """Build a zero-argument coroutine function that sleeps delay_ms."""

    async def task():
        if started is not None:
            started.append(task_id)
        if tracker is not None:
            tracker["running"] += 1
            tracker["peak"] = max(tracker["peak"], tracker["running"])
        await asyncio.sleep(delay_ms / 1000)
        if tracker is not None:
            tracker["running"] -= 1
        if finished is not None:
            finished.append(task_id)
        return task_id

    return task


def make_failing_task(message, delay_ms=10):
    async def task():
        await asyncio.sleep(delay_ms / 1000)
        raise RuntimeError(message)

    return task


class TestConstruction:
    """Tests for pool construction."""

    @pytest.mark.parametrize("limit", [0, -1, 1.5, "2", None, True])
    def test_rejects_invalid_limit(self, limit):
        """Non-positive and non-int limits are configuration errors."""
        with pytest.raises(InvalidConfigurationError):
            BoundedTaskPool(limit)

    def test_initial_state(self):
        pool = BoundedTaskPool(3, name="test")
        assert pool.concurrency_limit == 3
        assert pool.running_count == 0
        assert pool.queued_count == 0
        assert pool.is_idle


class TestScheduling:
    """Tests for the concurrency ceiling and FIFO promotion."""

    @pytest.mark.asyncio
    async def test_never_exceeds_limit(self):
        """At no point do more than K tasks run at once."""
        pool = BoundedTaskPool(3)
        tracker = {"running": 0, "peak": 0}

        for i in range(10):
            pool.submit(make_task(i, 10 + (i % 4) * 5, tracker=tracker))
            assert pool.running_count <= 3

        await pool.join()

        assert tracker["peak"] == 3
        assert pool.is_idle

    @pytest.mark.asyncio
    async def test_excess_tasks_are_queued(self):
        pool = BoundedTaskPool(2)
        for i in range(5):
            pool.submit(make_task(i, 20))

        assert pool.running_count == 2
        assert pool.queued_count == 3

        await pool.join()
        assert pool.running_count == 0
        assert pool.queued_count == 0

    @pytest.mark.asyncio
    async def test_fifo_promotion_completion_order(self):
        """Queued tasks start in submission order as slots free up."""
        pool = BoundedTaskPool(2)
        started = []
        finished = []
        durations = {1: 100, 2: 120, 3: 30, 4: 40, 5: 20}

        for task_id, delay in durations.items():
            pool.submit(make_task(task_id, delay, started, finished))

        await pool.join()

        assert started == [1, 2, 3, 4, 5]
        assert finished == [1, 2, 3, 5, 4]

    @pytest.mark.asyncio
    async def test_sequential_with_limit_one(self):
        pool = BoundedTaskPool(1)
        started = []
        finished = []

        pool.submit(make_task(1, 30, started, finished))
        pool.submit(make_task(2, 5, started, finished))
        await pool.join()

        assert started == [1, 2]
        assert finished == [1, 2]


class TestJoin:
    """Tests for the drain barrier."""

    @pytest.mark.asyncio
    async def test_join_on_idle_pool_returns_immediately(self):
        pool = BoundedTaskPool(2)
        await asyncio.wait_for(pool.join(), timeout=0.1)

    @pytest.mark.asyncio
    async def test_join_waits_for_queued_tasks(self):
        pool = BoundedTaskPool(1)
        finished = []
        for i in range(3):
            pool.submit(make_task(i, 10, finished=finished))

        await pool.join()

        assert finished == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_submission_after_join_extends_wait(self):
        """A task submitted while join() is pending is included in the wait."""
        pool = BoundedTaskPool(2)
        finished = []
        pool.submit(make_task("first", 30, finished=finished))

        join_task = asyncio.create_task(pool.join())
        await asyncio.sleep(0.01)
        pool.submit(make_task("late", 60, finished=finished))

        await join_task

        assert finished == ["first", "late"]
        assert pool.is_idle

    @pytest.mark.asyncio
    async def test_concurrent_joins_resolve_together(self):
        pool = BoundedTaskPool(2)
        pool.submit(make_task(1, 20))
        pool.submit(make_task(2, 30))

        results = await asyncio.wait_for(
            asyncio.gather(pool.join(), pool.join()), timeout=1.0
        )

        assert results == [None, None]
        assert pool.is_idle

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_others(self):
        pool = BoundedTaskPool(1)
        pool.submit(make_task(1, 40))

        first = asyncio.create_task(pool.join())
        second = asyncio.create_task(pool.join())
        await asyncio.sleep(0.01)
        first.cancel()

        await asyncio.wait_for(second, timeout=1.0)
        assert first.cancelled()
        assert pool.is_idle

    @pytest.mark.asyncio
    async def test_pool_reusable_after_drain(self):
        pool = BoundedTaskPool(2)
        pool.submit(make_task(1, 5))
        await pool.join()

        pool.submit(make_task(2, 5))
        await asyncio.wait_for(pool.join(), timeout=1.0)

        assert pool.report().submitted == 2


class TestFailureIsolation:
    """Tests for task failure handling."""

    @pytest.mark.asyncio
    async def test_failing_task_does_not_affect_siblings(self):
        pool = BoundedTaskPool(2, name="isolation")
        finished = []

        with capture_logs() as logs:
            pool.submit(make_task("a", 20, finished=finished), label="a")
            pool.submit(make_failing_task("boom"), label="bad")
            pool.submit(make_task("b", 20, finished=finished), label="b")
            await pool.join()

        errors = [entry for entry in logs if entry["log_level"] == "error"]
        assert len(errors) == 1
        assert errors[0]["event"] == "pool_task_failed"
        assert errors[0]["task"] == "bad"
        assert errors[0]["error"] == "boom"

        assert sorted(finished) == ["a", "b"]

        report = pool.report()
        assert report.submitted == 3
        assert report.succeeded == 2
        assert report.failed == 1
        assert len(report.outcomes) == 3

    @pytest.mark.asyncio
    async def test_failed_outcome_records_error(self):
        pool = BoundedTaskPool(1)
        pool.submit(make_failing_task("broken"), label="unit-1")
        await pool.join()

        [failure] = pool.report().failures
        assert failure.label == "unit-1"
        assert failure.error_type == "RuntimeError"
        assert failure.error_message == "broken"
        assert failure.succeeded is False

    @pytest.mark.asyncio
    async def test_successful_outcome_keeps_result(self):
        pool = BoundedTaskPool(1)
        pool.submit(make_task("x", 1), label="x")
        await pool.join()

        [outcome] = pool.report().outcomes
        assert outcome.succeeded
        assert outcome.result == "x"

    @pytest.mark.asyncio
    async def test_default_labels(self):
        pool = BoundedTaskPool(1)
        pool.submit(make_task(1, 1))
        pool.submit(make_task(2, 1))
        await pool.join()

        labels = sorted(o.label for o in pool.report().outcomes)
        assert labels == ["task-1", "task-2"]
