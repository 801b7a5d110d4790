"""Retry governor

Wraps one async operation with a bounded number of attempts and a growing
delay between them:
- Delay before attempt n+1 is base_delay * n, capped at max_delay
- Any exception from an attempt is logged and triggers the next attempt
- Returned values are never retried, empty strings included
- Exhaustion raises ExhaustedRetriesError chained from the last failure

Built on tenacity's AsyncRetrying; the sleep function is injectable so
tests can observe delays without waiting.
"""

import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from novelsync.models.config import RetryConfig
from novelsync.observability.metrics import RETRIES_SCHEDULED
from novelsync.utils.exceptions import ExhaustedRetriesError

logger = structlog.get_logger(__name__)


T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]
RetryCallback = Callable[[int, BaseException, float], None]


class RetryGovernor:
    """Async retry loop with attempt-proportional backoff.

    Example:
        governor = RetryGovernor(RetryConfig(max_attempts=3, base_delay_seconds=5))
        text = await governor.execute(lambda: translator.translate(...), label="abc/0001")
    """

    def __init__(
        self,
        config: RetryConfig,
        sleep: Optional[SleepFunc] = None,
        operation: str = "translate",
    ) -> None:
        """Initialize retry governor.

        Args:
            config: Attempt count and delay settings
            sleep: Awaitable sleep used between attempts (default asyncio.sleep)
            operation: Name used in logs and the retries metric
        """
        self.config = config
        self.operation = operation
        self._sleep: SleepFunc = sleep or asyncio.sleep

    def calculate_delay(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        return min(
            self.config.base_delay_seconds * attempt, self.config.max_delay_seconds
        )

    async def execute(
        self,
        func: Callable[[], Awaitable[T]],
        label: str = "operation",
        on_retry: Optional[RetryCallback] = None,
    ) -> T:
        """Run func until it returns or the attempts run out.

        Args:
            func: Zero-argument async function; called once per attempt
            label: Identity of the work (e.g. series/chapter) for logs
            on_retry: Optional callback (attempt_number, error, delay_seconds)
                      invoked before each backoff sleep

        Returns:
            The first successful return value

        Raises:
            ExhaustedRetriesError: Every attempt raised
        """
        max_attempts = self.config.max_attempts

        def wait(retry_state: RetryCallState) -> float:
            return self.calculate_delay(retry_state.attempt_number)

        def before(retry_state: RetryCallState) -> None:
            logger.info(
                "attempt_started",
                operation=self.operation,
                target=label,
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
            )

        def before_sleep(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception() if retry_state.outcome else None
            delay = retry_state.next_action.sleep if retry_state.next_action else 0.0

            RETRIES_SCHEDULED.labels(operation=self.operation).inc()
            logger.warning(
                "attempt_failed",
                operation=self.operation,
                target=label,
                attempt=retry_state.attempt_number,
                max_attempts=max_attempts,
                error_type=type(error).__name__,
                error=str(error),
                delay_seconds=delay,
            )

            if on_retry is not None and error is not None:
                on_retry(retry_state.attempt_number, error, delay)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait,
            retry=retry_if_exception_type(Exception),
            sleep=self._sleep,
            before=before,
            before_sleep=before_sleep,
            reraise=False,
        )

        try:
            return await retrying(func)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                "retries_exhausted",
                operation=self.operation,
                target=label,
                attempts=max_attempts,
                error_type=type(last_error).__name__,
                error=str(last_error),
            )
            raise ExhaustedRetriesError(
                f"All {max_attempts} attempts failed for {label}",
                attempts=max_attempts,
                last_error=last_error,
            ) from last_error
