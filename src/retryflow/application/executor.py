"""Retry executor - re-invokes a fallible async operation until it succeeds"""

from __future__ import annotations

import asyncio
import functools
import logging
import random
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import AsyncRetrying, stop_after_attempt

from retryflow.domain.config.retry import RetryConfiguration
from retryflow.domain.errors import RetryExhaustedError
from retryflow.infrastructure.delay import DelaySchedule, RandomSource
from retryflow.infrastructure.retry import RetryDecision, notify_retry
from retryflow.infrastructure.timeout import Operation, run_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[Any]]


class RetryExecutor:
    """Runs one operation under a retry policy.

    The executor holds no per-call state, so a single instance may serve
    any number of concurrent ``execute`` calls.
    """

    def __init__(
        self,
        config: Optional[RetryConfiguration] = None,
        *,
        sleep: Sleep = asyncio.sleep,
        rng: RandomSource = random,
    ):
        """Initialize executor

        Args:
            config: Retry configuration (defaults are used if None)
            sleep: Coroutine function used to wait between attempts, takes seconds
            rng: Random source for jitter
        """
        self.config = config or RetryConfiguration()
        self._sleep = sleep
        self._rng = rng

    def _retrying(self) -> AsyncRetrying:
        config = self.config
        return AsyncRetrying(
            stop=stop_after_attempt(config.max_attempts),
            wait=DelaySchedule(
                config,
                rng=self._rng,
                before_delay=notify_retry(config.on_retry) if config.on_retry else None,
            ),
            retry=RetryDecision(config.retries, config.should_retry),
            sleep=self._sleep,
            reraise=True,
        )

    async def execute(self, operation: Operation[T]) -> T:
        """Invoke the operation until it succeeds or retrying stops

        Args:
            operation: Zero-argument callable returning an awaitable; called once per attempt

        Returns:
            Result of the first successful attempt

        Raises:
            Exception: The last attempt's error, unmodified, when no retry is allowed
            AttemptTimeoutError: If the last attempt exceeded the per-attempt timeout
        """
        async for attempt in self._retrying():
            with attempt:
                number = attempt.retry_state.attempt_number
                logger.debug(f"Starting attempt {number}/{self.config.max_attempts}")
                return await run_with_timeout(operation, self.config.timeout)

        raise RetryExhaustedError()


async def retry(
    operation: Operation[T],
    config: Optional[RetryConfiguration] = None,
    **options: Any,
) -> T:
    """Retry an async operation.

    Args:
        operation: Zero-argument callable returning an awaitable
        config: Base configuration (defaults are used if None)
        **options: Configuration fields overriding ``config``

    Returns:
        Result of the first successful attempt
    """
    base = config or RetryConfiguration()
    return await RetryExecutor(base.merged(**options)).execute(operation)


def retryable(config: Optional[RetryConfiguration] = None, **options: Any):
    """Decorator that retries every call of an async function.

    Example:
        @retryable(retries=5, delay=200, backoff=True)
        async def fetch():
            ...
    """
    executor = RetryExecutor((config or RetryConfiguration()).merged(**options))

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapped(*args: Any, **kwargs: Any) -> T:
            return await executor.execute(lambda: func(*args, **kwargs))

        wrapped.retry_config = executor.config  # type: ignore[attr-defined]
        return wrapped

    return decorator
