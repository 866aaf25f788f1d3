"""Retry decision and hook adapters for tenacity.

This module maps retryflow's caller-facing hooks, which receive
``(error, attempt)``, onto tenacity's ``RetryCallState`` based strategies.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from tenacity import RetryCallState
from tenacity.retry import retry_base

from retryflow.domain.config.retry import always_retry

logger = logging.getLogger(__name__)

RetryPredicate = Callable[[BaseException, int], bool]
RetryHook = Callable[[BaseException, int], Any]


def _failed_attempt(retry_state: RetryCallState) -> tuple[BaseException, int]:
    """Extract the error and attempt number of a failed attempt."""
    return retry_state.outcome.exception(), retry_state.attempt_number


class RetryDecision(retry_base):
    """Decide whether a failed attempt may be retried.

    An attempt is retried only if it failed with an ``Exception``, the retry
    budget is not spent, and the caller's predicate agrees. The predicate is
    not consulted for the last attempt.
    """

    def __init__(self, retries: int, should_retry: RetryPredicate = always_retry) -> None:
        self.retries = retries
        self.should_retry = should_retry

    def __call__(self, retry_state: RetryCallState) -> bool:
        outcome = retry_state.outcome
        if outcome is None or not outcome.failed:
            return False

        error, attempt = _failed_attempt(retry_state)
        # Cancellation and interpreter exits are never retried
        if not isinstance(error, Exception):
            return False

        if attempt > self.retries:
            return False
        return bool(self.should_retry(error, attempt))


def notify_retry(on_retry: RetryHook) -> Callable[[RetryCallState], None]:
    """Adapt an ``on_retry(error, attempt)`` hook to a ``RetryCallState`` callback.

    Exceptions raised by the hook propagate and abort the retry sequence.
    """

    def _notify(retry_state: RetryCallState) -> None:
        error, attempt = _failed_attempt(retry_state)
        on_retry(error, attempt)

    return _notify


def log_retry(
    log: Optional[logging.Logger] = None,
    level: int = logging.WARNING,
    max_attempts: Optional[int] = None,
) -> RetryHook:
    """Create an ``on_retry`` hook that logs each retried failure.

    Args:
        log: Logger to write to (defaults to this module's logger)
        level: Log level
        max_attempts: Total attempts, included in the message when given

    Returns:
        Hook suitable for ``RetryConfiguration.on_retry``
    """
    target = log or logger

    def _on_retry(error: BaseException, attempt: int) -> None:
        progress = f"{attempt}/{max_attempts}" if max_attempts else str(attempt)
        target.log(level, f"Attempt {progress} failed: {error}. Retrying...")

    return _on_retry
