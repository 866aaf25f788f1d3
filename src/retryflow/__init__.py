"""retryflow - retry a fallible async operation with backoff, jitter and timeouts"""

from retryflow.application.executor import RetryExecutor, retry, retryable
from retryflow.domain.config import RetryConfiguration, always_retry
from retryflow.domain.errors import (
    AttemptTimeoutError,
    CommandFailedError,
    RetryExhaustedError,
    RetryflowError,
)
from retryflow.infrastructure.retry import log_retry

__all__ = [
    "RetryExecutor",
    "retry",
    "retryable",
    "RetryConfiguration",
    "always_retry",
    "log_retry",
    "RetryflowError",
    "AttemptTimeoutError",
    "RetryExhaustedError",
    "CommandFailedError",
]
