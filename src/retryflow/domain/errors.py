"""Errors raised by the retry executor itself.

Errors produced by the wrapped operation are never wrapped: they reach the
caller exactly as the operation raised them.
"""

from typing import Optional, Sequence


class RetryflowError(Exception):
    """Base class for errors synthesized by retryflow."""

    pass


class AttemptTimeoutError(RetryflowError, TimeoutError):
    """An attempt did not finish within its per-attempt timeout."""

    def __init__(self, message: str = "Operation timed out", timeout: Optional[float] = None):
        super().__init__(message)
        self.timeout = timeout


class RetryExhaustedError(RetryflowError):
    """The retry loop finished without a result or an error to propagate."""

    def __init__(self, message: str = "Retry attempts exhausted."):
        super().__init__(message)


class CommandFailedError(RetryflowError):
    """An external command exited with a non-zero status."""

    def __init__(self, argv: Sequence[str], returncode: int):
        super().__init__(f"Command {' '.join(argv)!r} exited with status {returncode}")
        self.argv = list(argv)
        self.returncode = returncode
