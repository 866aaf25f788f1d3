"""Per-attempt timeout wrapping.

An attempt with a deadline races the operation against a timer. Whichever
finishes first decides the attempt; the operation is cancelled if it loses
and its late outcome is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from retryflow.domain.errors import AttemptTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]


def _discard_outcome(task: "asyncio.Future") -> None:
    # Retrieve the exception so a late failure is not reported as unhandled
    if not task.cancelled():
        task.exception()


async def run_with_timeout(operation: Operation[T], timeout: Optional[float] = None) -> T:
    """Invoke the operation once, optionally bounded by a deadline.

    Args:
        operation: Zero-argument callable returning an awaitable
        timeout: Deadline in milliseconds (None or 0 = no deadline)

    Returns:
        The operation's result

    Raises:
        AttemptTimeoutError: If the deadline expires first
    """
    if not timeout:
        return await operation()

    task = asyncio.ensure_future(operation())
    try:
        done, _ = await asyncio.wait({task}, timeout=timeout / 1000.0)
    except asyncio.CancelledError:
        task.cancel()
        raise

    if task in done:
        return task.result()

    logger.debug(f"Attempt exceeded timeout of {timeout:.0f} ms, cancelling it")
    task.add_done_callback(_discard_outcome)
    task.cancel()
    raise AttemptTimeoutError(timeout=timeout)
