"""External command attempts for the CLI.

Each attempt spawns the command as a subprocess that shares the CLI's
standard streams. A non-zero exit status fails the attempt.

The per-attempt deadline is enforced here rather than by the executor, so a
timed-out process is stopped before the attempt ends and can never overlap
the next one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Iterable, Optional, Sequence

from retryflow.domain.errors import AttemptTimeoutError, CommandFailedError

logger = logging.getLogger(__name__)


async def _terminate(process: asyncio.subprocess.Process, grace_period: float) -> None:
    """Stop a running process, escalating to SIGKILL after the grace period."""
    if process.returncode is not None:
        return
    process.terminate()
    try:
        await asyncio.wait_for(process.wait(), timeout=grace_period)
    except asyncio.TimeoutError:
        logger.warning(f"Process {process.pid} ignored SIGTERM, killing it")
        process.kill()
        await process.wait()


async def run_command(
    argv: Sequence[str],
    kill_grace_period: float = 5.0,
    timeout: Optional[float] = None,
) -> int:
    """Run a command to completion.

    Args:
        argv: Program and arguments
        kill_grace_period: Seconds between SIGTERM and SIGKILL when the run is stopped
        timeout: Deadline in milliseconds (None/0 = no deadline)

    Returns:
        Exit status of the successful run

    Raises:
        CommandFailedError: If the command exits with a non-zero status
        AttemptTimeoutError: If the deadline passed; the process has been stopped
    """
    logger.debug(f"Running command: {' '.join(argv)}")
    process = await asyncio.create_subprocess_exec(*argv)
    try:
        returncode = await asyncio.wait_for(process.wait(), timeout=timeout / 1000 if timeout else None)
    except asyncio.TimeoutError:
        logger.debug(f"Process {process.pid} exceeded {timeout:.0f} ms, terminating it")
        await _terminate(process, kill_grace_period)
        raise AttemptTimeoutError(timeout=timeout) from None
    except asyncio.CancelledError:
        await asyncio.shield(_terminate(process, kill_grace_period))
        raise

    if returncode != 0:
        raise CommandFailedError(argv, returncode)
    return returncode


def command_operation(
    argv: Sequence[str],
    kill_grace_period: float = 5.0,
    timeout: Optional[float] = None,
) -> Callable:
    """Create a zero-argument operation that runs the command once per call."""

    def _operation():
        return run_command(argv, kill_grace_period, timeout)

    return _operation


def exit_code_predicate(retry_exit_codes: Optional[Iterable[int]]) -> Callable[[BaseException, int], bool]:
    """Build a ``should_retry`` predicate limited to the given exit codes.

    A command that cannot be started is never retried; other errors
    (e.g. timeouts) always are.
    """
    allowed = None if retry_exit_codes is None else frozenset(retry_exit_codes)

    def _should_retry(error: BaseException, attempt: int) -> bool:
        if isinstance(error, (FileNotFoundError, PermissionError)):
            return False
        if allowed is None or not isinstance(error, CommandFailedError):
            return True
        return error.returncode in allowed

    return _should_retry
