"""Delay computation between attempts.

The wait before each retry is a fold over the sequence: every retry derives
its delay from the delay carried out of the previous one. Keeping the step a
pure function lets the schedule be checked without running the retry loop;
``DelaySchedule`` plugs the same step into tenacity as a wait strategy.

Tenacity asks the wait strategy for the delay before it runs ``before_sleep``,
so the schedule runs the retry notification itself, ahead of the delay step.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, Optional, Protocol

from tenacity import RetryCallState
from tenacity.wait import wait_base

from retryflow.domain.config.retry import RetryConfiguration
from retryflow.domain.models.attempt import AttemptState

logger = logging.getLogger(__name__)

JITTER_MIN = 0.8
JITTER_MAX = 1.2


class RandomSource(Protocol):
    """Anything with ``uniform(a, b)``: the ``random`` module or a ``random.Random``."""

    def uniform(self, a: float, b: float) -> float: ...


def compute_next_delay(
    previous_delay: Optional[float],
    config: RetryConfiguration,
    rng: RandomSource = random,
) -> float:
    """Compute the wait before the next retry.

    Args:
        previous_delay: Delay carried from the previous retry in ms (None before the first retry)
        config: Retry configuration
        rng: Random source used for jitter

    Returns:
        Delay in milliseconds; also the value to carry into the next step
    """
    if previous_delay is None:
        delay = config.delay
    elif config.backoff:
        delay = previous_delay * 2
    else:
        delay = previous_delay

    # Cap bounds the pre-jitter value only
    if config.max_delay and delay > config.max_delay:
        delay = config.max_delay

    if config.jitter:
        delay *= rng.uniform(JITTER_MIN, JITTER_MAX)

    return delay


def advance(state: AttemptState, config: RetryConfiguration, rng: RandomSource = random) -> AttemptState:
    """Fold one retry into the state: carry the newly computed delay forward."""
    return AttemptState(
        attempt_number=state.attempt_number,
        current_delay=compute_next_delay(state.current_delay, config, rng),
    )


class DelaySchedule(wait_base):
    """Tenacity wait strategy backed by :func:`compute_next_delay`.

    A schedule is stateful and belongs to a single retry sequence.
    ``before_delay`` is called with the retry state before each delay is drawn.
    """

    def __init__(
        self,
        config: RetryConfiguration,
        rng: RandomSource = random,
        before_delay: Optional[Callable[[RetryCallState], None]] = None,
    ) -> None:
        self.config = config
        self.rng = rng
        self.before_delay = before_delay
        self.state = AttemptState()

    def __call__(self, retry_state: RetryCallState) -> float:
        if self.before_delay is not None:
            self.before_delay(retry_state)
        self.state = advance(
            AttemptState(retry_state.attempt_number, self.state.current_delay),
            self.config,
            self.rng,
        )
        logger.debug(
            f"Attempt {retry_state.attempt_number}/{self.config.max_attempts} failed, "
            f"next attempt in {self.state.current_delay:.0f} ms"
        )
        return self.state.current_delay / 1000.0
