"""AttemptState model - the loop-local state carried between attempts"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class AttemptState:
    """State of one retry sequence between two attempts"""

    attempt_number: int = 0  # Attempts started so far (1-based once running)
    current_delay: Optional[float] = None  # Last wait in ms, None before the first retry

    def __post_init__(self):
        """Validate state data"""
        if self.attempt_number < 0:
            raise ValueError("Attempt number must be >= 0")
        if self.current_delay is not None and self.current_delay < 0:
            raise ValueError("Delay must be >= 0")
