"""Command runner configuration model."""

from typing import List, Optional

from pydantic import BaseModel, Field


class CommandConfig(BaseModel):
    """Configuration for retrying external commands from the CLI.

    Attributes:
        retry_exit_codes: Exit codes that trigger a retry (None = any non-zero code)
        kill_grace_period: Seconds to wait for a timed-out command after SIGTERM before SIGKILL
    """

    retry_exit_codes: Optional[List[int]] = None
    kill_grace_period: float = Field(5.0, ge=0.0)
