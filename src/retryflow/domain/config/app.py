"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from retryflow.domain.config.command import CommandConfig
from retryflow.domain.config.retry import RetryConfiguration


class AppConfig(BaseModel):
    """Main application configuration.

    This is the root configuration model used by the CLI. Hooks cannot be
    expressed in YAML, so only the plain retry fields are loaded from files
    and the environment.

    Attributes:
        retry: Retry policy configuration
        command: Command runner configuration
    """

    retry: RetryConfiguration = Field(default_factory=RetryConfiguration)
    command: CommandConfig = Field(default_factory=CommandConfig)

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "retry": {
                    "retries": 3,
                    "delay": 1000,
                    "backoff": True,
                    "jitter": True,
                    "max_delay": 10000,
                    "timeout": 30000,
                },
                "command": {
                    "retry_exit_codes": [75, 111],
                    "kill_grace_period": 5.0,
                },
            }
        },
    )
