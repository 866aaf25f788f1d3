"""Configuration models with Pydantic validation."""

from retryflow.domain.config.app import AppConfig
from retryflow.domain.config.command import CommandConfig
from retryflow.domain.config.retry import RetryConfiguration, always_retry

__all__ = [
    "AppConfig",
    "CommandConfig",
    "RetryConfiguration",
    "always_retry",
]
