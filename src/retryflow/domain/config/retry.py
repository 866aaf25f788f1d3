"""Retry configuration model."""

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


def always_retry(error: BaseException, attempt: int) -> bool:
    """Default retry predicate: every failure is worth another attempt."""
    return True


class RetryConfiguration(BaseModel):
    """Configuration for a single retried operation.

    Durations are expressed in milliseconds.

    Attributes:
        retries: Maximum number of retries after the first attempt
        delay: Base delay between attempts
        backoff: Double the delay after every failed attempt
        jitter: Scale the delay by a random factor in [0.8, 1.2]
        max_delay: Upper bound for the delay, applied before jitter (None/0 = no cap)
        timeout: Per-attempt deadline (None/0 = no deadline)
        on_retry: Hook called with (error, attempt) before each retry
        should_retry: Predicate called with (error, attempt) to allow a retry
    """

    retries: int = 3
    delay: float = Field(1000.0, ge=0.0)
    backoff: bool = False
    jitter: bool = False
    max_delay: Optional[float] = Field(None, ge=0.0)
    timeout: Optional[float] = Field(None, ge=0.0)
    on_retry: Optional[Callable[[BaseException, int], Any]] = None
    should_retry: Callable[[BaseException, int], bool] = always_retry

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,  # Accept maxDelay, onRetry, shouldRetry
        populate_by_name=True,
    )

    @field_validator("retries", "delay", "backoff", "jitter", "should_retry", mode="before")
    @classmethod
    def _default_when_none(cls, value: Any, info: ValidationInfo) -> Any:
        # An option passed as None behaves as if it was omitted
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("retries")
    @classmethod
    def _clamp_retries(cls, value: int) -> int:
        # A negative budget still runs the initial attempt
        return max(value, 0)

    @property
    def max_attempts(self) -> int:
        """Total number of attempts including the first one."""
        return self.retries + 1

    def merged(self, **overrides: Any) -> "RetryConfiguration":
        """Return a validated copy with the given fields replaced.

        Keys may use either field names or their camelCase aliases.
        """
        if not overrides:
            return self
        aliases = {field.alias: name for name, field in type(self).model_fields.items()}
        values = self.model_dump()
        for key, value in overrides.items():
            values[aliases.get(key, key)] = value
        return type(self)(**values)
