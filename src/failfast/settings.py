from __future__ import annotations

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from failfast.circuit_breaker.backoff import (
    ConstantBackoff,
    ExponentialBackoff,
    ResetBackoff,
)
from failfast.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from failfast.circuit_breaker.interpreters import FailureInterpreter
from failfast.circuit_breaker.metrics import MetricCollector
from failfast.circuit_breaker.trip import ConsecutiveFailureTripCondition
from failfast.logging import get_log_level_value

DEFAULT_ENV_PREFIX = "FAILFAST_BREAKER_"


def prefixed_settings_config(prefix: str) -> SettingsConfigDict:
    """Build standard Pydantic settings config for prefixed environments."""
    return SettingsConfigDict(env_prefix=prefix, case_sensitive=False)


class BreakerSettings(BaseSettings):
    """Environment-driven defaults for circuit breakers.

    ``reset_backoff_max`` selects the schedule: unset keeps a constant
    ``reset_backoff`` wait, set grows the wait exponentially up to it.
    """

    model_config = prefixed_settings_config(DEFAULT_ENV_PREFIX)

    invocation_timeout: float = 0.1
    half_open_retry_probability: float = 0.5
    reset_backoff: float = 1.0
    reset_backoff_max: float | None = None
    failure_threshold: int = 5
    max_concurrency: int | None = None
    max_concurrency_timeout: float = 0.1
    log_level: str = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().upper()
            get_log_level_value(normalized)
            return normalized
        return value

    @field_validator(
        "invocation_timeout",
        "reset_backoff",
        "max_concurrency_timeout",
    )
    @classmethod
    def _validate_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("must be >= 0")
        return value

    @model_validator(mode="after")
    def _validate_breaker_settings(self) -> BreakerSettings:
        if not 0.0 <= self.half_open_retry_probability <= 1.0:
            raise ValueError("half_open_retry_probability must be within [0, 1]")
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1 when provided")
        if (
            self.reset_backoff_max is not None
            and self.reset_backoff_max < self.reset_backoff
        ):
            raise ValueError("reset_backoff_max must be >= reset_backoff")
        return self

    def breaker_config(self) -> CircuitBreakerConfig:
        """Build the timing configuration for one breaker."""
        return CircuitBreakerConfig(
            invocation_timeout=self.invocation_timeout,
            half_open_retry_probability=self.half_open_retry_probability,
            max_concurrency=self.max_concurrency,
            max_concurrency_timeout=self.max_concurrency_timeout,
        )

    def build_reset_backoff(self) -> ResetBackoff:
        """Build a fresh reset backoff schedule."""
        if self.reset_backoff_max is None:
            return ConstantBackoff(self.reset_backoff)
        return ExponentialBackoff(self.reset_backoff, self.reset_backoff_max)

    def build_trip_condition(self) -> ConsecutiveFailureTripCondition:
        """Build a fresh consecutive-failure trip condition."""
        return ConsecutiveFailureTripCondition(self.failure_threshold)

    def build_breaker(
        self,
        name: str,
        *,
        failure_interpreter: FailureInterpreter | None = None,
        collector: MetricCollector | None = None,
    ) -> CircuitBreaker:
        """Build a breaker with its own strategy instances from these settings."""
        return CircuitBreaker(
            name,
            config=self.breaker_config(),
            reset_backoff=self.build_reset_backoff(),
            failure_interpreter=failure_interpreter,
            trip_condition=self.build_trip_condition(),
            collector=collector,
        )
