"""Async circuit breaker with pluggable failure policies.

This package implements the circuit breaker pattern from *Release It!*.

Key behavior notes:
  - The trip condition decides whether the breaker should be open; the reset
    backoff decides how long to wait after the last failure before probing.
  - Half-open probing is probabilistic: each admission decision while
    ``HALF_OPEN`` is allowed with ``half_open_retry_probability``.
  - ``trip()`` forces ``HARD_OPEN``, which only ``reset()`` leaves.
  - An error the failure interpreter does not count resets the breaker just
    like a success does.
  - A call that exceeds the invocation timeout always counts as a failure. It
    is abandoned, not cancelled.
"""

from failfast.circuit_breaker.backoff import (
    ConstantBackoff,
    ExponentialBackoff,
    ResetBackoff,
    WaitStrategyBackoff,
)
from failfast.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from failfast.circuit_breaker.exceptions import (
    BreakerAlreadyConfiguredError,
    BreakerNotConfiguredError,
    CircuitBreakerError,
    CircuitOpenError,
    InvocationTimeoutError,
    MaxConcurrencyError,
    RegistryError,
)
from failfast.circuit_breaker.interpreters import (
    AnyErrorFailureInterpreter,
    ExceptionTypeFailureInterpreter,
    FailureInterpreter,
    HTTPStatusFailureInterpreter,
)
from failfast.circuit_breaker.metrics import (
    BreakerConfigReport,
    EventType,
    LoggingCollector,
    MetricCollector,
    MultiCollector,
    NullCollector,
)
from failfast.circuit_breaker.registry import BreakerRegistry
from failfast.circuit_breaker.state import BreakerSnapshot, CircuitState
from failfast.circuit_breaker.timeout import ErrorChannel, call_with_timeout
from failfast.circuit_breaker.trip import (
    ConsecutiveFailureTripCondition,
    TripCondition,
    WindowFailureTripCondition,
)

__all__ = [
    "AnyErrorFailureInterpreter",
    "BreakerAlreadyConfiguredError",
    "BreakerConfigReport",
    "BreakerNotConfiguredError",
    "BreakerRegistry",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "ConsecutiveFailureTripCondition",
    "ConstantBackoff",
    "ErrorChannel",
    "EventType",
    "ExceptionTypeFailureInterpreter",
    "ExponentialBackoff",
    "FailureInterpreter",
    "HTTPStatusFailureInterpreter",
    "InvocationTimeoutError",
    "LoggingCollector",
    "MaxConcurrencyError",
    "MetricCollector",
    "MultiCollector",
    "NullCollector",
    "RegistryError",
    "ResetBackoff",
    "TripCondition",
    "WaitStrategyBackoff",
    "WindowFailureTripCondition",
    "call_with_timeout",
]
