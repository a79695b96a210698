"""Process-wide registry of named circuit breakers."""

import threading
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from failfast.circuit_breaker.backoff import ResetBackoff
from failfast.circuit_breaker.breaker import CircuitBreaker, CircuitBreakerConfig
from failfast.circuit_breaker.exceptions import (
    BreakerAlreadyConfiguredError,
    BreakerNotConfiguredError,
)
from failfast.circuit_breaker.interpreters import FailureInterpreter
from failfast.circuit_breaker.metrics import MetricCollector
from failfast.circuit_breaker.timeout import ErrorChannel
from failfast.circuit_breaker.trip import TripCondition

T = TypeVar("T")
P = ParamSpec("P")


class BreakerRegistry:
    """Hold one breaker per protected resource, looked up by name.

    A registry-wide collector, when given, is used for every breaker that does
    not bring its own.
    """

    def __init__(self, *, collector: MetricCollector | None = None) -> None:
        self._collector = collector
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def configure(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        reset_backoff: ResetBackoff | None = None,
        failure_interpreter: FailureInterpreter | None = None,
        trip_condition: TripCondition | None = None,
        collector: MetricCollector | None = None,
    ) -> CircuitBreaker:
        """Create and register the breaker for ``name``.

        Raises:
            BreakerAlreadyConfiguredError: When ``name`` is already registered.
        """
        with self._lock:
            if name in self._breakers:
                raise BreakerAlreadyConfiguredError(name)
            breaker = CircuitBreaker(
                name,
                config=config,
                reset_backoff=reset_backoff,
                failure_interpreter=failure_interpreter,
                trip_condition=trip_condition,
                collector=self._collector if collector is None else collector,
            )
            self._breakers[name] = breaker
            return breaker

    def register(self, breaker: CircuitBreaker) -> CircuitBreaker:
        """Register an already-built breaker under its own name."""
        with self._lock:
            if breaker.name in self._breakers:
                raise BreakerAlreadyConfiguredError(breaker.name)
            self._breakers[breaker.name] = breaker
            return breaker

    def get(self, name: str) -> CircuitBreaker:
        """Return the breaker registered for ``name``.

        Raises:
            BreakerNotConfiguredError: When ``name`` is not registered.
        """
        with self._lock:
            try:
                return self._breakers[name]
            except KeyError:
                raise BreakerNotConfiguredError(name) from None

    def names(self) -> tuple[str, ...]:
        with self._lock:
            return tuple(sorted(self._breakers))

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._breakers

    async def call(
        self,
        name: str,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke ``func`` through the breaker registered for ``name``."""
        return await self.get(name).call(func, *args, **kwargs)

    def call_async(
        self,
        name: str,
        func: Callable[P, Awaitable[object]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> ErrorChannel:
        """Schedule ``func`` through the breaker registered for ``name``."""
        return self.get(name).call_async(func, *args, **kwargs)
