"""Core circuit breaker implementation."""

import asyncio
import logging
import random
import threading
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import ParamSpec, TypeVar, cast

from failfast.circuit_breaker.backoff import ConstantBackoff, ResetBackoff
from failfast.circuit_breaker.exceptions import (
    CircuitOpenError,
    InvocationTimeoutError,
    MaxConcurrencyError,
)
from failfast.circuit_breaker.interpreters import (
    AnyErrorFailureInterpreter,
    FailureInterpreter,
)
from failfast.circuit_breaker.metrics import (
    BreakerConfigReport,
    EventType,
    MetricCollector,
    NullCollector,
)
from failfast.circuit_breaker.state import BreakerSnapshot, CircuitState
from failfast.circuit_breaker.timeout import ErrorChannel, call_with_timeout
from failfast.circuit_breaker.trip import (
    ConsecutiveFailureTripCondition,
    TripCondition,
)
from failfast.logging import breaker_task_name, log_exception

T = TypeVar("T")
P = ParamSpec("P")

_logger = logging.getLogger(__name__)


def _monotonic() -> float:
    return time.monotonic()


def _random() -> float:
    return random.random()


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        invocation_timeout: Seconds a single attempt may run before it is
            abandoned with ``InvocationTimeoutError``. ``0`` disables the bound.
        half_open_retry_probability: Probability that an attempt is allowed
            while ``HALF_OPEN``.
        max_concurrency: Optional bound on attempts running at once.
        max_concurrency_timeout: Seconds to wait for a free slot when
            ``max_concurrency`` is reached.
    """

    invocation_timeout: float = 0.1
    half_open_retry_probability: float = 0.5
    max_concurrency: int | None = None
    max_concurrency_timeout: float = 0.1

    def __post_init__(self) -> None:
        if self.invocation_timeout < 0:
            raise ValueError("invocation_timeout must be >= 0")
        if not 0.0 <= self.half_open_retry_probability <= 1.0:
            raise ValueError("half_open_retry_probability must be within [0, 1]")
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1 when provided")
        if self.max_concurrency_timeout < 0:
            raise ValueError("max_concurrency_timeout must be >= 0")


class CircuitBreaker:
    """Stateful proxy around a dangerous async operation.

    The trip condition decides *when* the breaker should be open and the reset
    backoff decides *how long* to stay open before probing. Every state read
    and transition happens under one lock, which is never held while the
    protected call runs.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        reset_backoff: ResetBackoff | None = None,
        failure_interpreter: FailureInterpreter | None = None,
        trip_condition: TripCondition | None = None,
        collector: MetricCollector | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom strategies.

        Args:
            name: Breaker name used in errors, logs and collector events.
            config: Timing configuration. Defaults to ``CircuitBreakerConfig()``.
            reset_backoff: Open-state wait schedule. Defaults to a constant
                one second.
            failure_interpreter: Error classification. Defaults to counting
                every error.
            trip_condition: Failure-history policy. Defaults to five
                consecutive failures.
            collector: Event sink. Defaults to a no-op collector.
        """
        self.name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self.reset_backoff: ResetBackoff = (
            ConstantBackoff(1.0) if reset_backoff is None else reset_backoff
        )
        self.failure_interpreter: FailureInterpreter = (
            AnyErrorFailureInterpreter()
            if failure_interpreter is None
            else failure_interpreter
        )
        self.trip_condition: TripCondition = (
            ConsecutiveFailureTripCondition(5)
            if trip_condition is None
            else trip_condition
        )
        self.collector: MetricCollector = (
            NullCollector() if collector is None else collector
        )

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._hard_tripped = False
        self._last_failure_at: float | None = None
        self._reset_timeout: float | None = None
        self._semaphore: asyncio.Semaphore | None = None
        if self.config.max_concurrency is not None:
            self._semaphore = asyncio.Semaphore(self.config.max_concurrency)

        self._report_new()
        self._report_state(CircuitState.CLOSED)

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def hard_tripped(self) -> bool:
        with self._lock:
            return self._hard_tripped

    def snapshot(self) -> BreakerSnapshot:
        """Return a consistent view of the breaker's bookkeeping."""
        with self._lock:
            return BreakerSnapshot(
                name=self.name,
                state=self._state,
                hard_tripped=self._hard_tripped,
                last_failure_at=self._last_failure_at,
                reset_timeout=self._reset_timeout,
            )

    def trip(self) -> None:
        """Force the breaker open until ``reset()`` is called."""
        with self._lock:
            self._hard_tripped = True
            self._set_state(CircuitState.HARD_OPEN)

    def reset(self) -> None:
        """Close the breaker and clear all failure and backoff bookkeeping."""
        with self._lock:
            self._reset_locked(manual=True)

    def should_try(self) -> bool:
        """Decide whether one attempt may proceed, updating state as needed.

        Successive calls may disagree: while ``HALF_OPEN`` each call draws
        independently against ``half_open_retry_probability``.

        The elapsed-backoff check runs in every state except ``HARD_OPEN``, so
        a ``CLOSED`` breaker whose last failure is older than the interval
        moves straight to ``HALF_OPEN`` without an ``OPEN`` decision first.
        """
        with self._lock:
            if self._state is CircuitState.HARD_OPEN:
                return False

            if not self.trip_condition.should_trip():
                self._set_state(CircuitState.CLOSED)
                return True

            if self._state is CircuitState.CLOSED:
                # A fresh failure episode starts its own backoff schedule.
                self.reset_backoff.reset_to_base()
            if self._state is not CircuitState.OPEN:
                self._reset_timeout = self.reset_backoff.next_interval()

            if self._reset_timeout_elapsed():
                self._set_state(CircuitState.HALF_OPEN)
                return _random() < self.config.half_open_retry_probability

            self._set_state(CircuitState.OPEN)
            return False

    def mark_result(self, error: BaseException | None) -> bool:
        """Record the outcome of an attempt.

        Args:
            error: Exception raised by the attempt, or ``None`` on success.

        Returns:
            ``False`` when the outcome was recorded as a failure. ``True`` when
            it was treated as a success, which resets the breaker even if
            ``error`` was set but not trip-worthy. A success never leaves
            ``HARD_OPEN``; only ``reset()`` does.
        """
        if error is not None and (
            isinstance(error, InvocationTimeoutError)
            or self.failure_interpreter.should_trip(error)
        ):
            with self._lock:
                self._last_failure_at = _monotonic()
                self.trip_condition.failure()
            return False

        with self._lock:
            self._reset_locked(manual=False)
        return True

    async def call(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the attempt is not allowed.
            InvocationTimeoutError: When ``func`` exceeds the invocation timeout.
            MaxConcurrencyError: When no concurrency slot frees up in time.
            Exception: The original exception from ``func``, unchanged.
        """
        if not self.should_try():
            self._report_count(EventType.SHORT_CIRCUIT)
            raise CircuitOpenError(self.name, retry_after=self._retry_after())

        async with self._concurrency_slot():
            start = _monotonic()
            try:
                result = await call_with_timeout(
                    func, self.config.invocation_timeout, *args, **kwargs
                )
            except Exception as exc:
                self._record_outcome(exc, max(_monotonic() - start, 0.0))
                raise
            self._record_outcome(None, max(_monotonic() - start, 0.0))
            return result

    def call_async(
        self,
        func: Callable[P, Awaitable[object]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> ErrorChannel:
        """Run ``call`` on its own task and return a one-shot error channel.

        Must be called from a running event loop.
        """
        task = asyncio.create_task(
            self.call(func, *args, **kwargs),
            name=breaker_task_name(self.name, func),
        )
        return ErrorChannel(task)

    def _record_outcome(self, error: Exception | None, elapsed: float) -> None:
        self._report_duration(EventType.RUN_DURATION, elapsed)
        if not self.mark_result(error):
            if isinstance(error, InvocationTimeoutError):
                self._report_count(EventType.TIMEOUT)
            else:
                self._report_count(EventType.ERROR)
        elif error is not None:
            self._report_count(EventType.BAD_REQUEST)
        else:
            self._report_count(EventType.SUCCESS)

    @asynccontextmanager
    async def _concurrency_slot(self) -> AsyncIterator[None]:
        semaphore = self._semaphore
        if semaphore is None:
            yield
            return

        if semaphore.locked():
            try:
                await asyncio.wait_for(
                    semaphore.acquire(), timeout=self.config.max_concurrency_timeout
                )
            except TimeoutError:
                self._report_count(EventType.MAX_CONCURRENCY)
                raise MaxConcurrencyError(
                    self.name, cast(int, self.config.max_concurrency)
                ) from None
        else:
            await semaphore.acquire()
        try:
            yield
        finally:
            semaphore.release()

    def _retry_after(self) -> float | None:
        with self._lock:
            if self._state is CircuitState.HARD_OPEN:
                return None
            if self._last_failure_at is None or self._reset_timeout is None:
                return None
            elapsed = _monotonic() - self._last_failure_at
            return max(self._reset_timeout - elapsed, 0.0)

    def _reset_locked(self, *, manual: bool) -> None:
        if manual:
            self._hard_tripped = False
        if not self._hard_tripped:
            self._set_state(CircuitState.CLOSED)
        self._last_failure_at = None
        self._reset_timeout = None
        self.reset_backoff.reset_to_base()
        self.trip_condition.success()

    def _reset_timeout_elapsed(self) -> bool:
        if self._last_failure_at is None or self._reset_timeout is None:
            return False
        return _monotonic() - self._last_failure_at >= self._reset_timeout

    def _set_state(self, state: CircuitState) -> None:
        if self._state is state:
            return
        self._state = state
        self._report_state(state)

    def _report_new(self) -> None:
        report = BreakerConfigReport(
            name=self.name,
            invocation_timeout=self.config.invocation_timeout,
            half_open_retry_probability=self.config.half_open_retry_probability,
            max_concurrency=self.config.max_concurrency,
        )
        try:
            self.collector.report_new(report)
        except Exception:
            log_exception(
                _logger,
                "circuit_breaker.collector_failed",
                breaker=self.name,
                hook="report_new",
            )

    def _report_state(self, state: CircuitState) -> None:
        try:
            self.collector.report_state(self.name, state)
        except Exception:
            log_exception(
                _logger,
                "circuit_breaker.collector_failed",
                breaker=self.name,
                hook="report_state",
            )

    def _report_count(self, event: EventType) -> None:
        try:
            self.collector.report_count(self.name, event)
        except Exception:
            log_exception(
                _logger,
                "circuit_breaker.collector_failed",
                breaker=self.name,
                hook="report_count",
            )

    def _report_duration(self, event: EventType, elapsed: float) -> None:
        try:
            self.collector.report_duration(self.name, event, elapsed)
        except Exception:
            log_exception(
                _logger,
                "circuit_breaker.collector_failed",
                breaker=self.name,
                hook="report_duration",
            )
