"""Observability hooks for circuit breakers.

Collectors are pure sinks. The breaker calls them while holding its lock, so
implementations must be quick and must not call back into the breaker.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol, runtime_checkable

import structlog

from failfast.circuit_breaker.state import CircuitState
from failfast.logging import StructuredLogger, log_debug, log_info, log_warning


class EventType(StrEnum):
    """Categorized breaker events reported to collectors."""

    RUN_DURATION = "run_duration"
    SHORT_CIRCUIT = "short_circuit"
    TIMEOUT = "timeout"
    ERROR = "error"
    BAD_REQUEST = "bad_request"
    SUCCESS = "success"
    MAX_CONCURRENCY = "max_concurrency"


@dataclass(frozen=True)
class BreakerConfigReport:
    """Effective configuration of a newly created breaker."""

    name: str
    invocation_timeout: float
    half_open_retry_probability: float
    max_concurrency: int | None


@runtime_checkable
class MetricCollector(Protocol):
    """Collector protocol for circuit breaker events.

    Notes:
        ``report_state`` fires only when the state actually changes. A new
        breaker reports ``CLOSED`` right after ``report_new``.
    """

    def report_new(self, config: BreakerConfigReport) -> None:
        """Handle creation of a breaker."""

    def report_state(self, name: str, state: CircuitState) -> None:
        """Handle a state transition."""

    def report_count(self, name: str, event: EventType) -> None:
        """Handle one categorized call outcome."""

    def report_duration(self, name: str, event: EventType, elapsed: float) -> None:
        """Handle the measured duration of a protected call."""


class NullCollector:
    """Collector that drops every event."""

    def report_new(self, config: BreakerConfigReport) -> None:
        _ = config

    def report_state(self, name: str, state: CircuitState) -> None:
        _ = (name, state)

    def report_count(self, name: str, event: EventType) -> None:
        _ = (name, event)

    def report_duration(self, name: str, event: EventType, elapsed: float) -> None:
        _ = (name, event, elapsed)


class MultiCollector:
    """Fan events out to several collectors in order."""

    def __init__(self, collectors: Sequence[MetricCollector]) -> None:
        self._collectors = tuple(collectors)

    def report_new(self, config: BreakerConfigReport) -> None:
        for collector in self._collectors:
            collector.report_new(config)

    def report_state(self, name: str, state: CircuitState) -> None:
        for collector in self._collectors:
            collector.report_state(name, state)

    def report_count(self, name: str, event: EventType) -> None:
        for collector in self._collectors:
            collector.report_count(name, event)

    def report_duration(self, name: str, event: EventType, elapsed: float) -> None:
        for collector in self._collectors:
            collector.report_duration(name, event, elapsed)


_WARNING_STATES = frozenset({CircuitState.OPEN, CircuitState.HARD_OPEN})
_WARNING_EVENTS = frozenset({EventType.TIMEOUT, EventType.ERROR})


class LoggingCollector:
    """Log breaker events through a structured logger."""

    def __init__(self, logger: StructuredLogger | None = None) -> None:
        if logger is None:
            logger = structlog.get_logger("failfast.circuit_breaker")
        self._logger: StructuredLogger = logger

    def report_new(self, config: BreakerConfigReport) -> None:
        log_info(
            self._logger,
            "circuit_breaker.created",
            breaker=config.name,
            invocation_timeout=config.invocation_timeout,
            half_open_retry_probability=config.half_open_retry_probability,
            max_concurrency=config.max_concurrency,
        )

    def report_state(self, name: str, state: CircuitState) -> None:
        if state in _WARNING_STATES:
            log_warning(
                self._logger,
                "circuit_breaker.state_changed",
                breaker=name,
                state=state.value,
            )
            return
        log_info(
            self._logger,
            "circuit_breaker.state_changed",
            breaker=name,
            state=state.value,
        )

    def report_count(self, name: str, event: EventType) -> None:
        if event in _WARNING_EVENTS:
            log_warning(
                self._logger, "circuit_breaker.call", breaker=name, outcome=event.value
            )
            return
        log_debug(
            self._logger, "circuit_breaker.call", breaker=name, outcome=event.value
        )

    def report_duration(self, name: str, event: EventType, elapsed: float) -> None:
        log_debug(
            self._logger,
            "circuit_breaker.duration",
            breaker=name,
            metric=event.value,
            elapsed=elapsed,
        )
