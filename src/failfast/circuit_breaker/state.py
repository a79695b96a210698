"""Circuit breaker state primitives."""

from dataclasses import dataclass
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"
    HARD_OPEN = "hard_open"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: Current breaker state.
        hard_tripped: Whether the breaker was forced open by ``trip()``.
        last_failure_at: Monotonic timestamp of the last recorded failure.
        reset_timeout: Seconds the breaker waits after the last failure before
            allowing a half-open probe.
    """

    name: str
    state: CircuitState
    hard_tripped: bool
    last_failure_at: float | None
    reset_timeout: float | None
