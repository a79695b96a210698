"""Reset backoff schedules for the open state.

Schedules reuse ``tenacity`` wait strategies. Each call to
``next_interval()`` advances an internal attempt counter and evaluates the
wait strategy for that attempt, so any ``tenacity`` wait (fixed, exponential,
jittered, chained) can drive a breaker's open-state wait.
"""

from typing import Protocol, runtime_checkable

from tenacity import RetryCallState, Retrying, wait_exponential_jitter, wait_fixed
from tenacity.wait import wait_base


@runtime_checkable
class ResetBackoff(Protocol):
    """Stateful schedule of open-state wait intervals."""

    def next_interval(self) -> float:
        """Return the next wait in seconds and advance the schedule."""

    def reset_to_base(self) -> None:
        """Return the schedule to its first interval."""


class WaitStrategyBackoff:
    """Drive a ``tenacity`` wait strategy with a resettable attempt counter."""

    def __init__(self, wait: wait_base) -> None:
        self._wait = wait
        self._retrying = Retrying()
        self._attempt = 0

    @property
    def attempt(self) -> int:
        """Number of intervals handed out since the last reset."""
        return self._attempt

    def next_interval(self) -> float:
        self._attempt += 1
        retry_state = RetryCallState(self._retrying, None, (), {})
        retry_state.attempt_number = self._attempt
        return max(float(self._wait(retry_state)), 0.0)

    def reset_to_base(self) -> None:
        self._attempt = 0


class ConstantBackoff(WaitStrategyBackoff):
    """Wait the same interval after every trip."""

    def __init__(self, interval: float = 1.0) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        super().__init__(wait_fixed(interval))


class ExponentialBackoff(WaitStrategyBackoff):
    """Grow the wait exponentially across repeated trips, capped at ``maximum``.

    Args:
        initial: First interval in seconds.
        maximum: Upper bound for any interval.
        exp_base: Growth factor between successive intervals.
        jitter: Upper bound of random seconds added to each interval.
    """

    def __init__(
        self,
        initial: float,
        maximum: float,
        *,
        exp_base: float = 2.0,
        jitter: float = 0.0,
    ) -> None:
        if initial < 0:
            raise ValueError("initial must be >= 0")
        if maximum < initial:
            raise ValueError("maximum must be >= initial")
        if exp_base < 1:
            raise ValueError("exp_base must be >= 1")
        if jitter < 0:
            raise ValueError("jitter must be >= 0")
        self.initial = initial
        self.maximum = maximum
        super().__init__(
            wait_exponential_jitter(
                initial=initial,
                max=maximum,
                exp_base=exp_base,
                jitter=jitter,
            )
        )
