"""Trip conditions decide, from outcome history, whether to open a breaker.

The breaker serializes every call into a trip condition under its own lock, so
implementations do not need their own synchronization.
"""

import time
from collections import deque
from typing import Protocol, runtime_checkable


def _monotonic() -> float:
    return time.monotonic()


@runtime_checkable
class TripCondition(Protocol):
    """Outcome-history policy consulted before each call attempt."""

    def success(self) -> None:
        """Record a successful (or reset) outcome."""

    def failure(self) -> None:
        """Record a failed outcome."""

    def should_trip(self) -> bool:
        """Return ``True`` when the breaker should currently be tripped."""


class ConsecutiveFailureTripCondition:
    """Trip after ``threshold`` failures with no success in between."""

    def __init__(self, threshold: int = 5) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = threshold
        self._failures = 0

    @property
    def failures(self) -> int:
        return self._failures

    def success(self) -> None:
        self._failures = 0

    def failure(self) -> None:
        self._failures += 1

    def should_trip(self) -> bool:
        return self._failures >= self.threshold


class WindowFailureTripCondition:
    """Trip when ``threshold`` failures fall inside a trailing time window.

    A success clears the window entirely.
    """

    def __init__(self, threshold: int, window: float) -> None:
        if threshold < 1:
            raise ValueError("threshold must be >= 1")
        if window <= 0:
            raise ValueError("window must be > 0")
        self.threshold = threshold
        self.window = window
        self._failure_times: deque[float] = deque()

    def success(self) -> None:
        self._failure_times.clear()

    def failure(self) -> None:
        self._failure_times.append(_monotonic())

    def should_trip(self) -> bool:
        cutoff = _monotonic() - self.window
        while self._failure_times and self._failure_times[0] < cutoff:
            self._failure_times.popleft()
        return len(self._failure_times) >= self.threshold
