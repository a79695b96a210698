"""Failure interpreters decide which errors count against a breaker."""

from collections.abc import Container
from typing import Protocol, runtime_checkable

import httpx


@runtime_checkable
class FailureInterpreter(Protocol):
    """Classify an error raised by a protected call."""

    def should_trip(self, error: BaseException) -> bool:
        """Return ``True`` when ``error`` should count as a breaker failure."""


class AnyErrorFailureInterpreter:
    """Treat every error as a failure."""

    def should_trip(self, error: BaseException) -> bool:
        _ = error
        return True


class ExceptionTypeFailureInterpreter:
    """Count only expected exception types that are not explicitly excluded.

    Attributes:
        expected: Exceptions that count as failures.
        excluded: Exceptions that must not count as failures, even when they
            also match ``expected``.
    """

    def __init__(
        self,
        *,
        expected: tuple[type[BaseException], ...] = (Exception,),
        excluded: tuple[type[BaseException], ...] = (),
    ) -> None:
        self.expected = expected
        self.excluded = excluded

    def should_trip(self, error: BaseException) -> bool:
        if isinstance(error, self.excluded):
            return False
        return isinstance(error, self.expected)


class HTTPStatusFailureInterpreter:
    """Trip on server-side HTTP failures and transport errors only.

    Statuses outside ``trip_statuses`` (client-side 4xx by default) are not
    held against the breaker.
    """

    def __init__(self, *, trip_statuses: Container[int] = range(500, 600)) -> None:
        self.trip_statuses = trip_statuses

    def should_trip(self, error: BaseException) -> bool:
        if isinstance(error, httpx.HTTPStatusError):
            return error.response.status_code in self.trip_statuses
        return True
