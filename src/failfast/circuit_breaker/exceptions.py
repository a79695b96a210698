"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open.
  - A call that was attempted but did not finish within the invocation timeout.
  - A call rejected because the breaker's concurrency bound was exhausted.
"""


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_after: Seconds until a half-open probe may be attempted, or
            ``None`` when unknown (for example after a manual trip).
    """

    def __init__(self, breaker_name: str, retry_after: float | None = None) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_after = retry_after
        if retry_after is None:
            message = f"circuit_open: {breaker_name}"
        else:
            message = f"circuit_open: {breaker_name} retry_after={retry_after:g}s"
        super().__init__(message)


class InvocationTimeoutError(CircuitBreakerError, TimeoutError):
    """Raised when a protected call exceeds the invocation timeout.

    The underlying call is not cancelled; its eventual outcome is discarded.

    Attributes:
        timeout: Invocation bound in seconds that was exceeded.
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"invocation_timeout: exceeded {timeout:g}s")


class MaxConcurrencyError(CircuitBreakerError):
    """Raised when no concurrency slot frees up within the configured wait."""

    def __init__(self, breaker_name: str, max_concurrency: int) -> None:
        self.breaker_name = breaker_name
        self.max_concurrency = max_concurrency
        super().__init__(
            f"max_concurrency: {breaker_name} limit={max_concurrency} reached"
        )


class RegistryError(CircuitBreakerError):
    """Base exception for breaker registry lookups."""


class BreakerAlreadyConfiguredError(RegistryError):
    """Raised when a breaker name is registered twice."""

    def __init__(self, breaker_name: str) -> None:
        self.breaker_name = breaker_name
        super().__init__(f"breaker_already_configured: {breaker_name}")


class BreakerNotConfiguredError(RegistryError):
    """Raised when a breaker name has not been registered."""

    def __init__(self, breaker_name: str) -> None:
        self.breaker_name = breaker_name
        super().__init__(f"breaker_not_configured: {breaker_name}")
