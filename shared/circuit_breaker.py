"""
Circuit breaker for calls to external APIs.

The breaker never retries. While open, calls fail immediately with
CircuitBreakerOpenException so an unhealthy upstream is not hammered by
every inbound request; after the recovery timeout a single probe call is
let through (half-open) and its outcome decides whether to close again.
"""

import time
from enum import Enum
from typing import Dict, Any, Callable, Awaitable, Tuple, Type

from shared.logging import get_logger


class CircuitBreakerState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenException(Exception):
    """Raised when a call is blocked by an open circuit."""
    pass


class CircuitBreaker:
    """Counts consecutive failures of an async callable and trips open."""

    def __init__(self,
                 name: str,
                 failure_threshold: int = 5,
                 recovery_timeout: float = 60.0,
                 failure_exceptions: Tuple[Type[BaseException], ...] = (Exception,)):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.failure_exceptions = failure_exceptions
        self.logger = get_logger(f"authorization.circuit_breaker.{name}")

        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0

    @property
    def state(self) -> CircuitBreakerState:
        if self._state == CircuitBreakerState.OPEN and self._recovery_elapsed():
            self._state = CircuitBreakerState.HALF_OPEN
            self.logger.info("Circuit breaker half-open")
        return self._state

    def _recovery_elapsed(self) -> bool:
        return (time.monotonic() - self._opened_at) >= self.recovery_timeout

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Execute func with circuit breaker protection."""
        if self.state == CircuitBreakerState.OPEN:
            raise CircuitBreakerOpenException(f"Circuit breaker '{self.name}' is open")

        try:
            result = await func(*args, **kwargs)
        except self.failure_exceptions:
            self._record_failure()
            raise

        self._record_success()
        return result

    def _record_success(self):
        if self._state != CircuitBreakerState.CLOSED:
            self.logger.info("Circuit breaker closed after successful call")
        self._state = CircuitBreakerState.CLOSED
        self._failure_count = 0

    def _record_failure(self):
        self._failure_count += 1

        # A failed probe reopens immediately
        if self._state == CircuitBreakerState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitBreakerState.OPEN
            self._opened_at = time.monotonic()
            self.logger.warning(
                "Circuit breaker opened",
                failure_count=self._failure_count,
                threshold=self.failure_threshold
            )

    def is_open(self) -> bool:
        """Check if circuit breaker is in OPEN state."""
        return self.state == CircuitBreakerState.OPEN

    def get_state(self) -> Dict[str, Any]:
        """Get current circuit breaker state."""
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout
        }
