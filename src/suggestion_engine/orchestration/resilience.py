"""Circuit breakers driven by provider error kinds.

Each provider gets one breaker. How long it stays open depends on what
went wrong:
- AUTH_FAILURE: opens at once for ``auth_cooldown_seconds``; retrying a
  rejected key on every request only burns the timeout budget
- RATE_LIMITED: opens at once when the backend sent ``retry_after``,
  for exactly that long (capped); otherwise counts like any failure
- TIMEOUT / NETWORK_ERROR / MALFORMED_RESPONSE: consecutive failures are
  counted and the breaker opens at ``failure_threshold``

Once the open window has passed, a limited number of trial calls are
let through (half-open). A trial success closes the breaker; a trial
failure opens it again.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from suggestion_engine.exceptions import ProviderErrorKind


@dataclass
class CircuitBreakerConfig:
    """Configuration for provider circuit breakers.

    Example:
        config = CircuitBreakerConfig(
            failure_threshold=3,        # consecutive transient failures
            reset_timeout_seconds=30,   # open window for transient failures
            auth_cooldown_seconds=300,  # open window after a rejected key
        )
    """

    failure_threshold: int = 3
    reset_timeout_seconds: float = 30.0
    auth_cooldown_seconds: float = 300.0
    max_retry_after_seconds: float = 120.0
    half_open_max_calls: int = 1


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """Decides whether a provider is worth calling right now.

    Usage:
        breaker = CircuitBreaker("neural", CircuitBreakerConfig())

        if breaker.allow():
            ...
            breaker.on_failure(ProviderErrorKind.RATE_LIMITED, retry_after=2.0)
    """

    provider_id: str
    config: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    clock: Callable[[], float] = time.monotonic

    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    open_until: float = 0.0
    trial_calls: int = 0
    last_error_kind: ProviderErrorKind | None = None
    times_opened: int = 0

    def _open(self, seconds: float) -> None:
        self.state = CircuitState.OPEN
        self.open_until = self.clock() + seconds
        self.trial_calls = 0
        self.times_opened += 1

    def remaining_open_seconds(self) -> float:
        if self.state != CircuitState.OPEN:
            return 0.0
        return max(0.0, self.open_until - self.clock())

    def allow(self) -> bool:
        """True if a call may go through; counts half-open trial calls."""
        if self.state == CircuitState.OPEN:
            if self.clock() < self.open_until:
                return False
            self.state = CircuitState.HALF_OPEN
            self.trial_calls = 0

        if self.state == CircuitState.HALF_OPEN:
            if self.trial_calls >= self.config.half_open_max_calls:
                return False
            self.trial_calls += 1
        return True

    def on_success(self) -> None:
        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.trial_calls = 0
        self.last_error_kind = None

    def on_failure(
        self,
        kind: ProviderErrorKind,
        retry_after: float | None = None,
    ) -> None:
        """Record a failed call of the given kind."""
        self.consecutive_failures += 1
        self.last_error_kind = kind

        if kind == ProviderErrorKind.AUTH_FAILURE:
            self._open(self.config.auth_cooldown_seconds)
        elif kind == ProviderErrorKind.RATE_LIMITED and retry_after is not None:
            self._open(min(max(retry_after, 0.0), self.config.max_retry_after_seconds))
        elif self.state == CircuitState.HALF_OPEN:
            self._open(self.config.reset_timeout_seconds)
        elif self.consecutive_failures >= self.config.failure_threshold:
            self._open(self.config.reset_timeout_seconds)

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "last_error_kind": self.last_error_kind.value if self.last_error_kind else None,
            "open_for_seconds": round(self.remaining_open_seconds(), 3),
            "times_opened": self.times_opened,
        }
