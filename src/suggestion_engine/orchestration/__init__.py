"""Provider orchestration for the suggestion engine.

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        Provider Gateway                          │
    │                                                                  │
    │  Default: every provider at once, per-call timeout each          │
    │    [neural] [personality] [predictive] [pattern] [rule_based]    │
    │                                                                  │
    │  Short-circuit mode: tiers in priority order                     │
    │    Tier 0: [neural] [personality]                                │
    │      │ stop if count ≥ K                                         │
    │    Tier 1: [predictive] [pattern]                                │
    │    Tier 2: [rule_based]                                          │
    │                                                                  │
    │  Global deadline cancels whatever is still running.              │
    │  Failures become classified, empty outcomes (fail-open).         │
    │  Circuit breakers skip providers by error kind (auth, throttle). │
    └─────────────────────────────────────────────────────────────────┘
"""

from .gateway import (
    FanOutResult,
    ProviderGateway,
    ProviderOutcome,
    classify_error,
)
from .resilience import CircuitBreaker, CircuitBreakerConfig, CircuitState

__all__ = [
    "FanOutResult",
    "ProviderGateway",
    "ProviderOutcome",
    "classify_error",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
]
