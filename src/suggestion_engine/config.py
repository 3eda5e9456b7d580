"""Unified configuration for the suggestion engine.

EngineConfig is the single explicit configuration structure for the whole
pipeline:
- Ranking (max suggestions, consensus boost, context weight)
- Provider fan-out (timeouts, priority tiers, short-circuit)
- Result cache (capacity, TTL)
- Online learning (learning rate)
- LLM backend and key-value store connections
"""

from dataclasses import dataclass, field
from typing import Literal
import os

from suggestion_engine.exceptions import ConfigurationError


DEFAULT_PROVIDER_TIERS: list[list[str]] = [
    ["neural", "personality"],
    ["predictive", "pattern"],
    ["rule_based"],
]


@dataclass
class LLMConfig:
    """Configuration for the LLM backing the neural and predictive providers."""

    provider: Literal["groq", "mock"] = "groq"
    model: str = "llama-3.1-8b-instant"
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.4
    max_tokens: int = 1200


@dataclass
class StoreConfig:
    """Configuration for the external key-value store."""

    provider: Literal["qdrant", "in_memory"] = "in_memory"
    url: str = "http://localhost:6333"
    api_key: str | None = None
    collection: str = "suggestion_engine_kv"


@dataclass
class EngineConfig:
    """Main configuration for the suggestion engine.

    Create from environment variables:
        config = EngineConfig.from_env()

    Or specify directly:
        config = EngineConfig(
            max_suggestions=5,
            provider_priority_tiers=[["neural"], ["pattern", "rule_based"]],
            short_circuit_enabled=True,
        )
    """

    # Enumerated surface
    max_suggestions: int = 5
    per_provider_timeout_ms: int = 1500
    global_deadline_ms: int = 2000
    cache_capacity: int = 500
    cache_ttl_ms: int = 300_000
    consensus_boost: float = 0.1
    learning_rate: float = 0.05
    provider_priority_tiers: list[list[str]] = field(
        default_factory=lambda: [list(tier) for tier in DEFAULT_PROVIDER_TIERS]
    )

    # Priority short-circuit (None threshold means max_suggestions)
    short_circuit_enabled: bool = False
    short_circuit_threshold: int | None = None

    # Ranking
    context_weight: float = 0.2
    personality_boost: float = 0.05
    alignment_threshold: float = 0.7
    fallback_confidence: float = 0.5
    default_provider_weight: float = 1.0

    # Bounded state
    context_window_size: int = 10
    conversation_timeout_seconds: int = 1800
    max_conversations: int = 1000
    max_profiles: int = 10000

    # Circuit breakers
    circuit_breaker_enabled: bool = True
    circuit_failure_threshold: int = 3
    circuit_reset_seconds: float = 30.0
    circuit_auth_cooldown_seconds: float = 300.0

    # Backends
    llm: LLMConfig = field(default_factory=LLMConfig)
    store: StoreConfig = field(default_factory=StoreConfig)

    @property
    def per_provider_timeout(self) -> float:
        """Per-call timeout in seconds."""
        return self.per_provider_timeout_ms / 1000.0

    @property
    def global_deadline(self) -> float:
        """Request deadline in seconds."""
        return self.global_deadline_ms / 1000.0

    @property
    def cache_ttl(self) -> float:
        """Cache TTL in seconds."""
        return self.cache_ttl_ms / 1000.0

    @property
    def effective_short_circuit_threshold(self) -> int:
        """Suggestion count after which lower tiers are skipped."""
        if self.short_circuit_threshold is None:
            return self.max_suggestions
        return self.short_circuit_threshold

    def provider_priority(self) -> dict[str, int]:
        """Flatten tiers into a provider id -> priority index map (0 = highest)."""
        order: dict[str, int] = {}
        for tier in self.provider_priority_tiers:
            for provider_id in tier:
                order.setdefault(provider_id, len(order))
        return order

    def validate(self) -> "EngineConfig":
        """Check value ranges.

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: If any option is out of range
        """
        if self.max_suggestions < 1:
            raise ConfigurationError("max_suggestions must be >= 1")
        if self.per_provider_timeout_ms <= 0 or self.global_deadline_ms <= 0:
            raise ConfigurationError("timeouts must be positive")
        if self.cache_capacity < 1:
            raise ConfigurationError("cache_capacity must be >= 1")
        if self.cache_ttl_ms <= 0:
            raise ConfigurationError("cache_ttl_ms must be positive")
        if not 0.0 <= self.consensus_boost <= 1.0:
            raise ConfigurationError("consensus_boost must be within [0, 1]")
        if not 0.0 < self.learning_rate <= 1.0:
            raise ConfigurationError("learning_rate must be within (0, 1]")
        if not 0.0 <= self.fallback_confidence <= 1.0:
            raise ConfigurationError("fallback_confidence must be within [0, 1]")
        if not 0.0 <= self.default_provider_weight <= 1.0:
            raise ConfigurationError("default_provider_weight must be within [0, 1]")
        if self.context_window_size < 1:
            raise ConfigurationError("context_window_size must be >= 1")
        if self.short_circuit_threshold is not None and self.short_circuit_threshold < 1:
            raise ConfigurationError("short_circuit_threshold must be >= 1")

        if not self.provider_priority_tiers or not any(self.provider_priority_tiers):
            raise ConfigurationError("provider_priority_tiers must name at least one provider")
        seen: set[str] = set()
        for tier in self.provider_priority_tiers:
            for provider_id in tier:
                if provider_id in seen:
                    raise ConfigurationError(
                        f"Provider '{provider_id}' appears in more than one tier"
                    )
                seen.add(provider_id)
        return self

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration from environment variables.

        Environment variables:
        - SUGGEST_MAX_SUGGESTIONS: Maximum suggestions returned
        - SUGGEST_PROVIDER_TIMEOUT_MS: Per-provider timeout
        - SUGGEST_GLOBAL_DEADLINE_MS: Whole-request deadline
        - SUGGEST_CACHE_CAPACITY / SUGGEST_CACHE_TTL_MS: Result cache bounds
        - SUGGEST_CONSENSUS_BOOST: Cross-provider agreement boost
        - SUGGEST_LEARNING_RATE: EMA learning rate for provider weights
        - SUGGEST_PROVIDER_TIERS: Tiers as "neural,personality;pattern"
        - SUGGEST_SHORT_CIRCUIT: true/false
        - SUGGEST_SHORT_CIRCUIT_THRESHOLD: Count that stops lower tiers
        - SUGGEST_LLM_PROVIDER / SUGGEST_LLM_MODEL / SUGGEST_LLM_API_KEY
          (falls back to GROQ_API_KEY)
        - SUGGEST_STORE_PROVIDER / SUGGEST_STORE_URL / SUGGEST_STORE_COLLECTION
        """
        tiers_env = os.getenv("SUGGEST_PROVIDER_TIERS")
        if tiers_env:
            tiers = [
                [p.strip() for p in tier.split(",") if p.strip()]
                for tier in tiers_env.split(";")
            ]
            tiers = [tier for tier in tiers if tier]
        else:
            tiers = [list(tier) for tier in DEFAULT_PROVIDER_TIERS]

        threshold_env = os.getenv("SUGGEST_SHORT_CIRCUIT_THRESHOLD")

        return cls(
            max_suggestions=int(os.getenv("SUGGEST_MAX_SUGGESTIONS", "5")),
            per_provider_timeout_ms=int(os.getenv("SUGGEST_PROVIDER_TIMEOUT_MS", "1500")),
            global_deadline_ms=int(os.getenv("SUGGEST_GLOBAL_DEADLINE_MS", "2000")),
            cache_capacity=int(os.getenv("SUGGEST_CACHE_CAPACITY", "500")),
            cache_ttl_ms=int(os.getenv("SUGGEST_CACHE_TTL_MS", "300000")),
            consensus_boost=float(os.getenv("SUGGEST_CONSENSUS_BOOST", "0.1")),
            learning_rate=float(os.getenv("SUGGEST_LEARNING_RATE", "0.05")),
            provider_priority_tiers=tiers,
            short_circuit_enabled=os.getenv(
                "SUGGEST_SHORT_CIRCUIT", "false"
            ).lower() == "true",
            short_circuit_threshold=int(threshold_env) if threshold_env else None,
            llm=LLMConfig(
                provider=os.getenv("SUGGEST_LLM_PROVIDER", "groq"),  # type: ignore
                model=os.getenv("SUGGEST_LLM_MODEL", "llama-3.1-8b-instant"),
                api_key=os.getenv("SUGGEST_LLM_API_KEY") or os.getenv("GROQ_API_KEY"),
                base_url=os.getenv("SUGGEST_LLM_BASE_URL"),
            ),
            store=StoreConfig(
                provider=os.getenv("SUGGEST_STORE_PROVIDER", "in_memory"),  # type: ignore
                url=os.getenv("SUGGEST_STORE_URL", "http://localhost:6333"),
                api_key=os.getenv("SUGGEST_STORE_API_KEY"),
                collection=os.getenv("SUGGEST_STORE_COLLECTION", "suggestion_engine_kv"),
            ),
        )

    @classmethod
    def default(cls) -> "EngineConfig":
        """Create a default configuration (same as no-arg constructor)."""
        return cls()
