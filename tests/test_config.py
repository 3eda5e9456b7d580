"""Tests for EngineConfig."""

import pytest

from suggestion_engine.config import (
    DEFAULT_PROVIDER_TIERS,
    EngineConfig,
    LLMConfig,
    StoreConfig,
)
from suggestion_engine.exceptions import ConfigurationError


class TestEngineConfigDefaults:
    """Tests for default configuration values."""

    def test_defaults(self):
        """Test the enumerated surface defaults."""
        config = EngineConfig()

        assert config.max_suggestions == 5
        assert config.per_provider_timeout_ms == 1500
        assert config.global_deadline_ms == 2000
        assert config.cache_capacity == 500
        assert config.cache_ttl_ms == 300_000
        assert config.consensus_boost == 0.1
        assert config.learning_rate == 0.05
        assert config.provider_priority_tiers == DEFAULT_PROVIDER_TIERS
        assert config.short_circuit_enabled is False

    def test_default_tiers_not_shared(self):
        """Each config gets its own copy of the tiers."""
        a = EngineConfig()
        b = EngineConfig()
        a.provider_priority_tiers[0].append("extra")
        assert "extra" not in b.provider_priority_tiers[0]
        assert "extra" not in DEFAULT_PROVIDER_TIERS[0]

    def test_seconds_properties(self):
        """Millisecond options convert to seconds."""
        config = EngineConfig(per_provider_timeout_ms=250, global_deadline_ms=750, cache_ttl_ms=1000)
        assert config.per_provider_timeout == 0.25
        assert config.global_deadline == 0.75
        assert config.cache_ttl == 1.0

    def test_short_circuit_threshold_defaults_to_max(self):
        """Without an explicit threshold, max_suggestions is used."""
        assert EngineConfig(max_suggestions=3).effective_short_circuit_threshold == 3
        assert EngineConfig(short_circuit_threshold=2).effective_short_circuit_threshold == 2

    def test_provider_priority(self):
        """Tiers flatten into a priority index map."""
        config = EngineConfig(provider_priority_tiers=[["a", "b"], ["c"]])
        assert config.provider_priority() == {"a": 0, "b": 1, "c": 2}

    def test_default_factory(self):
        """default() matches the no-arg constructor."""
        assert EngineConfig.default() == EngineConfig()


class TestEngineConfigValidation:
    """Tests for validate()."""

    def test_valid_config_returns_self(self):
        config = EngineConfig()
        assert config.validate() is config

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_suggestions": 0},
            {"per_provider_timeout_ms": 0},
            {"global_deadline_ms": -1},
            {"cache_capacity": 0},
            {"cache_ttl_ms": 0},
            {"consensus_boost": 1.5},
            {"learning_rate": 0.0},
            {"fallback_confidence": 2.0},
            {"context_window_size": 0},
            {"short_circuit_threshold": 0},
            {"provider_priority_tiers": []},
            {"provider_priority_tiers": [[]]},
        ],
    )
    def test_invalid_values(self, kwargs):
        """Out-of-range options raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            EngineConfig(**kwargs).validate()

    def test_duplicate_provider_across_tiers(self):
        """A provider may appear in only one tier."""
        config = EngineConfig(provider_priority_tiers=[["neural"], ["neural", "pattern"]])
        with pytest.raises(ConfigurationError, match="neural"):
            config.validate()


class TestEngineConfigFromEnv:
    """Tests for from_env()."""

    def test_from_env(self, monkeypatch):
        """Environment variables override defaults."""
        monkeypatch.setenv("SUGGEST_MAX_SUGGESTIONS", "3")
        monkeypatch.setenv("SUGGEST_PROVIDER_TIMEOUT_MS", "500")
        monkeypatch.setenv("SUGGEST_PROVIDER_TIERS", "neural,pattern; rule_based")
        monkeypatch.setenv("SUGGEST_SHORT_CIRCUIT", "true")
        monkeypatch.setenv("SUGGEST_SHORT_CIRCUIT_THRESHOLD", "2")
        monkeypatch.setenv("SUGGEST_LLM_PROVIDER", "mock")
        monkeypatch.setenv("SUGGEST_STORE_PROVIDER", "qdrant")
        monkeypatch.setenv("SUGGEST_STORE_URL", "http://qdrant:6333")

        config = EngineConfig.from_env()

        assert config.max_suggestions == 3
        assert config.per_provider_timeout_ms == 500
        assert config.provider_priority_tiers == [["neural", "pattern"], ["rule_based"]]
        assert config.short_circuit_enabled is True
        assert config.short_circuit_threshold == 2
        assert config.llm.provider == "mock"
        assert config.store.provider == "qdrant"
        assert config.store.url == "http://qdrant:6333"

    def test_groq_key_fallback(self, monkeypatch):
        """GROQ_API_KEY is used when no engine-specific key is set."""
        monkeypatch.delenv("SUGGEST_LLM_API_KEY", raising=False)
        monkeypatch.setenv("GROQ_API_KEY", "gsk-test")
        assert EngineConfig.from_env().llm.api_key == "gsk-test"

    def test_nested_defaults(self):
        assert LLMConfig().model == "llama-3.1-8b-instant"
        assert StoreConfig().provider == "in_memory"
