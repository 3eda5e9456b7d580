"""Suggestion engine: the pipeline wired together.

    request
      │
      ▼
    Context Window ── append (complete input only), begin generation
      │
      ▼
    Result Cache ── get-or-compute, single-flight per key
      │ miss
      ▼
    Profile Store + Alignment Analyzer ── weights, personality fit
      │
      ▼
    Provider Gateway ── tiered fan-out, timeouts, fail-open
      │
      ▼
    Aggregator ── normalize, dedupe, rank, fallback
      │
      ▼
    generation check ── stale results flagged, not committed

Every component is injected; nothing is process-global.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from suggestion_engine.cache import ResultCache
from suggestion_engine.config import EngineConfig
from suggestion_engine.conversation import ContextWindowConfig, ContextWindowManager
from suggestion_engine.core.types import (
    AggregatedResult,
    ContextSnapshot,
    ConversationMessage,
    Suggestion,
)
from suggestion_engine.llm import LLMProvider, create_llm
from suggestion_engine.orchestration import CircuitBreakerConfig, ProviderGateway
from suggestion_engine.persistence import KeyValueStore, create_store
from suggestion_engine.personality import AlignmentScore, PersonalityAlignmentAnalyzer
from suggestion_engine.profiles import ProfileStore, UserProfile
from suggestion_engine.providers import (
    RuleBasedProvider,
    SuggestionPrompt,
    SuggestionProvider,
    default_providers,
)
from suggestion_engine.ranking import RankingConfig, SuggestionAggregator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionRequest:
    """One request for suggestions.

    Attributes:
        user_id: Requesting user
        conversation_id: Conversation the input belongs to
        text: Partial or complete input
        source_language: Language of the input
        target_language: Language suggestions should be in
        is_partial: True while the user is still typing (not added to the window)
        speaker: Who wrote the input ("user" or "partner")
        use_cache: Set False to force a fresh fan-out
    """

    user_id: str
    conversation_id: str
    text: str
    source_language: str = "en"
    target_language: str = "en"
    is_partial: bool = False
    speaker: str = "user"
    use_cache: bool = True


class SuggestionEngine:
    """Context-aware multi-provider suggestion engine.

    Usage:
        engine = SuggestionEngine(EngineConfig.from_env())

        result = await engine.suggest(SuggestionRequest(
            user_id="user-1",
            conversation_id="conv-1",
            text="Hello, how are you",
            target_language="es",
        ))
        print(result.top.text)

        await engine.record_feedback("user-1", result.top.provider_id, accepted=True)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        providers: list[SuggestionProvider] | None = None,
        *,
        llm: LLMProvider | None = None,
        store: KeyValueStore | None = None,
        context_manager: ContextWindowManager | None = None,
        profile_store: ProfileStore | None = None,
        cache: ResultCache | None = None,
        gateway: ProviderGateway | None = None,
        aggregator: SuggestionAggregator | None = None,
        analyzer: PersonalityAlignmentAnalyzer | None = None,
    ):
        self.config = (config or EngineConfig.default()).validate()
        config = self.config

        self._owns_store = store is None and config.store.provider != "in_memory"
        if store is None and self._owns_store:
            store = create_store(config.store)
        self.store = store

        if providers is None and gateway is None:
            llm = llm or create_llm(config.llm)
            providers = default_providers(
                llm,
                temperature=config.llm.temperature,
                max_tokens=config.llm.max_tokens,
                fallback_confidence=config.fallback_confidence,
            )

        self.context = context_manager or ContextWindowManager(
            ContextWindowConfig(
                window_size=config.context_window_size,
                timeout_seconds=config.conversation_timeout_seconds,
                max_conversations=config.max_conversations,
            )
        )
        self.profiles = profile_store or ProfileStore(
            learning_rate=config.learning_rate,
            default_weight=config.default_provider_weight,
            max_profiles=config.max_profiles,
            backend=store,
        )
        self.cache = cache or ResultCache(
            capacity=config.cache_capacity,
            ttl_seconds=config.cache_ttl,
            backend=store,
        )
        self.gateway = gateway or ProviderGateway(
            providers,
            short_circuit_enabled=config.short_circuit_enabled,
            short_circuit_threshold=config.effective_short_circuit_threshold,
            circuit_breaker_config=(
                CircuitBreakerConfig(
                    failure_threshold=config.circuit_failure_threshold,
                    reset_timeout_seconds=config.circuit_reset_seconds,
                    auth_cooldown_seconds=config.circuit_auth_cooldown_seconds,
                )
                if config.circuit_breaker_enabled
                else None
            ),
        )

        fallback = self.gateway.get_provider(RuleBasedProvider.provider_id)
        if not isinstance(fallback, RuleBasedProvider):
            fallback = RuleBasedProvider(confidence=config.fallback_confidence)
        self.aggregator = aggregator or SuggestionAggregator(
            RankingConfig(
                max_suggestions=config.max_suggestions,
                consensus_boost=config.consensus_boost,
                context_weight=config.context_weight,
                personality_boost=config.personality_boost,
                alignment_threshold=config.alignment_threshold,
                default_weight=config.default_provider_weight,
                fallback_confidence=config.fallback_confidence,
            ),
            fallback=fallback,
        )
        self.analyzer = analyzer or PersonalityAlignmentAnalyzer()

        self._priority = config.provider_priority()
        self._latest: OrderedDict[str, AggregatedResult] = OrderedDict()
        self._stats = {
            "requests": 0,
            "fan_outs": 0,
            "superseded": 0,
            "fallbacks": 0,
            "feedback": 0,
        }

        logger.info(
            f"Suggestion engine ready with providers {self.gateway.provider_ids}, "
            f"tiers {config.provider_priority_tiers}"
        )

    # =========================================================================
    # Suggestions
    # =========================================================================

    async def suggest(self, request: SuggestionRequest) -> AggregatedResult:
        """Get ranked suggestions for a request.

        Never raises for provider, cache or persistence failures: the worst
        case is a single rule-based fallback suggestion.

        Returns:
            AggregatedResult; ``superseded`` is True when a newer request for
            the same conversation started while this one was running.
        """
        self._stats["requests"] += 1
        conversation_id = request.conversation_id

        if not request.is_partial and request.text.strip():
            await self.context.append(
                conversation_id,
                ConversationMessage(
                    text=request.text,
                    language=request.source_language,
                    speaker=request.speaker,
                ),
            )
        generation = await self.context.begin_request(conversation_id)

        async def compute() -> AggregatedResult:
            return await self._compute(request, generation)

        if request.use_cache:
            key = ResultCache.make_key(
                request.user_id, conversation_id, request.text, request.target_language
            )
            result = await self.cache.get_or_compute(key, compute)
        else:
            result = await compute()

        if result.is_fallback:
            self._stats["fallbacks"] += 1

        if not self.context.is_current(conversation_id, generation):
            self._stats["superseded"] += 1
            logger.debug(
                f"Discarding stale result for {conversation_id} "
                f"(generation {generation}, current {self.context.current_generation(conversation_id)})"
            )
            return dataclasses.replace(result, superseded=True)

        self._commit(conversation_id, result)
        return result

    async def _compute(self, request: SuggestionRequest, generation: int) -> AggregatedResult:
        """Run the uncached pipeline for one request."""
        self._stats["fan_outs"] += 1
        started = time.perf_counter()

        snapshot = await self.context.snapshot(request.conversation_id)
        profile = await self.profiles.get_or_create(request.user_id)
        alignment = self.analyzer.align(profile, snapshot)
        prompt = self.build_prompt(request, profile)

        fan_out = await self.gateway.fan_out(
            self.config.provider_priority_tiers,
            prompt,
            snapshot,
            per_call_timeout=self.config.per_provider_timeout,
            deadline=self.config.global_deadline,
        )

        result = self.aggregator.aggregate(
            fan_out.suggestions_by_provider(),
            snapshot,
            weights=profile.provider_weights,
            alignment=alignment.score,
            priority=self._priority,
            prompt=prompt,
        )
        result = dataclasses.replace(
            result,
            provider_errors=fan_out.errors(),
            skipped_providers=tuple(fan_out.skipped),
            generation=generation,
        )

        logger.debug(
            f"Computed {len(result.suggestions)} suggestions for {request.conversation_id} "
            f"in {(time.perf_counter() - started) * 1000:.0f}ms "
            f"(errors={result.provider_errors}, skipped={list(result.skipped_providers)})"
        )
        return result

    def build_prompt(self, request: SuggestionRequest, profile: UserProfile) -> SuggestionPrompt:
        """Combine a request with the user's learned profile."""
        return SuggestionPrompt(
            text=request.text,
            source_language=request.source_language,
            target_language=request.target_language,
            is_partial=request.is_partial,
            user_id=request.user_id,
            personality_type=profile.personality_type,
            formality=profile.formality,
            pattern_affinity=profile.pattern_affinity,
            proficiency=profile.proficiency(request.source_language),
            max_suggestions=self.config.max_suggestions,
        )

    def _commit(self, conversation_id: str, result: AggregatedResult) -> None:
        self._latest[conversation_id] = result
        self._latest.move_to_end(conversation_id)
        while len(self._latest) > self.config.max_conversations:
            self._latest.popitem(last=False)

    def latest_result(self, conversation_id: str) -> AggregatedResult | None:
        """Most recent non-superseded result for a conversation."""
        return self._latest.get(conversation_id)

    async def analyze_alignment(self, user_id: str, conversation_id: str) -> AlignmentScore:
        """Personality alignment of a user with a conversation right now."""
        snapshot: ContextSnapshot = await self.context.snapshot(conversation_id)
        profile = await self.profiles.get_or_create(user_id)
        return self.analyzer.align(profile, snapshot)

    # =========================================================================
    # Feedback
    # =========================================================================

    async def record_feedback(self, user_id: str, provider_id: str, accepted: bool) -> float:
        """Learn from a user accepting or dismissing a provider's suggestion.

        Returns:
            The provider's new weight for this user
        """
        self._stats["feedback"] += 1
        weight = await self.profiles.update(user_id, provider_id, accepted)
        if provider_id == "pattern":
            await self.profiles.update_pattern_affinity(user_id, accepted)
        return weight

    async def record_suggestion_feedback(
        self,
        user_id: str,
        suggestion: Suggestion,
        accepted: bool,
    ) -> dict[str, float]:
        """Apply feedback to every provider that proposed a merged suggestion."""
        providers = suggestion.metadata.get("providers") or [suggestion.provider_id]
        return {
            provider_id: await self.record_feedback(user_id, provider_id, accepted)
            for provider_id in providers
            if provider_id
        }

    # =========================================================================
    # Maintenance / lifecycle
    # =========================================================================

    def maintenance(self) -> dict[str, int]:
        """Periodic sweep: expired cache entries and idle conversations."""
        swept = self.cache.sweep_expired()
        expired = self.context.cleanup_expired(force=True)
        for conversation_id in expired:
            self._latest.pop(conversation_id, None)
        if swept or expired:
            logger.info(
                f"Maintenance removed {swept} cache entries and {len(expired)} conversations"
            )
        return {"cache_entries": swept, "conversations": len(expired)}

    async def close(self) -> None:
        """Close providers and any store the engine created."""
        await self.gateway.close()
        if self._owns_store and self.store is not None:
            await self.store.close()
        logger.info("Suggestion engine closed")

    async def __aenter__(self) -> SuggestionEngine:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def get_stats(self) -> dict[str, Any]:
        """Get engine statistics."""
        return {
            **self._stats,
            "cache": self.cache.get_stats(),
            "gateway": self.gateway.get_stats(),
            "aggregator": self.aggregator.get_stats(),
            "profiles": self.profiles.get_stats(),
            "conversations": self.context.get_stats(),
        }
