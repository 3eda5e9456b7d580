"""Suggestion aggregation and ranking.

Merges heterogeneous provider outputs into one ranked list:

1. normalized = confidence × provider reliability weight (default 1.0)
2. Deduplicate by normalized text. Text proposed by two or more distinct
   providers gets a one-off consensus boost, capped at 1.0. The merged
   entry keeps the longest reasoning and the union of alternatives.
3. blended = normalized + α·context_relevance + personality boost, where
   the boost applies only to personality-sourced entries when the
   alignment score reaches the threshold.
4. Sort by blended score descending; ties by provider priority, then text.
5. Truncate to max_suggestions. An empty ranking is replaced by exactly
   one rule-based fallback suggestion.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass, field

from suggestion_engine.core.types import (
    AggregatedResult,
    ContextSnapshot,
    Suggestion,
    SuggestionSource,
    clamp,
)
from suggestion_engine.exceptions import AggregationEmptyError
from suggestion_engine.providers import RuleBasedProvider, SuggestionPrompt

logger = logging.getLogger(__name__)

UNRANKED_PRIORITY = 1_000_000


@dataclass
class RankingConfig:
    """Ranking knobs.

    Attributes:
        max_suggestions: Results kept after sorting
        consensus_boost: Added once when ≥2 providers agree
        context_weight: α, weight of context relevance in the blended score
        personality_boost: Added to personality-sourced items when aligned
        alignment_threshold: Alignment score that enables the personality boost
        default_weight: Provider weight when the profile has none
        fallback_confidence: Confidence of the rule-based fallback suggestion
    """

    max_suggestions: int = 5
    consensus_boost: float = 0.1
    context_weight: float = 0.2
    personality_boost: float = 0.05
    alignment_threshold: float = 0.7
    default_weight: float = 1.0
    fallback_confidence: float = 0.5


@dataclass
class _Candidate:
    """A deduplicated suggestion being merged."""

    key: str
    representative: Suggestion
    confidence: float
    priority: int
    providers: set[str] = field(default_factory=set)
    sources: set[SuggestionSource] = field(default_factory=set)
    reasoning: str = ""
    alternatives: list[str] = field(default_factory=list)
    context_relevance: float = 0.0

    def absorb(self, suggestion: Suggestion, normalized: float, priority: int) -> None:
        better = (normalized, -priority) > (self.confidence, -self.priority)
        if better:
            self.representative = suggestion
        self.confidence = max(self.confidence, normalized)
        self.priority = min(self.priority, priority)
        self.providers.add(suggestion.provider_id)
        self.sources.add(suggestion.source)
        if len(suggestion.reasoning) > len(self.reasoning):
            self.reasoning = suggestion.reasoning
        for alt in suggestion.alternatives:
            if alt not in self.alternatives:
                self.alternatives.append(alt)
        self.context_relevance = max(self.context_relevance, suggestion.context_relevance)


@dataclass(frozen=True)
class RankedSuggestion:
    """A merged suggestion with its ranking score."""

    suggestion: Suggestion
    score: float
    priority: int
    providers: tuple[str, ...]


class SuggestionAggregator:
    """Merges provider outputs into an AggregatedResult.

    Usage:
        aggregator = SuggestionAggregator(RankingConfig(max_suggestions=5))
        result = aggregator.aggregate(
            outputs={"neural": [...], "pattern": [...]},
            snapshot=snapshot,
            weights=profile.provider_weights,
            alignment=0.8,
            priority={"neural": 0, "pattern": 1},
            prompt=prompt,
        )
    """

    def __init__(
        self,
        config: RankingConfig | None = None,
        fallback: RuleBasedProvider | None = None,
    ):
        self.config = config or RankingConfig()
        self.fallback = fallback or RuleBasedProvider(confidence=self.config.fallback_confidence)
        self._stats = {"aggregations": 0, "fallbacks": 0, "merged_duplicates": 0}

    def merge(
        self,
        outputs: dict[str, list[Suggestion]],
        weights: dict[str, float],
        priority: dict[str, int],
    ) -> list[_Candidate]:
        """Normalize confidences and deduplicate (steps 1-2)."""
        candidates: dict[str, _Candidate] = {}

        for provider_id, suggestions in outputs.items():
            weight = clamp(weights.get(provider_id, self.config.default_weight))
            provider_priority = priority.get(provider_id, UNRANKED_PRIORITY)

            for suggestion in suggestions:
                key = suggestion.normalized_text
                if not key:
                    continue
                if suggestion.provider_id != provider_id:
                    suggestion = dataclasses.replace(suggestion, provider_id=provider_id)
                normalized = clamp(suggestion.confidence * weight)

                candidate = candidates.get(key)
                if candidate is None:
                    candidate = _Candidate(
                        key=key,
                        representative=suggestion,
                        confidence=normalized,
                        priority=provider_priority,
                    )
                    candidates[key] = candidate
                else:
                    self._stats["merged_duplicates"] += 1
                candidate.absorb(suggestion, normalized, provider_priority)

        for candidate in candidates.values():
            if len(candidate.providers) >= 2:
                candidate.confidence = clamp(candidate.confidence + self.config.consensus_boost)

        return list(candidates.values())

    def score(self, candidate: _Candidate, alignment: float) -> float:
        """Blended score (step 3)."""
        blended = candidate.confidence + self.config.context_weight * candidate.context_relevance
        if (
            SuggestionSource.PERSONALITY in candidate.sources
            and alignment >= self.config.alignment_threshold
        ):
            blended += self.config.personality_boost
        return blended

    def rank(
        self,
        outputs: dict[str, list[Suggestion]],
        weights: dict[str, float],
        alignment: float,
        priority: dict[str, int],
    ) -> list[RankedSuggestion]:
        """Merge, score, sort and truncate (steps 1-5).

        Raises:
            AggregationEmptyError: If no provider produced a usable suggestion
        """
        candidates = self.merge(outputs, weights, priority)
        if not candidates:
            raise AggregationEmptyError("No provider produced a usable suggestion")

        scored = [(self.score(c, alignment), c) for c in candidates]
        scored.sort(key=lambda item: (-item[0], item[1].priority, item[1].representative.text))

        ranked = []
        for blended, candidate in scored[: self.config.max_suggestions]:
            text = candidate.representative.text
            merged = dataclasses.replace(
                candidate.representative,
                confidence=candidate.confidence,
                reasoning=candidate.reasoning,
                context_relevance=candidate.context_relevance,
                alternatives=tuple(alt for alt in candidate.alternatives if alt != text),
                metadata={
                    **candidate.representative.metadata,
                    "providers": sorted(candidate.providers),
                    "consensus": len(candidate.providers) >= 2,
                    "score": blended,
                },
            )
            ranked.append(
                RankedSuggestion(
                    suggestion=merged,
                    score=blended,
                    priority=candidate.priority,
                    providers=tuple(sorted(candidate.providers)),
                )
            )
        return ranked

    def aggregate(
        self,
        outputs: dict[str, list[Suggestion]],
        snapshot: ContextSnapshot,
        weights: dict[str, float],
        alignment: float,
        priority: dict[str, int],
        prompt: SuggestionPrompt,
    ) -> AggregatedResult:
        """Produce the final ranked result, falling back when nothing survived.

        Never raises AggregationEmptyError: an empty ranking becomes a
        single rule-based suggestion with overall confidence 0.0.
        """
        self._stats["aggregations"] += 1
        try:
            ranked = self.rank(outputs, weights, alignment, priority)
        except AggregationEmptyError:
            self._stats["fallbacks"] += 1
            logger.info(
                f"No provider output for conversation {snapshot.conversation_id}, "
                "using rule-based fallback"
            )
            suggestion = dataclasses.replace(
                self.fallback.fallback(prompt), confidence=self.config.fallback_confidence
            )
            return AggregatedResult(
                suggestions=(suggestion,),
                confidence=0.0,
                is_fallback=True,
                alignment=alignment,
                generation=snapshot.generation,
                created_at=time.time(),
            )

        suggestions = tuple(r.suggestion for r in ranked)
        return AggregatedResult(
            suggestions=suggestions,
            confidence=sum(s.confidence for s in suggestions) / len(suggestions),
            alignment=alignment,
            generation=snapshot.generation,
            created_at=time.time(),
        )

    def get_stats(self) -> dict[str, int]:
        return dict(self._stats)
