"""Phrase-pattern provider.

Completes input from a per-language-pair bank of common phrases. The
bank learns from usage: accepted completions become more frequent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from suggestion_engine.core.types import (
    ContextSnapshot,
    Suggestion,
    SuggestionSource,
    clamp,
    normalize_text,
)

from .base import SuggestionPrompt, SuggestionProvider

logger = logging.getLogger(__name__)


@dataclass
class PhrasePattern:
    """A trigger phrase and the completion it usually leads to.

    Attributes:
        trigger: Normalized text that activates the pattern
        completion: Suggested completion or translation
        frequency: How often this completion is used (0.0-1.0)
        context_score: Relevance reported for the suggestion
        alternatives: Other acceptable completions
    """

    trigger: str
    completion: str
    frequency: float = 0.5
    context_score: float = 0.6
    alternatives: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.trigger = normalize_text(self.trigger)
        self.frequency = clamp(self.frequency)

    def match_strength(self, text: str) -> float:
        """How well normalized input matches this pattern (0 = no match)."""
        if not text:
            return 0.0
        if text == self.trigger:
            return 1.0
        if self.trigger.startswith(text):
            return 0.9
        if text.startswith(self.trigger):
            return 0.8
        if self.trigger in text or text in self.trigger:
            return 0.6
        return 0.0


class PhrasePatternBank:
    """Phrase patterns for one language pair."""

    def __init__(self, language_pair: str, patterns: list[PhrasePattern] | None = None):
        self.language_pair = language_pair
        self._patterns: dict[str, list[PhrasePattern]] = {}
        for pattern in patterns or []:
            self.add(pattern)

    def add(self, pattern: PhrasePattern) -> None:
        self._patterns.setdefault(pattern.trigger, []).append(pattern)

    def find_matches(self, text: str, limit: int = 5) -> list[PhrasePattern]:
        """Patterns matching the input, best first."""
        normalized = normalize_text(text).rstrip("?!.,")
        scored = []
        for patterns in self._patterns.values():
            for pattern in patterns:
                strength = pattern.match_strength(normalized)
                if strength > 0:
                    scored.append((strength, pattern))
        scored.sort(key=lambda item: (-item[0], -item[1].frequency, item[1].completion))
        return [pattern for _, pattern in scored[:limit]]

    def record_usage(self, trigger: str, completion: str, accepted: bool) -> PhrasePattern:
        """Learn from a used completion.

        Accepted completions gain frequency faster than merely shown ones.
        Unknown completions are added to the bank.
        """
        key = normalize_text(trigger)
        for pattern in self._patterns.get(key, []):
            if pattern.completion == completion:
                pattern.frequency = clamp(pattern.frequency + (0.1 if accepted else 0.05))
                return pattern

        pattern = PhrasePattern(trigger=key, completion=completion, frequency=0.3)
        self.add(pattern)
        logger.debug(f"Learned new {self.language_pair} pattern for '{key}'")
        return pattern

    def __len__(self) -> int:
        return sum(len(patterns) for patterns in self._patterns.values())


def _bank(language_pair: str, entries: list[tuple[str, str, float]]) -> PhrasePatternBank:
    return PhrasePatternBank(
        language_pair,
        [PhrasePattern(trigger, completion, frequency) for trigger, completion, frequency in entries],
    )


def default_pattern_banks() -> dict[str, PhrasePatternBank]:
    """Built-in banks of everyday phrases."""
    return {
        "en_es": _bank("en_es", [
            ("hello, how are you", "Hola, ¿cómo estás?", 0.9),
            ("good morning", "Buenos días", 0.85),
            ("thank you very much", "Muchas gracias", 0.85),
            ("where is the bathroom", "¿Dónde está el baño?", 0.8),
            ("how much does it cost", "¿Cuánto cuesta?", 0.8),
            ("nice to meet you", "Mucho gusto", 0.75),
            ("see you later", "Hasta luego", 0.75),
        ]),
        "en_fr": _bank("en_fr", [
            ("hello, how are you", "Bonjour, comment allez-vous ?", 0.9),
            ("good morning", "Bonjour", 0.85),
            ("thank you very much", "Merci beaucoup", 0.85),
            ("where is the bathroom", "Où sont les toilettes ?", 0.8),
            ("see you later", "À plus tard", 0.75),
        ]),
        "en_en": _bank("en_en", [
            ("how are", "How are you doing today?", 0.8),
            ("thank you", "Thank you so much for your help!", 0.75),
            ("could you", "Could you please help me with this?", 0.7),
            ("let me know", "Let me know if you have any questions.", 0.7),
            ("see you", "See you soon!", 0.65),
        ]),
        "es_en": _bank("es_en", [
            ("hola, cómo estás", "Hello, how are you?", 0.9),
            ("buenos días", "Good morning", 0.85),
            ("muchas gracias", "Thank you very much", 0.85),
        ]),
    }


class PatternProvider(SuggestionProvider):
    """Completes input from phrase pattern banks.

    Confidence = pattern frequency × the user's pattern affinity.
    """

    provider_id = "pattern"
    source = SuggestionSource.PATTERN

    def __init__(self, banks: dict[str, PhrasePatternBank] | None = None):
        self.banks = banks if banks is not None else default_pattern_banks()

    def bank_for(self, language_pair: str) -> PhrasePatternBank:
        bank = self.banks.get(language_pair)
        if bank is None:
            bank = PhrasePatternBank(language_pair)
            self.banks[language_pair] = bank
        return bank

    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        bank = self.banks.get(prompt.language_pair)
        if bank is None:
            return []

        return [
            Suggestion(
                text=pattern.completion,
                confidence=pattern.frequency * prompt.pattern_affinity,
                source=self.source,
                reasoning="Pattern-based completion from common phrases",
                context_relevance=pattern.context_score,
                alternatives=pattern.alternatives,
                provider_id=self.provider_id,
                metadata={"trigger": pattern.trigger, "frequency": pattern.frequency},
            )
            for pattern in bank.find_matches(prompt.text, prompt.max_suggestions)
        ]
