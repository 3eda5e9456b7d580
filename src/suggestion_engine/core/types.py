"""Core types shared across the suggestion pipeline.

These are plain value objects. Snapshots, suggestions and aggregated
results are frozen: once a result is cached it is replaced, never mutated.
"""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


_WHITESPACE = re.compile(r"\s+")


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a value into [low, high]."""
    return max(low, min(high, value))


def normalize_text(text: str) -> str:
    """Case- and whitespace-normalize text for deduplication and cache keys."""
    return _WHITESPACE.sub(" ", text).strip().casefold()


class SuggestionSource(str, Enum):
    """Which kind of backend produced a suggestion."""

    NEURAL = "neural"
    PERSONALITY = "personality"
    PATTERN = "pattern"
    PREDICTIVE = "predictive"
    RULE_BASED = "rule_based"


class ConversationMood(str, Enum):
    """Overall emotional tone of a conversation."""

    NEUTRAL = "neutral"
    COLLABORATIVE = "collaborative"
    TENSE = "tense"
    FRIENDLY = "friendly"
    PROFESSIONAL = "professional"
    EMOTIONAL = "emotional"
    ANALYTICAL = "analytical"


class PersonalityType(str, Enum):
    """Primary communication personality of a user."""

    PROFESSIONAL = "professional"
    CREATIVE = "creative"
    ACADEMIC = "academic"
    CASUAL = "casual"
    TECHNICAL = "technical"
    DIPLOMATIC = "diplomatic"
    ENERGETIC = "energetic"
    MINIMALIST = "minimalist"


class ConversationPhase(str, Enum):
    """Where a conversation is in its arc."""

    OPENING = "opening"
    BUILDING = "building"
    PEAK = "peak"
    RESOLUTION = "resolution"
    CLOSING = "closing"


@dataclass(frozen=True)
class ConversationMessage:
    """A single message in a conversation window.

    Attributes:
        text: Message text
        language: ISO language code the message was written in
        speaker: "user" or "partner"
        timestamp: Unix time the message was recorded
    """

    text: str
    language: str = "en"
    speaker: str = "user"
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "text": self.text,
            "language": self.language,
            "speaker": self.speaker,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationMessage:
        """Create from dictionary."""
        return cls(
            text=data.get("text", ""),
            language=data.get("language", "en"),
            speaker=data.get("speaker", "user"),
            timestamp=data.get("timestamp", time.time()),
        )


@dataclass(frozen=True)
class ContextSnapshot:
    """Immutable view of a conversation window handed to providers."""

    conversation_id: str
    recent_messages: tuple[ConversationMessage, ...] = ()
    topic: str = "general"
    tone: ConversationMood = ConversationMood.NEUTRAL
    formality: float = 0.5
    phase: ConversationPhase = ConversationPhase.OPENING
    languages_used: frozenset[str] = frozenset()
    generation: int = 0
    taken_at: float = field(default_factory=time.time)

    @classmethod
    def empty(cls, conversation_id: str) -> ContextSnapshot:
        """Snapshot for a conversation with no history yet."""
        return cls(conversation_id=conversation_id)

    @property
    def recent_texts(self) -> list[str]:
        return [m.text for m in self.recent_messages]

    def describe(self) -> str:
        """Render the snapshot as prompt context."""
        recent = " → ".join(self.recent_texts[-5:]) or "(none)"
        return (
            f"Current topic: {self.topic}\n"
            f"Conversation phase: {self.phase.value}\n"
            f"Emotional tone: {self.tone.value}\n"
            f"Formality: {self.formality:.2f}\n"
            f"Languages used: {', '.join(sorted(self.languages_used)) or 'unknown'}\n"
            f"Recent context: {recent}"
        )


@dataclass(frozen=True)
class Suggestion:
    """A candidate suggestion from one provider.

    Confidence and context relevance are clamped into [0, 1] on
    construction so no provider can break the range invariant.
    """

    text: str
    confidence: float
    source: SuggestionSource
    reasoning: str = ""
    context_relevance: float = 0.5
    alternatives: tuple[str, ...] = ()
    provider_id: str = ""
    created_at: float = field(default_factory=time.time)
    metadata: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp(float(self.confidence)))
        object.__setattr__(self, "context_relevance", clamp(float(self.context_relevance)))
        if not isinstance(self.alternatives, tuple):
            object.__setattr__(self, "alternatives", tuple(self.alternatives))
        if not isinstance(self.source, SuggestionSource):
            object.__setattr__(self, "source", SuggestionSource(self.source))

    @property
    def normalized_text(self) -> str:
        return normalize_text(self.text)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "text": self.text,
            "confidence": self.confidence,
            "source": self.source.value,
            "reasoning": self.reasoning,
            "context_relevance": self.context_relevance,
            "alternatives": list(self.alternatives),
            "provider_id": self.provider_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Suggestion:
        """Create from dictionary."""
        return cls(
            text=data["text"],
            confidence=data.get("confidence", 0.0),
            source=SuggestionSource(data.get("source", "rule_based")),
            reasoning=data.get("reasoning", ""),
            context_relevance=data.get("context_relevance", 0.5),
            alternatives=tuple(data.get("alternatives", ())),
            provider_id=data.get("provider_id", ""),
            created_at=data.get("created_at", time.time()),
        )


@dataclass(frozen=True)
class AggregatedResult:
    """Ranked, deduplicated output of one suggestion request.

    Attributes:
        suggestions: Ranked suggestions, never empty
        confidence: Mean confidence of returned items (0.0 when fallback-only)
        cache_key: Request fingerprint
        expires_at: Unix time after which the cached copy is stale
        is_fallback: True when only the rule-based fallback produced output
        provider_errors: Provider id -> error kind value for failed calls
        skipped_providers: Providers skipped by short-circuit or circuit breaker
        alignment: Personality alignment score used for ranking
        generation: Request generation this result was computed for
        superseded: True when a newer request for the conversation exists
    """

    suggestions: tuple[Suggestion, ...]
    confidence: float
    cache_key: str = ""
    expires_at: float = 0.0
    is_fallback: bool = False
    provider_errors: dict[str, str] = field(default_factory=dict, compare=False)
    skipped_providers: tuple[str, ...] = ()
    alignment: float = 0.0
    generation: int = 0
    superseded: bool = False
    created_at: float = field(default_factory=time.time)

    @property
    def top(self) -> Suggestion:
        return self.suggestions[0]

    def is_expired(self, now: float | None = None) -> bool:
        return (now or time.time()) >= self.expires_at

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "suggestions": [s.to_dict() for s in self.suggestions],
            "confidence": self.confidence,
            "cache_key": self.cache_key,
            "expires_at": self.expires_at,
            "is_fallback": self.is_fallback,
            "provider_errors": dict(self.provider_errors),
            "skipped_providers": list(self.skipped_providers),
            "alignment": self.alignment,
            "generation": self.generation,
            "superseded": self.superseded,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AggregatedResult:
        """Create from dictionary."""
        return cls(
            suggestions=tuple(Suggestion.from_dict(s) for s in data.get("suggestions", [])),
            confidence=data.get("confidence", 0.0),
            cache_key=data.get("cache_key", ""),
            expires_at=data.get("expires_at", 0.0),
            is_fallback=data.get("is_fallback", False),
            provider_errors=dict(data.get("provider_errors", {})),
            skipped_providers=tuple(data.get("skipped_providers", ())),
            alignment=data.get("alignment", 0.0),
            generation=data.get("generation", 0),
            superseded=data.get("superseded", False),
            created_at=data.get("created_at", time.time()),
        )
