"""Core value types for the suggestion engine."""

from suggestion_engine.core.types import (
    AggregatedResult,
    ContextSnapshot,
    ConversationMessage,
    ConversationMood,
    ConversationPhase,
    PersonalityType,
    Suggestion,
    SuggestionSource,
    clamp,
    normalize_text,
)

__all__ = [
    "AggregatedResult",
    "ContextSnapshot",
    "ConversationMessage",
    "ConversationMood",
    "ConversationPhase",
    "PersonalityType",
    "Suggestion",
    "SuggestionSource",
    "clamp",
    "normalize_text",
]
