"""Lightweight heuristics deriving topic, mood, formality and phase.

These are deliberately cheap keyword rules; they run on every append and
must never call out to a model.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from suggestion_engine.core.types import (
    ConversationMessage,
    ConversationMood,
    ConversationPhase,
    clamp,
)


TOPIC_KEYWORDS: dict[str, tuple[str, ...]] = {
    "business": ("business", "meeting", "contract", "invoice", "client", "deadline"),
    "technology": ("technology", "software", "computer", "app", "server", "code"),
    "health": ("health", "doctor", "hospital", "medicine", "pain", "pharmacy"),
    "education": ("education", "school", "class", "teacher", "exam", "study"),
    "travel": ("travel", "airport", "hotel", "train", "ticket", "station"),
    "food": ("food", "restaurant", "menu", "dinner", "lunch", "breakfast"),
}

MOOD_KEYWORDS: dict[ConversationMood, tuple[str, ...]] = {
    ConversationMood.PROFESSIONAL: (
        "regards", "meeting", "proposal", "contract", "schedule", "agenda", "sir", "madam",
    ),
    ConversationMood.FRIENDLY: (
        "hello", "hi", "hey", "thanks", "great", "love", "awesome", "friend",
    ),
    ConversationMood.ANALYTICAL: (
        "analysis", "data", "because", "therefore", "compare", "percent", "metric",
    ),
    ConversationMood.EMOTIONAL: (
        "sad", "happy", "miss", "sorry", "feel", "afraid", "excited",
    ),
    ConversationMood.TENSE: (
        "angry", "unacceptable", "terrible", "awful", "hate", "complaint", "wrong",
    ),
    ConversationMood.COLLABORATIVE: (
        "together", "we could", "let's", "shall we", "agree", "team",
    ),
}

FORMAL_MARKERS = (
    "please", "would you", "could you", "kindly", "regards", "sincerely",
    "sir", "madam", "mr.", "mrs.", "ms.", "dear",
)
INFORMAL_MARKERS = (
    "hey", "yeah", "gonna", "wanna", "lol", "cool", "yo", "dude", "btw", "!",
)
CLOSING_MARKERS = ("bye", "goodbye", "see you", "take care", "good night", "adiós", "adieu")


_WORD = re.compile(r"[\w']+")


def _words(lowered: str) -> set[str]:
    return set(_WORD.findall(lowered))


def _has(marker: str, lowered: str, words: set[str]) -> bool:
    # Single words match whole words only ("yo" must not match "you")
    if _WORD.fullmatch(marker):
        return marker in words
    return marker in lowered


def detect_topic(messages: Sequence[ConversationMessage]) -> str:
    """Most frequent keyword topic across the window, or "general"."""
    counts: dict[str, int] = {}
    for message in messages:
        lowered = message.text.lower()
        words = _words(lowered)
        for topic, keywords in TOPIC_KEYWORDS.items():
            hits = sum(1 for kw in keywords if _has(kw, lowered, words))
            if hits:
                counts[topic] = counts.get(topic, 0) + hits

    if not counts:
        return "general"
    # Ties resolve alphabetically for determinism
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[0][0]


def detect_mood(messages: Sequence[ConversationMessage]) -> ConversationMood:
    """Keyword-scored mood, weighting recent messages higher."""
    scores: dict[ConversationMood, float] = {}
    total = len(messages)
    for index, message in enumerate(messages):
        recency = (index + 1) / total
        lowered = message.text.lower()
        words = _words(lowered)
        for mood, keywords in MOOD_KEYWORDS.items():
            for kw in keywords:
                if _has(kw, lowered, words):
                    scores[mood] = scores.get(mood, 0.0) + recency

    if not scores:
        return ConversationMood.NEUTRAL
    return sorted(scores.items(), key=lambda item: (-item[1], item[0].value))[0][0]


def estimate_formality(messages: Sequence[ConversationMessage]) -> float:
    """Formality in [0, 1]; 0.5 when there is no signal."""
    formal = 0
    informal = 0
    for message in messages:
        lowered = message.text.lower()
        words = _words(lowered)
        formal += sum(1 for marker in FORMAL_MARKERS if _has(marker, lowered, words))
        informal += sum(1 for marker in INFORMAL_MARKERS if _has(marker, lowered, words))

    if formal == informal == 0:
        return 0.5
    return clamp(0.5 + 0.5 * (formal - informal) / (formal + informal))


def detect_phase(messages: Sequence[ConversationMessage], capacity: int) -> ConversationPhase:
    """Phase from window fill level, with explicit closings taking priority."""
    if not messages:
        return ConversationPhase.OPENING

    last = messages[-1].text.lower()
    if any(marker in last for marker in CLOSING_MARKERS):
        return ConversationPhase.CLOSING

    fill = len(messages) / max(capacity, 1)
    if len(messages) <= 2:
        return ConversationPhase.OPENING
    if fill < 0.5:
        return ConversationPhase.BUILDING
    if fill < 0.9:
        return ConversationPhase.PEAK
    return ConversationPhase.RESOLUTION
