"""Conversation context tracking.

This module provides the bounded rolling window kept per conversation and
the immutable snapshots derived from it.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Any

from suggestion_engine.core.types import (
    ContextSnapshot,
    ConversationMessage,
    ConversationMood,
    ConversationPhase,
)

from .analysis import detect_mood, detect_phase, detect_topic, estimate_formality


class ConversationContext:
    """Rolling state for a single conversation.

    Only the ContextWindowManager mutates instances of this class, and it
    does so under a per-conversation lock.

    Attributes:
        conversation_id: The conversation ID
        messages: Recent messages, oldest first, at most ``capacity`` long
        capacity: Maximum messages to keep
        timeout_seconds: Idle seconds until the conversation expires
        topic: Detected topic
        tone: Detected mood
        formality: Estimated formality (0 casual .. 1 formal)
        phase: Detected conversation phase
        languages_used: Every language seen in the conversation
        generation: Request generation counter (monotonic)
        last_updated: Timestamp of last append or touch
    """

    def __init__(
        self,
        conversation_id: str,
        capacity: int = 10,
        timeout_seconds: int = 1800,
    ):
        self.conversation_id = conversation_id
        self.capacity = capacity
        self.timeout_seconds = timeout_seconds
        self.messages: deque[ConversationMessage] = deque(maxlen=capacity)

        self.topic = "general"
        self.tone = ConversationMood.NEUTRAL
        self.formality = 0.5
        self.phase = ConversationPhase.OPENING
        self.languages_used: set[str] = set()

        self.generation = 0
        self.last_updated = time.time()

    def add_message(self, message: ConversationMessage) -> None:
        """Append a message, dropping the oldest beyond capacity, and re-derive context."""
        self.messages.append(message)
        if message.language:
            self.languages_used.add(message.language)
        self._refresh()
        self.last_updated = time.time()

    def _refresh(self) -> None:
        window = list(self.messages)
        self.topic = detect_topic(window)
        self.tone = detect_mood(window)
        self.formality = estimate_formality(window)
        self.phase = detect_phase(window, self.capacity)

    def next_generation(self) -> int:
        """Start a new request generation."""
        self.generation += 1
        self.touch()
        return self.generation

    def snapshot(self) -> ContextSnapshot:
        """Immutable view of the current window."""
        return ContextSnapshot(
            conversation_id=self.conversation_id,
            recent_messages=tuple(self.messages),
            topic=self.topic,
            tone=self.tone,
            formality=self.formality,
            phase=self.phase,
            languages_used=frozenset(self.languages_used),
            generation=self.generation,
        )

    def is_expired(self) -> bool:
        """Check if conversation has timed out."""
        return time.time() - self.last_updated > self.timeout_seconds

    def touch(self) -> None:
        """Update last access time."""
        self.last_updated = time.time()

    def clear(self) -> None:
        """Clear the window but keep the generation counter monotonic."""
        self.messages.clear()
        self.languages_used = set()
        self._refresh()
        self.last_updated = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "conversation_id": self.conversation_id,
            "capacity": self.capacity,
            "timeout_seconds": self.timeout_seconds,
            "messages": [m.to_dict() for m in self.messages],
            "languages_used": sorted(self.languages_used),
            "generation": self.generation,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationContext:
        """Create from dictionary."""
        context = cls(
            conversation_id=data["conversation_id"],
            capacity=data.get("capacity", 10),
            timeout_seconds=data.get("timeout_seconds", 1800),
        )
        for raw in data.get("messages", []):
            context.messages.append(ConversationMessage.from_dict(raw))
        context.languages_used = set(data.get("languages_used", []))
        context.languages_used.update(m.language for m in context.messages if m.language)
        context.generation = data.get("generation", 0)
        context._refresh()
        context.last_updated = data.get("last_updated", time.time())
        return context
