"""Conversation context management for the suggestion engine.

This module keeps the bounded rolling window for each conversation:

- **ConversationContext**: Recent messages, topic, tone, languages used
- **ContextWindowManager**: Owns all contexts, serializes appends per
  conversation, and hands out request generations
- **analysis**: Keyword heuristics for topic, mood, formality and phase

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                    Context Window Manager                        │
    │                                                                  │
    │  Message → [Lock conv] → [Append + trim to N] → [Snapshot]      │
    │                                                                  │
    │  - Oldest message evicted on overflow                            │
    │  - Per-conversation lock, cross-conversation parallel            │
    │  - Generation counter for last-write-wins cancellation           │
    │  - Idle expiry and LRU bound on tracked conversations            │
    └─────────────────────────────────────────────────────────────────┘

Usage:
    from suggestion_engine.conversation import ContextWindowManager
    from suggestion_engine.core import ConversationMessage

    manager = ContextWindowManager()
    snapshot = await manager.append("conv-1", ConversationMessage("Hi", "en"))
"""

from .state import ConversationContext
from .manager import ContextWindowManager, ContextWindowConfig
from .analysis import detect_mood, detect_phase, detect_topic, estimate_formality

__all__ = [
    "ConversationContext",
    "ContextWindowManager",
    "ContextWindowConfig",
    "detect_mood",
    "detect_phase",
    "detect_topic",
    "estimate_formality",
]
