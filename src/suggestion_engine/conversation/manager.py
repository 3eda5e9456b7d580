"""Context window manager for handling many concurrent conversations.

This module owns every ConversationContext. Appends to one conversation
are serialized through a per-conversation asyncio.Lock; different
conversations never contend.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

from suggestion_engine.core.types import ContextSnapshot, ConversationMessage

from .state import ConversationContext

logger = logging.getLogger(__name__)


@dataclass
class ContextWindowConfig:
    """Configuration for the context window manager.

    Attributes:
        window_size: Messages kept per conversation
        timeout_seconds: Idle time before a conversation expires
        cleanup_interval: Minimum seconds between expiry sweeps
        max_conversations: Tracked conversations before LRU eviction (0 = unlimited)
    """

    window_size: int = 10
    timeout_seconds: int = 1800
    cleanup_interval: int = 60
    max_conversations: int = 1000


class ContextWindowManager:
    """Manages bounded conversation windows.

    Usage:
        manager = ContextWindowManager()

        snapshot = await manager.append(
            "conv-1", ConversationMessage(text="Hello", language="en")
        )

        generation = await manager.begin_request("conv-1")
        ...
        if manager.is_current("conv-1", generation):
            commit(result)
    """

    def __init__(self, config: ContextWindowConfig | None = None):
        self.config = config or ContextWindowConfig()

        self._conversations: OrderedDict[str, ConversationContext] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._last_cleanup = time.time()

    def _lock_for(self, conversation_id: str) -> asyncio.Lock:
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[conversation_id] = lock
        return lock

    def _get_or_create(self, conversation_id: str) -> ConversationContext:
        context = self._conversations.get(conversation_id)
        if context is not None and context.is_expired():
            logger.debug(f"Conversation {conversation_id} expired, starting fresh window")
            # Keep the generation monotonic across expiry
            fresh = ConversationContext(
                conversation_id,
                capacity=self.config.window_size,
                timeout_seconds=self.config.timeout_seconds,
            )
            fresh.generation = context.generation
            context = fresh
            self._conversations[conversation_id] = context

        if context is None:
            context = ConversationContext(
                conversation_id,
                capacity=self.config.window_size,
                timeout_seconds=self.config.timeout_seconds,
            )
            self._conversations[conversation_id] = context
            self._enforce_limit()

        self._conversations.move_to_end(conversation_id)
        return context

    def _enforce_limit(self) -> None:
        limit = self.config.max_conversations
        if limit <= 0:
            return
        while len(self._conversations) > limit:
            evicted_id, _ = self._conversations.popitem(last=False)
            lock = self._locks.get(evicted_id)
            if lock is not None and not lock.locked():
                del self._locks[evicted_id]
            logger.debug(f"Evicted least recently used conversation {evicted_id}")

    async def append(
        self,
        conversation_id: str,
        message: ConversationMessage,
    ) -> ContextSnapshot:
        """Append a message and return the resulting snapshot.

        Args:
            conversation_id: The conversation ID
            message: Message to append

        Returns:
            Immutable snapshot including the appended message
        """
        async with self._lock_for(conversation_id):
            context = self._get_or_create(conversation_id)
            context.add_message(message)
            return context.snapshot()

    async def snapshot(self, conversation_id: str) -> ContextSnapshot:
        """Current snapshot, or an empty one for unknown conversations."""
        if conversation_id not in self._conversations:
            return ContextSnapshot.empty(conversation_id)
        async with self._lock_for(conversation_id):
            context = self._conversations.get(conversation_id)
            if context is None or context.is_expired():
                generation = context.generation if context else 0
                return ContextSnapshot(conversation_id=conversation_id, generation=generation)
            return context.snapshot()

    async def begin_request(self, conversation_id: str) -> int:
        """Increment and return the conversation's request generation."""
        async with self._lock_for(conversation_id):
            return self._get_or_create(conversation_id).next_generation()

    def is_current(self, conversation_id: str, generation: int) -> bool:
        """True if no newer request has started for this conversation."""
        context = self._conversations.get(conversation_id)
        if context is None:
            return True
        return context.generation == generation

    def current_generation(self, conversation_id: str) -> int:
        context = self._conversations.get(conversation_id)
        return context.generation if context else 0

    def delete(self, conversation_id: str) -> bool:
        """Delete a conversation.

        Returns:
            True if deleted, False if not found
        """
        self._locks.pop(conversation_id, None)
        return self._conversations.pop(conversation_id, None) is not None

    async def clear(self, conversation_id: str) -> bool:
        """Clear a conversation's window but keep its generation."""
        if conversation_id not in self._conversations:
            return False
        async with self._lock_for(conversation_id):
            context = self._conversations.get(conversation_id)
            if context is None:
                return False
            context.clear()
            return True

    def cleanup_expired(self, force: bool = False) -> list[str]:
        """Drop idle conversations.

        Args:
            force: Ignore the cleanup interval

        Returns:
            IDs of conversations that were removed
        """
        now = time.time()
        if not force and now - self._last_cleanup < self.config.cleanup_interval:
            return []
        self._last_cleanup = now

        expired = [
            conv_id
            for conv_id, context in self._conversations.items()
            if context.is_expired()
        ]
        removed = []
        for conv_id in expired:
            lock = self._locks.get(conv_id)
            if lock is not None and lock.locked():
                continue
            self.delete(conv_id)
            removed.append(conv_id)

        # Locks left behind by conversations that were evicted while busy
        orphaned = [
            conv_id
            for conv_id, lock in self._locks.items()
            if conv_id not in self._conversations and not lock.locked()
        ]
        for conv_id in orphaned:
            del self._locks[conv_id]

        if removed:
            logger.info(f"Cleaned up {len(removed)} expired conversations")
        return removed

    def active_count(self) -> int:
        """Get count of tracked conversations."""
        return len(self._conversations)

    def list_active_ids(self) -> list[str]:
        return list(self._conversations.keys())

    def get_stats(self) -> dict[str, Any]:
        """Get manager statistics."""
        return {
            "active_conversations": len(self._conversations),
            "tracked_locks": len(self._locks),
            "last_cleanup": self._last_cleanup,
            "config": {
                "window_size": self.config.window_size,
                "timeout_seconds": self.config.timeout_seconds,
                "max_conversations": self.config.max_conversations,
            },
        }
