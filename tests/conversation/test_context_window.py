"""Tests for conversation context windows."""

import asyncio
import time

import pytest

from suggestion_engine.conversation import (
    ContextWindowConfig,
    ContextWindowManager,
    ConversationContext,
    detect_mood,
    detect_phase,
    detect_topic,
    estimate_formality,
)
from suggestion_engine.core import ConversationMessage, ConversationMood, ConversationPhase


def msg(text: str, language: str = "en") -> ConversationMessage:
    return ConversationMessage(text=text, language=language)


class TestContextAnalysis:
    """Tests for topic, mood, formality and phase heuristics."""

    def test_topic_detection(self):
        """Keyword hits pick the topic."""
        messages = [msg("Where is the hotel?"), msg("Is the train station near the hotel?")]
        assert detect_topic(messages) == "travel"

    def test_topic_defaults_to_general(self):
        assert detect_topic([msg("Lorem ipsum")]) == "general"
        assert detect_topic([]) == "general"

    def test_mood_detection(self):
        """Mood keywords decide the tone."""
        assert detect_mood([msg("Please see the agenda for the meeting")]) == ConversationMood.PROFESSIONAL
        assert detect_mood([msg("Hey friend, that was awesome")]) == ConversationMood.FRIENDLY
        assert detect_mood([msg("The data shows a 5 percent drop")]) == ConversationMood.ANALYTICAL
        assert detect_mood([msg("Nothing special")]) == ConversationMood.NEUTRAL

    def test_recent_mood_wins(self):
        """Later messages outweigh earlier ones."""
        messages = [msg("This is unacceptable"), msg("Thanks, that is great")]
        assert detect_mood(messages) == ConversationMood.FRIENDLY

    def test_formality(self):
        """Formal markers raise formality, informal ones lower it."""
        assert estimate_formality([]) == 0.5
        assert estimate_formality([msg("Could you kindly send it, sincerely")]) == 1.0
        assert estimate_formality([msg("hey dude, gonna be late lol")]) == 0.0
        mixed = estimate_formality([msg("Please send it"), msg("cool")])
        assert mixed == pytest.approx(0.5)

    def test_phase(self):
        """Phase follows the window fill level and closing markers."""
        assert detect_phase([], 10) == ConversationPhase.OPENING
        assert detect_phase([msg("hi")], 10) == ConversationPhase.OPENING
        assert detect_phase([msg("a")] * 4, 10) == ConversationPhase.BUILDING
        assert detect_phase([msg("a")] * 6, 10) == ConversationPhase.PEAK
        assert detect_phase([msg("a")] * 10, 10) == ConversationPhase.RESOLUTION
        assert detect_phase([msg("a"), msg("ok, goodbye")], 10) == ConversationPhase.CLOSING


class TestConversationContext:
    """Tests for ConversationContext."""

    def test_window_is_bounded(self):
        """Oldest messages are evicted past capacity."""
        context = ConversationContext("conv-1", capacity=3)
        for i in range(7):
            context.add_message(msg(f"message {i}"))

        assert len(context.messages) == 3
        assert [m.text for m in context.messages] == ["message 4", "message 5", "message 6"]

    def test_languages_tracked(self):
        context = ConversationContext("conv-1")
        context.add_message(msg("Hello", "en"))
        context.add_message(msg("Hola", "es"))
        assert context.languages_used == {"en", "es"}

    def test_snapshot_is_immutable_copy(self):
        """Later appends do not change an existing snapshot."""
        context = ConversationContext("conv-1")
        context.add_message(msg("first"))
        snapshot = context.snapshot()
        context.add_message(msg("second"))

        assert snapshot.recent_texts == ["first"]
        with pytest.raises(AttributeError):
            snapshot.topic = "other"

    def test_generation_monotonic_across_clear(self):
        context = ConversationContext("conv-1")
        assert context.next_generation() == 1
        context.clear()
        assert context.next_generation() == 2
        assert len(context.messages) == 0

    def test_expiry(self):
        context = ConversationContext("conv-1", timeout_seconds=60)
        assert not context.is_expired()
        context.last_updated = time.time() - 120
        assert context.is_expired()

    def test_round_trip(self):
        """to_dict/from_dict preserve the window."""
        context = ConversationContext("conv-1", capacity=5)
        context.add_message(msg("Where is the hotel?"))
        context.add_message(msg("Hola", "es"))
        context.next_generation()

        restored = ConversationContext.from_dict(context.to_dict())

        assert [m.text for m in restored.messages] == ["Where is the hotel?", "Hola"]
        assert restored.topic == "travel"
        assert restored.languages_used == {"en", "es"}
        assert restored.generation == 1


class TestContextWindowManager:
    """Tests for ContextWindowManager."""

    @pytest.mark.asyncio
    async def test_append_returns_snapshot(self):
        manager = ContextWindowManager()
        snapshot = await manager.append("conv-1", msg("Hello"))

        assert snapshot.conversation_id == "conv-1"
        assert snapshot.recent_texts == ["Hello"]
        assert manager.active_count() == 1

    @pytest.mark.asyncio
    async def test_window_never_exceeds_capacity(self):
        """After any sequence of appends the window holds at most N messages."""
        manager = ContextWindowManager(ContextWindowConfig(window_size=4))
        for i in range(25):
            snapshot = await manager.append("conv-1", msg(f"m{i}"))
            assert len(snapshot.recent_messages) <= 4
        assert snapshot.recent_texts == ["m21", "m22", "m23", "m24"]

    @pytest.mark.asyncio
    async def test_concurrent_appends_same_conversation(self):
        """Concurrent appends are serialized and none are lost."""
        manager = ContextWindowManager(ContextWindowConfig(window_size=100))
        await asyncio.gather(*(manager.append("conv-1", msg(f"m{i}")) for i in range(50)))

        snapshot = await manager.snapshot("conv-1")
        assert len(snapshot.recent_messages) == 50
        assert set(snapshot.recent_texts) == {f"m{i}" for i in range(50)}

    @pytest.mark.asyncio
    async def test_conversations_are_independent(self):
        manager = ContextWindowManager()
        await asyncio.gather(
            manager.append("a", msg("alpha")),
            manager.append("b", msg("beta")),
        )
        assert (await manager.snapshot("a")).recent_texts == ["alpha"]
        assert (await manager.snapshot("b")).recent_texts == ["beta"]

    @pytest.mark.asyncio
    async def test_snapshot_unknown_conversation(self):
        manager = ContextWindowManager()
        snapshot = await manager.snapshot("missing")
        assert snapshot.recent_messages == ()
        assert snapshot.generation == 0

    @pytest.mark.asyncio
    async def test_generations(self):
        """Only the newest generation is current."""
        manager = ContextWindowManager()
        first = await manager.begin_request("conv-1")
        second = await manager.begin_request("conv-1")

        assert second == first + 1
        assert not manager.is_current("conv-1", first)
        assert manager.is_current("conv-1", second)
        assert manager.current_generation("conv-1") == second

    @pytest.mark.asyncio
    async def test_lru_bound_on_conversations(self):
        manager = ContextWindowManager(ContextWindowConfig(max_conversations=2))
        await manager.append("a", msg("1"))
        await manager.append("b", msg("2"))
        await manager.append("a", msg("3"))
        await manager.append("c", msg("4"))

        assert sorted(manager.list_active_ids()) == ["a", "c"]

    @pytest.mark.asyncio
    async def test_cleanup_expired(self):
        manager = ContextWindowManager(ContextWindowConfig(timeout_seconds=60))
        await manager.append("old", msg("1"))
        await manager.append("new", msg("2"))
        manager._conversations["old"].last_updated = time.time() - 120

        removed = manager.cleanup_expired(force=True)

        assert removed == ["old"]
        assert manager.list_active_ids() == ["new"]

    @pytest.mark.asyncio
    async def test_unknown_lookups_leave_no_locks(self):
        manager = ContextWindowManager()

        for i in range(50):
            snapshot = await manager.snapshot(f"ghost-{i}")
            assert snapshot.recent_messages == ()
            assert await manager.clear(f"ghost-{i}") is False

        assert manager.get_stats()["tracked_locks"] == 0
        assert manager.active_count() == 0

    @pytest.mark.asyncio
    async def test_cleanup_prunes_orphaned_locks(self):
        manager = ContextWindowManager(ContextWindowConfig(max_conversations=1))
        await manager.append("a", msg("1"))
        manager._lock_for("gone")

        manager.cleanup_expired(force=True)

        assert manager.get_stats()["tracked_locks"] == 1
        assert "a" in manager._locks

    @pytest.mark.asyncio
    async def test_expired_conversation_restarts_with_same_generation(self):
        manager = ContextWindowManager(ContextWindowConfig(timeout_seconds=60))
        await manager.append("conv-1", msg("old message"))
        generation = await manager.begin_request("conv-1")
        manager._conversations["conv-1"].last_updated = time.time() - 120

        snapshot = await manager.append("conv-1", msg("fresh"))

        assert snapshot.recent_texts == ["fresh"]
        assert snapshot.generation == generation

    @pytest.mark.asyncio
    async def test_clear_and_delete(self):
        manager = ContextWindowManager()
        await manager.append("conv-1", msg("Hello"))

        assert await manager.clear("conv-1") is True
        assert (await manager.snapshot("conv-1")).recent_messages == ()
        assert manager.delete("conv-1") is True
        assert manager.delete("conv-1") is False
        assert manager.get_stats()["active_conversations"] == 0
