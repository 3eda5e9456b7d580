"""Tests for UserProfile and ProfileStore."""

import asyncio
import json

import pytest

from suggestion_engine.core.types import PersonalityType
from suggestion_engine.profiles import ProfileStore, ProviderFeedback, UserProfile


# =============================================================================
# UserProfile
# =============================================================================


class TestUserProfile:
    """Tests for the profile model."""

    def test_defaults(self):
        """New profiles use neutral defaults."""
        profile = UserProfile(user_id="u")
        assert profile.weight_for("neural") == 1.0
        assert profile.weight_for("neural", default=0.5) == 0.5
        assert profile.pattern_affinity == 0.7
        assert profile.personality_type == PersonalityType.CASUAL
        assert profile.proficiency("es") == 0.5

    def test_apply_feedback_accept(self):
        """Acceptance moves the weight toward 1."""
        profile = UserProfile(user_id="u", provider_weights={"neural": 0.7})
        new = profile.apply_feedback("neural", accepted=True, learning_rate=0.05)
        assert new == pytest.approx(0.7 * 0.95 + 0.05)
        assert profile.feedback["neural"].accepted == 1

    def test_apply_feedback_reject(self):
        """Rejection moves the weight toward 0."""
        profile = UserProfile(user_id="u", provider_weights={"neural": 0.7})
        new = profile.apply_feedback("neural", accepted=False, learning_rate=0.05)
        assert new == pytest.approx(0.7 * 0.95)
        assert profile.feedback["neural"].rejected == 1

    def test_weight_stays_in_range(self):
        """Weights never leave [0, 1] even with an aggressive rate."""
        profile = UserProfile(user_id="u")
        for _ in range(50):
            w = profile.apply_feedback("pattern", accepted=True, learning_rate=0.9)
            assert 0.0 <= w <= 1.0
        for _ in range(50):
            w = profile.apply_feedback("pattern", accepted=False, learning_rate=0.9)
            assert 0.0 <= w <= 1.0

    def test_pattern_feedback(self):
        """Pattern affinity follows the same update rule."""
        profile = UserProfile(user_id="u")
        value = profile.apply_pattern_feedback(accepted=False, learning_rate=0.1)
        assert value == pytest.approx(0.63)

    def test_round_trip(self):
        """Profiles survive to_dict/from_dict."""
        profile = UserProfile(
            user_id="u",
            provider_weights={"neural": 0.4},
            personality_type=PersonalityType.TECHNICAL,
            language_proficiency={"es": 0.8},
        )
        profile.apply_feedback("pattern", accepted=True, learning_rate=0.05)

        restored = UserProfile.from_dict(profile.to_dict())
        assert restored.provider_weights == profile.provider_weights
        assert restored.personality_type == PersonalityType.TECHNICAL
        assert restored.language_proficiency == {"es": 0.8}
        assert restored.feedback["pattern"].accepted == 1

    def test_from_dict_clamps_weights(self):
        """Out-of-range stored weights are clamped on load."""
        restored = UserProfile.from_dict(
            {"user_id": "u", "provider_weights": {"neural": 3.0, "pattern": -1}}
        )
        assert restored.provider_weights == {"neural": 1.0, "pattern": 0.0}


class TestProviderFeedback:
    """Tests for acceptance counters."""

    def test_acceptance_rate_without_data(self):
        """No data means an even rate."""
        assert ProviderFeedback(provider_id="neural").acceptance_rate == 0.5

    def test_acceptance_rate(self):
        """Rate reflects recorded outcomes."""
        counters = ProviderFeedback(provider_id="neural")
        counters.record(True)
        counters.record(True)
        counters.record(False)
        assert counters.total == 3
        assert counters.acceptance_rate == pytest.approx(2 / 3)


# =============================================================================
# ProfileStore
# =============================================================================


class TestProfileStore:
    """Tests for the in-memory profile store."""

    @pytest.mark.asyncio
    async def test_get_or_create_lazily(self):
        """Unknown users get a default profile."""
        store = ProfileStore()
        profile = await store.get_or_create("user-1")
        assert profile.user_id == "user-1"
        assert len(store) == 1
        assert store.get_stats()["creates"] == 1

    @pytest.mark.asyncio
    async def test_returned_profile_is_detached(self):
        """Mutating a returned profile does not change the stored one."""
        store = ProfileStore()
        profile = await store.get_or_create("user-1")
        profile.provider_weights["neural"] = 0.0

        again = await store.get_or_create("user-1")
        assert again.weight_for("neural") == 1.0

    @pytest.mark.asyncio
    async def test_update_follows_ema(self):
        """Five acceptances from 0.7 at rate 0.05 converge toward 1."""
        store = ProfileStore(learning_rate=0.05, default_weight=0.7)
        weight = 0.0
        for _ in range(5):
            weight = await store.update("user-1", "neural", accepted=True)

        assert weight == pytest.approx(1 - 0.3 * 0.95**5)
        weights = await store.get_weights("user-1")
        assert weights["neural"] == pytest.approx(weight)

    @pytest.mark.asyncio
    async def test_updates_are_per_provider(self):
        """Feedback for one provider leaves the others alone."""
        store = ProfileStore(learning_rate=0.1)
        await store.update("user-1", "pattern", accepted=False)
        weights = await store.get_weights("user-1")
        assert weights == {"pattern": pytest.approx(0.9)}

    @pytest.mark.asyncio
    async def test_concurrent_updates_are_not_lost(self):
        """Concurrent feedback for one user applies every update."""
        store = ProfileStore(learning_rate=0.05, default_weight=0.7)

        await asyncio.gather(
            *[store.update("user-1", "neural", accepted=True) for _ in range(20)]
        )

        weights = await store.get_weights("user-1")
        assert weights["neural"] == pytest.approx(1 - 0.3 * 0.95**20)
        profile = await store.get_or_create("user-1")
        assert profile.feedback["neural"].accepted == 20

    @pytest.mark.asyncio
    async def test_pattern_affinity_update(self):
        """Pattern affinity is updated under the same rule."""
        store = ProfileStore(learning_rate=0.05)
        value = await store.update_pattern_affinity("user-1", accepted=True)
        assert value == pytest.approx(0.7 * 0.95 + 0.05)

    @pytest.mark.asyncio
    async def test_set_personality(self):
        """Personality and formality can be set explicitly."""
        store = ProfileStore()
        profile = await store.set_personality(
            "user-1", PersonalityType.PROFESSIONAL, formality=1.5
        )
        assert profile.personality_type == PersonalityType.PROFESSIONAL
        assert profile.formality == 1.0

    @pytest.mark.asyncio
    async def test_set_proficiency(self):
        """Proficiency is clamped into range."""
        store = ProfileStore()
        await store.set_proficiency("user-1", "es", 2.0)
        profile = await store.get_or_create("user-1")
        assert profile.proficiency("es") == 1.0

    @pytest.mark.asyncio
    async def test_lru_eviction(self):
        """The least recently used profile is evicted at capacity."""
        store = ProfileStore(max_profiles=2)
        await store.get_or_create("a")
        await store.get_or_create("b")
        await store.get_or_create("a")
        await store.get_or_create("c")

        assert len(store) == 2
        await store.update("b", "neural", accepted=False)
        assert store.get_stats()["creates"] == 4

    @pytest.mark.asyncio
    async def test_delete(self):
        """Deleting forgets the profile."""
        store = ProfileStore()
        await store.update("user-1", "neural", accepted=False)
        assert await store.delete("user-1") is True
        assert len(store) == 0
        assert await store.delete("user-1") is False


class TestProfileStorePersistence:
    """Tests for write-through persistence."""

    @pytest.mark.asyncio
    async def test_writes_through_to_backend(self, memory_store):
        """Updates are persisted as JSON under the profile prefix."""
        store = ProfileStore(backend=memory_store)
        await store.update("user-1", "neural", accepted=False)

        raw = await memory_store.get("profile:user-1")
        data = json.loads(raw.decode("utf-8"))
        assert data["user_id"] == "user-1"
        assert data["provider_weights"]["neural"] == pytest.approx(0.95)

    @pytest.mark.asyncio
    async def test_reloads_from_backend(self, memory_store):
        """A fresh store picks up persisted profiles."""
        first = ProfileStore(backend=memory_store)
        await first.update("user-1", "pattern", accepted=False)

        second = ProfileStore(backend=memory_store)
        weights = await second.get_weights("user-1")
        assert weights["pattern"] == pytest.approx(0.95)
        assert second.get_stats()["loads"] == 1

    @pytest.mark.asyncio
    async def test_unreadable_profile_is_replaced(self, memory_store):
        """Corrupt stored data falls back to a default profile."""
        await memory_store.set("profile:user-1", b"not json")
        store = ProfileStore(backend=memory_store)
        profile = await store.get_or_create("user-1")
        assert profile.provider_weights == {}

    @pytest.mark.asyncio
    async def test_failing_backend_is_tolerated(self, failing_store):
        """Store failures never reach the caller."""
        store = ProfileStore(backend=failing_store)
        weight = await store.update("user-1", "neural", accepted=False)

        assert weight == pytest.approx(0.95)
        assert failing_store.attempts >= 2
        assert store.get_stats()["persist_failures"] >= 2

    @pytest.mark.asyncio
    async def test_delete_removes_from_backend(self, memory_store):
        """Deleting removes the persisted copy."""
        store = ProfileStore(backend=memory_store)
        await store.update("user-1", "neural", accepted=True)
        await store.delete("user-1")
        assert await memory_store.get("profile:user-1") is None
