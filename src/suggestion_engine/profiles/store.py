"""Profile store with online provider-weight learning.

Profiles live in a bounded in-memory LRU map and are written through to
an optional KeyValueStore as JSON. Every read-modify-write runs under a
per-user asyncio.Lock, so feedback from several conversations of the same
user never loses an update.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from collections import OrderedDict
from typing import Any

from suggestion_engine.core.types import PersonalityType, clamp
from suggestion_engine.exceptions import PersistenceError
from suggestion_engine.persistence import KeyValueStore

from .models import UserProfile

logger = logging.getLogger(__name__)


class ProfileStore:
    """Per-user profile store.

    Usage:
        store = ProfileStore(learning_rate=0.05, backend=InMemoryKeyValueStore())

        profile = await store.get_or_create("user-1")
        new_weight = await store.update("user-1", "neural", accepted=True)
    """

    KEY_PREFIX = "profile:"

    def __init__(
        self,
        learning_rate: float = 0.05,
        default_weight: float = 1.0,
        max_profiles: int = 10000,
        backend: KeyValueStore | None = None,
    ):
        self.learning_rate = learning_rate
        self.default_weight = default_weight
        self.max_profiles = max_profiles
        self.backend = backend

        self._profiles: OrderedDict[str, UserProfile] = OrderedDict()
        self._locks: dict[str, asyncio.Lock] = {}
        self._stats = {"loads": 0, "creates": 0, "updates": 0, "persist_failures": 0}

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def _load(self, user_id: str) -> UserProfile | None:
        if self.backend is None:
            return None
        try:
            raw = await self.backend.get(self.KEY_PREFIX + user_id)
        except PersistenceError as e:
            self._stats["persist_failures"] += 1
            logger.warning(f"Profile load failed for {user_id}, using defaults: {e}")
            return None
        if raw is None:
            return None
        try:
            profile = UserProfile.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable stored profile for {user_id}: {e}")
            return None
        self._stats["loads"] += 1
        return profile

    async def _persist(self, profile: UserProfile) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.set(
                self.KEY_PREFIX + profile.user_id,
                json.dumps(profile.to_dict()).encode("utf-8"),
            )
        except PersistenceError as e:
            self._stats["persist_failures"] += 1
            logger.warning(f"Profile persist failed for {profile.user_id}: {e}")

    def _remember(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile
        self._profiles.move_to_end(profile.user_id)
        while len(self._profiles) > self.max_profiles:
            evicted_id, _ = self._profiles.popitem(last=False)
            lock = self._locks.get(evicted_id)
            if lock is not None and not lock.locked():
                del self._locks[evicted_id]

    async def _get_or_create_locked(self, user_id: str) -> UserProfile:
        profile = self._profiles.get(user_id)
        if profile is not None:
            self._profiles.move_to_end(user_id)
            return profile

        profile = await self._load(user_id)
        if profile is None:
            profile = UserProfile(user_id=user_id)
            self._stats["creates"] += 1
            logger.debug(f"Created default profile for {user_id}")
        self._remember(profile)
        return profile

    async def get_or_create(self, user_id: str) -> UserProfile:
        """Get a copy of the user's profile, creating it lazily.

        The returned object is detached; mutate profiles only through the
        store's update methods.
        """
        async with self._lock_for(user_id):
            profile = await self._get_or_create_locked(user_id)
            return copy.deepcopy(profile)

    async def get_weights(self, user_id: str) -> dict[str, float]:
        """Provider weight map for a user (missing providers use the default)."""
        profile = await self.get_or_create(user_id)
        return dict(profile.provider_weights)

    async def update(self, user_id: str, provider_id: str, accepted: bool) -> float:
        """Apply acceptance feedback to a provider weight.

        Args:
            user_id: User who accepted or dismissed a suggestion
            provider_id: Provider that produced it
            accepted: Whether it was accepted

        Returns:
            The provider's new weight
        """
        async with self._lock_for(user_id):
            profile = await self._get_or_create_locked(user_id)
            old = profile.weight_for(provider_id, self.default_weight)
            new = profile.apply_feedback(
                provider_id, accepted, self.learning_rate, self.default_weight
            )
            self._stats["updates"] += 1
            await self._persist(profile)

        logger.debug(
            f"Weight update user={user_id} provider={provider_id} "
            f"accepted={accepted}: {old:.4f} -> {new:.4f}"
        )
        return new

    async def update_pattern_affinity(self, user_id: str, accepted: bool) -> float:
        """Apply acceptance feedback to the pattern-affinity score."""
        async with self._lock_for(user_id):
            profile = await self._get_or_create_locked(user_id)
            value = profile.apply_pattern_feedback(accepted, self.learning_rate)
            await self._persist(profile)
            return value

    async def set_personality(
        self,
        user_id: str,
        personality_type: PersonalityType,
        formality: float | None = None,
    ) -> UserProfile:
        """Set the user's personality type and optional formality preference."""
        async with self._lock_for(user_id):
            profile = await self._get_or_create_locked(user_id)
            profile.personality_type = personality_type
            if formality is not None:
                profile.formality = clamp(formality)
            await self._persist(profile)
            return copy.deepcopy(profile)

    async def set_proficiency(self, user_id: str, language: str, level: float) -> None:
        async with self._lock_for(user_id):
            profile = await self._get_or_create_locked(user_id)
            profile.language_proficiency[language] = clamp(level)
            await self._persist(profile)

    async def delete(self, user_id: str) -> bool:
        """Forget a user locally and in the backend."""
        async with self._lock_for(user_id):
            existed = self._profiles.pop(user_id, None) is not None
            if self.backend is not None:
                try:
                    existed = await self.backend.delete(self.KEY_PREFIX + user_id) or existed
                except PersistenceError as e:
                    logger.warning(f"Profile delete failed for {user_id}: {e}")
        self._locks.pop(user_id, None)
        return existed

    def __len__(self) -> int:
        return len(self._profiles)

    def get_stats(self) -> dict[str, Any]:
        """Get store statistics."""
        return {
            **self._stats,
            "cached_profiles": len(self._profiles),
            "learning_rate": self.learning_rate,
        }
