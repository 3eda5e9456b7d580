"""Result cache with TTL, LRU eviction and single-flight computation.

Entries are immutable: a newer result for a key replaces the entry, it is
never updated in place. Concurrent misses on the same key share one
computation through a detached asyncio.Task; cancelling one caller never
cancels the work the others are waiting on.

Example:
    cache = ResultCache(capacity=500, ttl_seconds=300)
    key = ResultCache.make_key(user_id, conversation_id, text, "es")
    result = await cache.get_or_compute(key, lambda: pipeline(request))
"""

from __future__ import annotations

import asyncio
import dataclasses
import functools
import hashlib
import json
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from suggestion_engine.core.types import AggregatedResult, normalize_text
from suggestion_engine.exceptions import CacheUnavailableError, PersistenceError
from suggestion_engine.persistence import KeyValueStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A cached result and its lifetime."""

    key: str
    result: AggregatedResult
    inserted_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class ResultCache:
    """Get-or-compute cache for aggregated results.

    Args:
        capacity: Maximum local entries before LRU eviction
        ttl_seconds: Entry lifetime
        backend: Optional shared key-value store behind the local map
        cache_fallbacks: Whether rule-based fallback results are cached
        clock: Time source (seconds)
    """

    KEY_PREFIX = "result:"

    def __init__(
        self,
        capacity: int = 500,
        ttl_seconds: float = 300.0,
        backend: KeyValueStore | None = None,
        cache_fallbacks: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.capacity = capacity
        self.ttl_seconds = ttl_seconds
        self.backend = backend
        self.cache_fallbacks = cache_fallbacks
        self.clock = clock

        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._inflight: dict[str, asyncio.Task] = {}
        self._stats = {
            "hits": 0,
            "misses": 0,
            "coalesced": 0,
            "evictions": 0,
            "expirations": 0,
            "bypasses": 0,
        }

    @staticmethod
    def make_key(
        user_id: str,
        conversation_id: str,
        text: str,
        target_language: str,
    ) -> str:
        """Stable SHA-256 fingerprint of a request."""
        payload = json.dumps(
            [user_id, conversation_id, normalize_text(text), target_language],
            ensure_ascii=False,
        )
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    # =========================================================================
    # Local map
    # =========================================================================

    def _get_local(self, key: str) -> AggregatedResult | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.clock()):
            del self._entries[key]
            self._stats["expirations"] += 1
            return None
        self._entries.move_to_end(key)
        return entry.result

    def _put_local(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry
        self._entries.move_to_end(entry.key)
        while len(self._entries) > self.capacity:
            evicted_key, _ = self._entries.popitem(last=False)
            self._stats["evictions"] += 1
            logger.debug(f"Evicted cache entry {evicted_key[:12]}")

    # =========================================================================
    # Backend
    # =========================================================================

    async def _get_backend(self, key: str) -> AggregatedResult | None:
        if self.backend is None:
            return None
        try:
            raw = await self.backend.get(self.KEY_PREFIX + key)
        except PersistenceError as e:
            raise CacheUnavailableError("Cache backend read failed", cause=e) from e
        if raw is None:
            return None
        try:
            result = AggregatedResult.from_dict(json.loads(raw.decode("utf-8")))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable cache entry {key[:12]}: {e}")
            return None
        if not result.suggestions or result.is_expired(self.clock()):
            return None
        return result

    async def _put_backend(self, key: str, result: AggregatedResult) -> None:
        if self.backend is None:
            return
        try:
            await self.backend.set(
                self.KEY_PREFIX + key,
                json.dumps(result.to_dict(), ensure_ascii=False).encode("utf-8"),
                ttl=self.ttl_seconds,
            )
        except PersistenceError as e:
            raise CacheUnavailableError("Cache backend write failed", cause=e) from e

    # =========================================================================
    # Public API
    # =========================================================================

    async def get(self, key: str) -> AggregatedResult | None:
        """Look up a live entry locally, then in the backend.

        Raises:
            CacheUnavailableError: If the backend read fails
        """
        result = self._get_local(key)
        if result is not None:
            return result
        result = await self._get_backend(key)
        if result is not None:
            self._put_local(CacheEntry(key, result, self.clock(), result.expires_at))
        return result

    async def put(self, key: str, result: AggregatedResult) -> AggregatedResult:
        """Store a result, stamping it with the key and expiry.

        Returns:
            The stored (stamped) result

        Raises:
            CacheUnavailableError: If the backend write fails (the local
                entry is still stored)
        """
        now = self.clock()
        stamped = dataclasses.replace(result, cache_key=key, expires_at=now + self.ttl_seconds)
        self._put_local(CacheEntry(key, stamped, now, stamped.expires_at))
        await self._put_backend(key, stamped)
        return stamped

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[AggregatedResult]],
    ) -> AggregatedResult:
        """Return the cached result or compute it exactly once.

        Concurrent callers with the same key share one computation and
        receive the same result. The computation runs in its own task, so a
        cancelled caller leaves it running for everyone else. Cache failures
        degrade to computing without the cache.
        """
        cached = self._get_local(key)
        if cached is not None:
            self._stats["hits"] += 1
            return cached

        task = self._inflight.get(key)
        if task is not None:
            self._stats["coalesced"] += 1
        else:
            task = asyncio.create_task(
                self._compute(key, compute_fn), name=f"result-cache:{key[:12]}"
            )
            self._inflight[key] = task
            task.add_done_callback(functools.partial(self._computation_done, key))

        return await asyncio.shield(task)

    def _computation_done(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Every caller may have gone away; the exception still needs retrieving
        if not task.cancelled():
            task.exception()

    async def _compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[AggregatedResult]],
    ) -> AggregatedResult:
        try:
            cached = await self._get_backend(key)
        except CacheUnavailableError as e:
            self._stats["bypasses"] += 1
            logger.warning(f"Result cache unavailable, bypassing: {e}")
            cached = None
        if cached is not None:
            self._stats["hits"] += 1
            self._put_local(CacheEntry(key, cached, self.clock(), cached.expires_at))
            return cached

        self._stats["misses"] += 1
        result = await compute_fn()

        if result.is_fallback and not self.cache_fallbacks:
            return dataclasses.replace(result, cache_key=key)

        try:
            return await self.put(key, result)
        except CacheUnavailableError as e:
            self._stats["bypasses"] += 1
            logger.warning(f"Result cache write failed, result kept locally: {e}")
            return self._entries[key].result

    def sweep_expired(self) -> int:
        """Drop expired local entries.

        Returns:
            Number of entries removed
        """
        now = self.clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        self._stats["expirations"] += len(expired)
        if expired:
            logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    async def invalidate(self, key: str) -> bool:
        """Remove a key locally and in the backend."""
        existed = self._entries.pop(key, None) is not None
        if self.backend is not None:
            try:
                existed = await self.backend.delete(self.KEY_PREFIX + key) or existed
            except PersistenceError as e:
                logger.warning(f"Cache invalidation failed in backend: {e}")
        return existed

    def clear(self) -> None:
        """Clear local entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._get_local(key) is not None

    def get_stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        lookups = self._stats["hits"] + self._stats["misses"]
        return {
            **self._stats,
            "size": len(self._entries),
            "capacity": self.capacity,
            "in_flight": len(self._inflight),
            "hit_rate": self._stats["hits"] / lookups if lookups else 0.0,
        }
