"""Key-value persistence contract used by the result cache and profile store."""

import logging
import time
from abc import ABC, abstractmethod

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Abstract external key-value store.

    The engine treats the store as eventually available: implementations
    raise PersistenceError on failure and callers degrade gracefully.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Get a value, or None if absent or expired."""
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value with an optional TTL in seconds."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        pass

    async def close(self) -> None:
        """Release any held connections."""
        return None


class InMemoryKeyValueStore(KeyValueStore):
    """In-memory store for testing and single-process deployments."""

    def __init__(self):
        self._data: dict[str, tuple[bytes, float | None]] = {}

    async def get(self, key: str) -> bytes | None:
        """Get a value, honouring expiry."""
        item = self._data.get(key)
        if item is None:
            return None
        value, expires_at = item
        if expires_at is not None and time.time() >= expires_at:
            del self._data[key]
            return None
        return value

    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Store a value."""
        expires_at = time.time() + ttl if ttl else None
        self._data[key] = (bytes(value), expires_at)

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        return self._data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self._data)

    def clear(self) -> None:
        """Clear all keys (for testing)."""
        self._data.clear()
