"""Key-value persistence for cached results and user profiles."""

from suggestion_engine.config import StoreConfig

from .base import InMemoryKeyValueStore, KeyValueStore
from .qdrant import QdrantKeyValueStore


def create_store(config: StoreConfig | None = None) -> KeyValueStore:
    """Build the key-value store named by the configuration."""
    config = config or StoreConfig()
    if config.provider == "qdrant":
        return QdrantKeyValueStore(config.url, config.collection, api_key=config.api_key)
    return InMemoryKeyValueStore()


__all__ = [
    "KeyValueStore",
    "InMemoryKeyValueStore",
    "QdrantKeyValueStore",
    "create_store",
]
