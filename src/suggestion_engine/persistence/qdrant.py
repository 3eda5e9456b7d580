"""Qdrant-backed key-value store for production use.

Stores each key as a point in a Qdrant collection with a one-dimensional
dummy vector. The value travels base64-encoded in the payload together
with its expiry time; expired points are treated as absent and removed
lazily on read.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import logging
import time
import uuid
from typing import Any

import aiohttp

from suggestion_engine.exceptions import PersistenceError

from .base import KeyValueStore

logger = logging.getLogger(__name__)


class QdrantKeyValueStore(KeyValueStore):
    """Key-value store over the Qdrant REST API.

    Usage:
        store = QdrantKeyValueStore("http://qdrant:6333", "suggestion_engine_kv")
        await store.set("profile:user-1", b"{...}", ttl=None)
        data = await store.get("profile:user-1")
        await store.close()
    """

    RECORD_TYPE = "kv_entry"

    def __init__(
        self,
        qdrant_url: str,
        collection: str,
        api_key: str | None = None,
        timeout_seconds: float = 5.0,
        session: aiohttp.ClientSession | None = None,
    ):
        self.qdrant_url = qdrant_url.rstrip("/")
        self.collection = collection
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._http_client = session
        self._owns_session = session is None
        self._collection_ready = False

    @staticmethod
    def point_id(key: str) -> str:
        """Stable UUID point id for a key."""
        return str(uuid.UUID(hashlib.md5(key.encode()).hexdigest()))

    async def _ensure_client(self) -> aiohttp.ClientSession:
        if self._http_client is None:
            headers = {"api-key": self.api_key} if self.api_key else None
            self._http_client = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
            )
        return self._http_client

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: dict[str, Any] | None = None,
        key: str | None = None,
    ) -> dict[str, Any]:
        client = await self._ensure_client()
        url = f"{self.qdrant_url}/{endpoint}"
        try:
            async with client.request(method, url, json=data) as resp:
                body = await resp.json(content_type=None)
                if resp.status >= 400:
                    raise PersistenceError(
                        f"Qdrant {method} {endpoint} returned {resp.status}: {body}",
                        key=key,
                    )
                return body or {}
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PersistenceError(f"Qdrant {method} {endpoint} failed", key=key, cause=e) from e

    async def ensure_collection(self) -> None:
        """Create the backing collection if it does not exist yet."""
        if self._collection_ready:
            return
        client = await self._ensure_client()
        url = f"{self.qdrant_url}/collections/{self.collection}"
        try:
            async with client.get(url) as resp:
                exists = resp.status == 200
            if not exists:
                async with client.put(
                    url, json={"vectors": {"size": 1, "distance": "Dot"}}
                ) as resp:
                    if resp.status >= 400:
                        body = await resp.text()
                        raise PersistenceError(
                            f"Could not create collection {self.collection}: {body}"
                        )
                logger.info(f"Created Qdrant collection {self.collection}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PersistenceError("Qdrant collection check failed", cause=e) from e
        self._collection_ready = True

    async def get(self, key: str) -> bytes | None:
        """Get a value by key."""
        await self.ensure_collection()
        result = await self._request(
            "POST",
            f"collections/{self.collection}/points",
            data={"ids": [self.point_id(key)], "with_payload": True, "with_vector": False},
            key=key,
        )
        points = result.get("result") or []
        if not points:
            return None

        payload = points[0].get("payload") or {}
        expires_at = payload.get("expires_at")
        if expires_at is not None and time.time() >= expires_at:
            await self.delete(key)
            return None

        try:
            return base64.b64decode(payload["value"])
        except (KeyError, ValueError) as e:
            raise PersistenceError("Stored value is corrupt", key=key, cause=e) from e

    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        """Upsert a value."""
        await self.ensure_collection()
        payload = {
            "record_type": self.RECORD_TYPE,
            "key": key,
            "value": base64.b64encode(value).decode("ascii"),
            "expires_at": time.time() + ttl if ttl else None,
        }
        await self._request(
            "PUT",
            f"collections/{self.collection}/points?wait=true",
            data={"points": [{"id": self.point_id(key), "vector": [0.0], "payload": payload}]},
            key=key,
        )

    async def delete(self, key: str) -> bool:
        """Delete a key."""
        await self.ensure_collection()
        result = await self._request(
            "POST",
            f"collections/{self.collection}/points/delete?wait=true",
            data={"points": [self.point_id(key)]},
            key=key,
        )
        return result.get("status") == "ok"

    async def close(self) -> None:
        """Close the HTTP session if we created it."""
        if self._http_client is not None and self._owns_session:
            await self._http_client.close()
        self._http_client = None
