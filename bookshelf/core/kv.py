"""
Key-value store used for book records and sessions
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

import redis.asyncio as redis

from bookshelf.core.config import settings
from bookshelf.core.timeutil import utcnow


class KeyValueStore:
    """String values keyed by string, with optional absolute expiry."""

    async def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    async def put(self, key: str, value: str, *, expires_at: Optional[datetime] = None) -> None:
        raise NotImplementedError

    async def list_keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    async def delete(self, key: str) -> None:
        raise NotImplementedError


class RedisKeyValueStore(KeyValueStore):
    def __init__(self, client: "redis.Redis") -> None:
        self.client = client

    async def get(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    async def put(self, key: str, value: str, *, expires_at: Optional[datetime] = None) -> None:
        if expires_at is not None:
            # EXAT: the store drops the record itself once the timestamp passes
            await self.client.set(key, value, exat=int(expires_at.timestamp()))
        else:
            await self.client.set(key, value)

    async def list_keys(self, prefix: str = "") -> List[str]:
        return [key async for key in self.client.scan_iter(match=f"{prefix}*")]

    async def delete(self, key: str) -> None:
        await self.client.delete(key)


class MemoryKeyValueStore(KeyValueStore):
    """In-process store for tests and local development. Expired keys vanish on read."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._data: Dict[str, Tuple[str, Optional[datetime]]] = {}
        self._clock = clock

    def _alive(self, key: str) -> bool:
        entry = self._data.get(key)
        if entry is None:
            return False
        expires_at = entry[1]
        if expires_at is not None and self._clock() >= expires_at:
            del self._data[key]
            return False
        return True

    async def get(self, key: str) -> Optional[str]:
        if not self._alive(key):
            return None
        return self._data[key][0]

    async def put(self, key: str, value: str, *, expires_at: Optional[datetime] = None) -> None:
        self._data[key] = (value, expires_at)

    async def list_keys(self, prefix: str = "") -> List[str]:
        return [k for k in list(self._data) if k.startswith(prefix) and self._alive(k)]

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


_kv_store: Optional[KeyValueStore] = None


async def get_kv() -> KeyValueStore:
    """
    Provide the key-value store dependency.
    """
    global _kv_store
    if _kv_store is None:
        backend = (settings.KV_BACKEND or "redis").lower()
        if backend == "memory":
            _kv_store = MemoryKeyValueStore()
        else:
            _kv_store = RedisKeyValueStore(
                redis.from_url(settings.REDIS_URL, decode_responses=True)
            )
    return _kv_store
