"""
Behavior Monitor Persistence Stores

Key/value backends for session snapshots. Any object with get/set/remove
over string keys and values can serve as a store.

Backends:
    InMemoryStore  -> process-local dict (tests, single-process deployments)
    RedisStore     -> Redis STRING per key, optional TTL

Stores raise on failure; the snapshot persister decides what to swallow.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import redis

from .connection import get_redis_client


logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Minimal string key/value contract required by the snapshot persister."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class InMemoryStore:
    """Dict-backed store."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class RedisStore:
    """
    Redis-backed store.

    Key Schema:
        {key}  -> Redis STRING (snapshot JSON, optional TTL)
    """

    # Snapshot TTL in seconds (24 hours)
    DEFAULT_TTL: int = 86400

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = DEFAULT_TTL) -> None:
        self.client = client if client is not None else get_redis_client()
        self.ttl_seconds = ttl_seconds

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        if self.ttl_seconds:
            self.client.set(key, value, ex=self.ttl_seconds)
        else:
            self.client.set(key, value)

    def remove(self, key: str) -> None:
        self.client.delete(key)
