"""
Behavior Monitor Persistence Layer

Public exports for the Redis connection, snapshot stores and persister.
"""

from .connection import RedisSettings, get_redis_client
from .snapshot import DEFAULT_SNAPSHOT_KEY, SnapshotPersister
from .stores import InMemoryStore, KeyValueStore, RedisStore

__all__ = [
    "get_redis_client",
    "RedisSettings",
    "KeyValueStore",
    "InMemoryStore",
    "RedisStore",
    "SnapshotPersister",
    "DEFAULT_SNAPSHOT_KEY",
]
