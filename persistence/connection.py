"""
Behavior Monitor Redis Connection

Process-wide Redis client used by the Redis snapshot store.

Environment:
    REDIS_HOST      Hostname (default: localhost)
    REDIS_PORT      Port (default: 6379)
    REDIS_DB        Database index (default: 0)
    REDIS_PASSWORD  Password (REQUIRED)
"""

import os
import logging
from dataclasses import dataclass
from functools import lru_cache

import redis
from redis.exceptions import RedisError, AuthenticationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RedisSettings:
    host: str
    port: int
    db: int
    password: str

    @classmethod
    def from_env(cls) -> "RedisSettings":
        password = os.getenv("REDIS_PASSWORD")
        if not password:
            logger.critical("REDIS_PASSWORD environment variable is not set.")
            raise ValueError("REDIS_PASSWORD is required for the Redis snapshot store.")

        return cls(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", 6379)),
            db=int(os.getenv("REDIS_DB", 0)),
            password=password,
        )


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    """
    Creates a singleton Redis client with a small connection pool and
    verifies it with a ping.
    """
    settings = RedisSettings.from_env()

    try:
        pool = redis.ConnectionPool(
            host=settings.host,
            port=settings.port,
            db=settings.db,
            password=settings.password,
            decode_responses=True,  # Snapshots are JSON strings
            max_connections=10,
            socket_timeout=2.0      # Snapshot writes are best-effort, fail fast
        )
        client = redis.Redis(connection_pool=pool)
        client.ping()
        logger.info(f"Connected to Redis at {settings.host}:{settings.port}/{settings.db}")
        return client

    except AuthenticationError:
        logger.critical("Redis authentication failed. Check REDIS_PASSWORD.")
        raise
    except RedisError as e:
        logger.critical(f"Could not connect to Redis: {e}")
        raise
