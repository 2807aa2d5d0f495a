"""Redis client configuration and the tenant configuration cache."""

import json
from typing import Any, cast

import redis

from clinic_scheduling.config import settings

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """Check if Redis connection is healthy."""
    try:
        get_redis_client().ping()
        return True
    except redis.RedisError:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class CacheManager:
    """
    Redis-backed JSON cache.

    Every operation degrades to a miss when Redis is unreachable, so the
    database stays the source of truth.
    """

    def __init__(self, redis_client: redis.Redis, prefix: str = "clinic_scheduling"):
        """Initialize cache manager with Redis client and a key namespace."""
        self.redis = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def get_json(self, key: str) -> Any | None:
        """
        Get JSON value from cache and deserialize.

        Args:
            key: Cache key, without the namespace

        Returns:
            Deserialized object or None on a miss
        """
        try:
            value = cast(str | None, self.redis.get(self._key(key)))
        except redis.RedisError:
            return None
        if not value:
            return None
        try:
            return json.loads(value)
        except ValueError:
            return None

    def set_json(self, key: str, value: Any, ttl: int | None = None) -> bool:
        """
        Serialize and set JSON value in cache.

        Args:
            key: Cache key, without the namespace
            value: Value to serialize and cache
            ttl: Time to live in seconds

        Returns:
            True if successful, False otherwise
        """
        payload = json.dumps(value, default=str)
        try:
            if ttl:
                self.redis.setex(self._key(key), ttl, payload)
            else:
                self.redis.set(self._key(key), payload)
            return True
        except redis.RedisError:
            return False

    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        try:
            self.redis.delete(self._key(key))
            return True
        except redis.RedisError:
            return False


def get_cache_manager() -> CacheManager | None:
    """Cache manager when Redis is enabled, otherwise ``None``."""
    if not settings.redis_enabled:
        return None
    return CacheManager(get_redis_client())
