# services/cache.py
"""
Optional Redis cache.

Enabled only when ``REDIS_URL`` is configured. Redis errors are logged and
treated as cache misses so a cache outage never fails a request.
"""

import logging
from typing import Optional

import redis

logger = logging.getLogger(__name__)


def create_redis_client(url: str) -> redis.Redis:
    """Redis client with the connection settings used across the app"""
    return redis.Redis.from_url(
        url,
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
        health_check_interval=30
    )


class RedisCache:
    """String cache with per-key TTL"""

    def __init__(self, client: Optional[redis.Redis] = None, default_ttl: int = 3600):
        self.client = client
        self.default_ttl = default_ttl

    def init_app(self, app):
        url = app.config.get('REDIS_URL')
        self.default_ttl = app.config.get('CACHE_DEFAULT_TTL', 3600)
        self.client = create_redis_client(url) if url else None
        app.extensions['cache'] = self
        if self.client is not None:
            app.logger.info("Redis cache enabled")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Optional[str]:
        if self.client is None:
            return None
        try:
            return self.client.get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None

    def set(self, key: str, value: str, ttl: Optional[int] = None) -> bool:
        if self.client is None:
            return False
        try:
            self.client.set(key, value, ex=ttl or self.default_ttl)
            return True
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.delete(key))
        except redis.RedisError as e:
            logger.warning(f"Cache delete failed for {key}: {e}")
            return False

    def ping(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False


cache = RedisCache()
