"""
Redis caching for open mat searches and geocoding lookups.
Every operation fails open: a Redis outage means a cache miss, never an error.
"""

import json
import logging
from typing import Any, Optional

import redis

from .config import CACHE_ENABLED, GEOCODE_CACHE_TTL, SEARCH_CACHE_TTL
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class NamespacedCache:
    """JSON values under "<namespace>:<key>" with a default TTL"""

    def __init__(self, namespace: str, default_ttl: int, enabled: bool = True):
        self.namespace = namespace
        self.default_ttl = default_ttl
        self.enabled = enabled
        self._client = None

    def _redis(self):
        if not self.enabled:
            return None
        if self._client is None:
            try:
                self._client = get_redis_client()
            except redis.RedisError as e:
                logger.warning(f"⚠️ {self.namespace} cache offline: {e}")
                return None
        return self._client

    def _key(self, key: str) -> str:
        return f"{self.namespace}:{key}"

    def get(self, key: str) -> Optional[Any]:
        client = self._redis()
        if client is None:
            return None
        try:
            raw = client.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"❌ {self.namespace} cache read failed: {e}")
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"⚠️ Discarding unreadable cache entry {self._key(key)}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        client = self._redis()
        if client is None:
            return False
        try:
            client.setex(self._key(key), ttl or self.default_ttl, json.dumps(value, default=str))
        except (redis.RedisError, TypeError) as e:
            logger.error(f"❌ {self.namespace} cache write failed: {e}")
            return False
        return True

    def clear(self) -> int:
        """Drop every key in the namespace"""
        client = self._redis()
        if client is None:
            return 0
        try:
            keys = list(client.scan_iter(match=f"{self.namespace}:*", count=500))
            removed = client.delete(*keys) if keys else 0
        except redis.RedisError as e:
            logger.error(f"❌ Could not clear {self.namespace} cache: {e}")
            return 0
        if removed:
            logger.debug(f"🧹 Cleared {removed} {self.namespace} cache entries")
        return removed


search_cache = NamespacedCache("search", SEARCH_CACHE_TTL, enabled=CACHE_ENABLED)
geocode_cache = NamespacedCache("geocode", GEOCODE_CACHE_TTL, enabled=CACHE_ENABLED)


def build_search_key(kind: str, **params) -> str:
    """Stable key from the exact search parameters, in name order"""
    return f"{kind}:" + "&".join(f"{name}={params[name]}" for name in sorted(params))


def invalidate_search_cache() -> int:
    """Called after any venue, schedule or sync write"""
    return search_cache.clear()
