"""
Redis caching utilities for geocoding results and admin dashboards.
Fails open: when Redis is unavailable every lookup is a miss.
"""

import json
import logging
from typing import Any, Optional

from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

ADMIN_STATS_KEY = "admin:stats"
ADMIN_STATS_TTL = 60


class Cache:
    """Redis cache wrapper with JSON serialization"""

    def _get_client(self):
        try:
            return get_redis_client()
        except Exception as e:
            logger.warning(f"Redis cache unavailable: {e}")
            return None

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None
        try:
            value = client.get(key)
            if value is None:
                logger.debug(f"Cache MISS: {key}")
                return None
            logger.debug(f"Cache HIT: {key}")
            return json.loads(value)
        except Exception as e:
            logger.error(f"Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set value in cache with TTL (default 1 hour)"""
        client = self._get_client()
        if not client:
            return False
        try:
            client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except Exception as e:
            logger.error(f"Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False
        try:
            client.delete(key)
            return True
        except Exception as e:
            logger.error(f"Cache delete error for {key}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'geo:suburb:*')"""
        client = self._get_client()
        if not client:
            return 0
        try:
            keys = list(client.scan_iter(match=pattern))
            return client.delete(*keys) if keys else 0
        except Exception as e:
            logger.error(f"Cache delete pattern error for {pattern}: {e}")
            return 0


cache = Cache()


def invalidate_admin_stats() -> bool:
    """Drop cached dashboard numbers after bans, deletions and broadcasts"""
    return cache.delete(ADMIN_STATS_KEY)
