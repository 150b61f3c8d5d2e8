"""
Redis caching utilities for frequently accessed data
Reduces database load on barber profiles, search results and statistics.
The database stays authoritative: every failure here is logged and treated as a miss.
"""
import hashlib
import json
import logging
from typing import Any, Callable, Optional

from .config import CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)

# TTL classes (seconds)
SHORT_TTL = 5 * 60  # search results
MEDIUM_TTL = 30 * 60  # single entity reads
LONG_TTL = 2 * 60 * 60  # aggregated statistics
DAY_TTL = 24 * 60 * 60  # rarely-changing computed values

# Key prefixes
BARBER_PREFIX = "barber"
SEARCH_PREFIX = "search"
STATS_PREFIX = "stats"
REVIEWS_PREFIX = "reviews"
SERVICE_PREFIX = "service"
CATEGORIES_PREFIX = "categories"


class Cache:
    """Redis cache wrapper with automatic serialization"""

    def __init__(self, client_factory: Callable = get_redis_client, enabled: bool = CACHE_ENABLED):
        self.redis_client = None
        self.client_factory = client_factory
        self.enabled = enabled

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = self.client_factory()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        """Get value from cache"""
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = MEDIUM_TTL) -> bool:
        """Set value in cache with TTL (default medium)"""
        client = self._get_client()
        if not client:
            return False

        try:
            serialized = json.dumps(value, default=str)
            client.setex(key, ttl, serialized)
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, *keys: str) -> bool:
        """Delete one or more keys"""
        client = self._get_client()
        if not client or not keys:
            return False

        try:
            client.delete(*keys)
            logger.debug(f"✅ Cache DELETE: {', '.join(keys)}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {keys}: {e}")
            return False

    def delete_pattern(self, pattern: str) -> int:
        """Delete all keys matching pattern (e.g., 'search:barbers:*')"""
        client = self._get_client()
        if not client:
            return 0

        try:
            keys = list(client.scan_iter(match=pattern, count=500))
            if keys:
                deleted = client.delete(*keys)
                logger.debug(f"✅ Cache DELETE pattern: {pattern} ({deleted} keys)")
                return deleted
            return 0
        except Exception as e:
            logger.error(f"❌ Cache delete pattern error for {pattern}: {e}")
            return 0

    def exists(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            return bool(client.exists(key))
        except Exception as e:
            logger.error(f"❌ Cache exists error for {key}: {e}")
            return False

    # Barber helpers

    def get_barber(self, barber_id: int) -> Optional[dict]:
        return self.get(barber_key(barber_id))

    def cache_barber(self, barber_id: int, data: dict) -> bool:
        return self.set(barber_key(barber_id), data, MEDIUM_TTL)

    def invalidate_barber(self, barber_id: int) -> None:
        """Drop everything derived from one barber: profile, stats, review stats and all searches"""
        self.delete(barber_key(barber_id), review_stats_key(barber_id))
        self.delete_pattern(f"{barber_stats_key(barber_id)}*")
        self.delete_pattern(f"{SEARCH_PREFIX}:barbers:*")


# Cache key builders

def barber_key(barber_id: int) -> str:
    return f"{BARBER_PREFIX}:{barber_id}"


def barber_stats_key(barber_id: int) -> str:
    return f"{STATS_PREFIX}:{BARBER_PREFIX}:{barber_id}"


def barber_booking_stats_key(barber_id: int) -> str:
    return f"{barber_stats_key(barber_id)}:bookings"


def review_stats_key(barber_id: int) -> str:
    return f"{REVIEWS_PREFIX}:stats:{barber_id}"


def service_key(service_id: int) -> str:
    return f"{SERVICE_PREFIX}:{service_id}"


def categories_key() -> str:
    return f"{CATEGORIES_PREFIX}:all"


def build_search_key(resource: str, **params) -> str:
    """Build a stable key for a search query from its parameters"""
    normalized = json.dumps({k: v for k, v in params.items() if v is not None}, sort_keys=True, default=str)
    digest = hashlib.sha256(normalized.encode()).hexdigest()[:16]
    return f"{SEARCH_PREFIX}:{resource}:{digest}"


# Global cache instance
cache = Cache()


def get_cache() -> Cache:
    """Dependency injection for the process-wide cache"""
    return cache
