"""
Hybrid in-memory + Redis rate limiting utilities
Counts live in process memory and are synced to Redis periodically so that
several workers share roughly the same window
"""

import logging
import os
import time
from threading import Lock
from typing import Optional

import redis
from fastapi import Request

from .config import RATE_LIMIT_ENABLED, REDIS_RETRY_COOLDOWN
from .errors import RateLimitedError

logger = logging.getLogger(__name__)

# Redis connection
redis_client: Optional[redis.Redis] = None
last_connect_failure = 0.0

# In-memory cache for rate limiting
# Format: {key: {'count': int, 'reset_time': int, 'last_redis_sync': int}}
memory_cache: dict[str, dict] = {}
cache_lock = Lock()

# Configuration
MEMORY_CACHE_SYNC_INTERVAL = 10  # Sync to Redis every 10 seconds
MEMORY_CACHE_CLEANUP_INTERVAL = 60  # Clean up expired entries every 60 seconds
last_cleanup_time = 0


def get_redis_client() -> redis.Redis:
    """
    Get or create the process-wide Redis client
    Uses REDIS_URL when set, otherwise the individual REDIS_* settings
    """
    global redis_client, last_connect_failure

    if redis_client is None:
        if time.time() - last_connect_failure < REDIS_RETRY_COOLDOWN:
            raise ConnectionError("Redis unavailable, waiting before reconnecting")

        logger.info("🔄 Initializing Redis connection...")

        redis_url = os.getenv("REDIS_URL")

        if redis_url:
            # Mask password in URL for logging
            if "@" in redis_url:
                url_parts = redis_url.split("@")
                protocol = url_parts[0].split(":")[0]
                masked_url = f"{protocol}:****@{url_parts[1]}"
            else:
                masked_url = "****"
            logger.info(f"📡 Using Redis URL connection: {masked_url}")

            try:
                client = redis.from_url(
                    redis_url,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30,
                    max_connections=20,
                )
                client.ping()
                logger.info("✅ Redis connected successfully via URL")
            except Exception as e:
                logger.error(f"❌ Failed to connect to Redis via URL: {str(e)}")
                last_connect_failure = time.time()
                raise
        else:
            redis_host = os.getenv("REDIS_HOST", "localhost")
            redis_port = int(os.getenv("REDIS_PORT", "6379"))
            redis_password = os.getenv("REDIS_PASSWORD", None)
            redis_db = int(os.getenv("REDIS_DB", "0"))
            redis_ssl = os.getenv("REDIS_SSL", "false").lower() == "true"

            logger.info(
                f"📡 Using Redis at {redis_host}:{redis_port} db={redis_db} "
                f"ssl={'on' if redis_ssl else 'off'} password={'set' if redis_password else 'not set'}"
            )

            try:
                client = redis.Redis(
                    host=redis_host,
                    port=redis_port,
                    password=redis_password,
                    db=redis_db,
                    ssl=redis_ssl,
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=True,
                    health_check_interval=30,
                    max_connections=20,
                )
                client.ping()
                logger.info(f"✅ Redis connected successfully at {redis_host}:{redis_port}")
            except Exception as e:
                logger.error(f"❌ Failed to connect to Redis: {str(e)}")
                last_connect_failure = time.time()
                raise

        redis_client = client

    return redis_client


def cleanup_expired_cache():
    """Remove expired entries from memory cache"""
    global last_cleanup_time
    current_time = int(time.time())

    if current_time - last_cleanup_time < MEMORY_CACHE_CLEANUP_INTERVAL:
        return

    with cache_lock:
        expired_keys = [
            k for k, v in memory_cache.items() if current_time >= v.get("reset_time", 0)
        ]
        for k in expired_keys:
            del memory_cache[k]

        if expired_keys:
            logger.debug(f"🧹 Cleaned up {len(expired_keys)} expired rate limit entries")

    last_cleanup_time = current_time


def check_rate_limit(
    key: str, limit: int, window_seconds: int, redis_client: Optional[redis.Redis] = None
) -> tuple[bool, int, int]:
    """Check if rate limit is exceeded using hybrid in-memory + Redis approach

    Args:
        key: Counter key for this client and route group
        limit: Maximum number of requests allowed
        window_seconds: Time window in seconds
        redis_client: Redis client instance, or None to count in memory only

    Returns:
        Tuple of (is_allowed, current_count, ttl_seconds)
    """
    current_time = int(time.time())

    cleanup_expired_cache()

    with cache_lock:
        if key not in memory_cache:
            entry = {
                "count": 0,
                "reset_time": current_time + window_seconds,
                "last_redis_sync": current_time,
            }
            # Resume a window another worker already started
            if redis_client is not None:
                try:
                    redis_count = redis_client.get(key)
                    redis_ttl = redis_client.ttl(key)
                    if redis_count and redis_ttl > 0:
                        entry["count"] = int(redis_count)
                        entry["reset_time"] = current_time + redis_ttl
                except Exception as e:
                    logger.warning(f"⚠️ Failed to load from Redis, using memory only: {e}")
            memory_cache[key] = entry

        cache_entry = memory_cache[key]

        if current_time >= cache_entry["reset_time"]:
            cache_entry["count"] = 0
            cache_entry["reset_time"] = current_time + window_seconds
            cache_entry["last_redis_sync"] = 0

        current_count = cache_entry["count"]
        is_allowed = current_count < limit

        if is_allowed:
            cache_entry["count"] += 1

        time_since_sync = current_time - cache_entry.get("last_redis_sync", 0)
        if redis_client is not None and time_since_sync >= MEMORY_CACHE_SYNC_INTERVAL:
            try:
                redis_client.set(key, cache_entry["count"], ex=window_seconds)
                cache_entry["last_redis_sync"] = current_time
                logger.debug(f"📡 Synced {key} to Redis: {cache_entry['count']}/{limit}")
            except Exception as e:
                logger.warning(f"⚠️ Failed to sync to Redis: {e}")

        ttl = cache_entry["reset_time"] - current_time
        return is_allowed, cache_entry["count"], max(0, ttl)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit_dependency(
    request: Request,
    limit: int,
    window_seconds: int,
    key_prefix: str = "rate_limit",
):
    """
    FastAPI dependency for per-IP rate limiting

    Args:
        request: FastAPI request object
        limit: Maximum requests allowed
        window_seconds: Time window in seconds
        key_prefix: Prefix for the counter key
    """
    if not RATE_LIMIT_ENABLED:
        return

    try:
        client = get_redis_client()
    except Exception:
        client = None

    key = f"{key_prefix}:{get_client_ip(request)}"
    is_allowed, current_count, ttl = check_rate_limit(key, limit, window_seconds, client)

    if not is_allowed:
        logger.warning(f"🚫 Rate limit EXCEEDED for {key} - {current_count}/{limit} requests used")
        raise RateLimitedError(
            f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
            headers={"Retry-After": str(ttl)},
        )

    request.state.rate_limit_remaining = limit - current_count
    request.state.rate_limit_limit = limit
    request.state.rate_limit_reset = int(time.time()) + ttl


def create_rate_limiter(limit: int, window_seconds: int, key_prefix: str = "rate_limit"):
    """
    Create a rate limiter dependency with specific parameters

    Example usage:
        auth_rate_limit = create_rate_limiter(limit=10, window_seconds=60, key_prefix="auth")

        router = APIRouter(prefix="/auth", dependencies=[Depends(auth_rate_limit)])
    """

    async def rate_limiter(request: Request):
        return await rate_limit_dependency(request, limit, window_seconds, key_prefix)

    return rate_limiter
