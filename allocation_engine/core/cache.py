"""
Caching utilities for read-side aggregations.
This module caches summary and waterfall projections in Redis with a short TTL.
Every mutation invalidates the allocation keyspace, so readers see at most
``settings.cache.ttl`` seconds of staleness.
"""
import json
from typing import Any, Optional
from datetime import timedelta
import redis.asyncio as redis
from allocation_engine.core.config import settings
from allocation_engine.core.logging import logger

# Build connection kwargs without password if not set
redis_kwargs = {
    "host": settings.redis.host,
    "port": settings.redis.port,
    "db": settings.redis.db,
    "decode_responses": False,
    "socket_connect_timeout": 5,
    "socket_timeout": 5,
    "max_connections": settings.redis.max_connections,
}

# Only include password if it's actually configured
if settings.redis.password_str:
    redis_kwargs["password"] = settings.redis.password_str

if settings.cache.enabled:
    try:
        redis_client: Optional[redis.Redis] = redis.Redis(**redis_kwargs)
        logger.info(f"Redis client initialized: {settings.redis.host}:{settings.redis.port}, db={settings.redis.db}")
        logger.debug(f"Authentication: {'Enabled' if settings.redis.password_str else 'Disabled'}")
    except Exception as e:
        logger.error(f"Failed to initialize Redis client: {e}")
        redis_client = None
else:
    logger.info("Caching disabled by configuration")
    redis_client = None

# Cache key prefix to avoid collisions
CACHE_PREFIX = "alloc:"


def get_cache_key(key: str) -> str:
    """Get prefixed cache key."""
    return f"{CACHE_PREFIX}{key}"


async def set_cache(
    key: str,
    value: Any,
    expire: Optional[timedelta] = None,
) -> bool:
    """
    Set a value in cache.

    Args:
        key: Cache key (unprefixed)
        value: JSON-serializable value to cache
        expire: Optional expiration time, defaults to the configured TTL

    Returns:
        True if successful, False otherwise
    """
    if redis_client is None:
        return False

    if expire is None:
        expire = timedelta(seconds=settings.cache.ttl)

    try:
        serialized_value = json.dumps(value, default=str)
        return bool(await redis_client.setex(get_cache_key(key), int(expire.total_seconds()), serialized_value))
    except Exception as e:
        logger.error(f"Cache set error: {e}")
        return False


async def get_cache(key: str) -> Optional[Any]:
    """
    Get a value from cache.

    Args:
        key: Cache key (unprefixed)

    Returns:
        Cached value or None if not found
    """
    if redis_client is None:
        return None

    try:
        value = await redis_client.get(get_cache_key(key))
        if value is None:
            return None
        return json.loads(value)
    except Exception as e:
        logger.error(f"Cache get error: {e}")
        return None


async def invalidate_cache_pattern(pattern: str = "*") -> int:
    """
    Invalidate all cache keys matching a pattern.

    Args:
        pattern: Cache key pattern without prefix (e.g., "waterfall:*")

    Returns:
        Number of keys deleted
    """
    if redis_client is None:
        return 0

    try:
        keys = []
        async for key in redis_client.scan_iter(match=get_cache_key(pattern)):
            keys.append(key)

        if keys:
            return await redis_client.delete(*keys)
        return 0
    except Exception as e:
        logger.error(f"Cache invalidate pattern error: {e}")
        return 0


async def check_redis_connection() -> bool:
    """Check if Redis connection is working."""
    if redis_client is None:
        return False

    try:
        return await redis_client.ping()
    except Exception as e:
        logger.error(f"Redis connection check failed: {e}")
        return False
