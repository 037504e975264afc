"""
Redis caching service for event listings.

CACHING STRATEGY
================

What we cache:
  - Event listing responses (paginated, JSON-serialized)
  - Cache key pattern: "events:list:<sorted query params>"

Invalidation strategy:
  - On event create/update/status change/delete
  - On any booking operation that moves an event's attendee counter
  - TTL-based expiry as safety net (5 minutes by default)

  All event list keys start with "events:list:" so we can SCAN and delete them.

Single events are never cached: the booking flow needs live attendee counts.
A Redis outage degrades to uncached reads; it never fails a request.
"""

import json
from typing import Any, Optional
from urllib.parse import urlencode

import redis.asyncio as redis
from redis.exceptions import RedisError
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

EVENT_LIST_PREFIX = "events:list:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or unreachable."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except (RedisError, OSError) as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_event_list_key(params: dict[str, Any]) -> str:
    present = {k: str(v) for k, v in sorted(params.items()) if v is not None}
    return EVENT_LIST_PREFIX + urlencode(present)


async def get_cached_events(params: dict[str, Any]) -> Optional[dict]:
    """Retrieve cached event list response."""
    client = await get_redis()
    if not client:
        return None

    key = make_event_list_key(params)
    try:
        data = await client.get(key)
    except (RedisError, OSError) as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=data is not None)
    if data:
        logger.debug("cache_hit", key=key)
        return json.loads(data)
    logger.debug("cache_miss", key=key)
    return None


async def set_cached_events(params: dict[str, Any], data: dict) -> None:
    """Cache event list response with TTL."""
    client = await get_redis()
    if not client:
        return

    key = make_event_list_key(params)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except (RedisError, OSError) as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    """
    Invalidate all cached event listings.
    Uses SCAN to find and delete all keys matching the prefix.
    """
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{EVENT_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except (RedisError, OSError) as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except (RedisError, OSError) as e:
        return {"status": "error", "error": str(e)}
