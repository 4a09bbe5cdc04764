"""
Redis caching service for dinner event listings.

CACHING STRATEGY
================

What we cache:
  - The dinner event calendar of a season (JSON-serialized list response)
  - Cache key pattern: "dinner_events:season={season_id}"

Why:
  - The season calendar is read by every household page and the kitchen view
  - It only changes when the schedule is (re)generated, teams are assigned,
    or the daily job consumes past dinners

Invalidation strategy:
  - Schedule generation, team assignment, season update/delete and daily
    maintenance delete the season's key
  - Season-wide changes we cannot scope (activation) drop every
    "dinner_events:*" key with SCAN
  - TTL-based expiry as safety net (5 minutes)

Orders are never cached: the reconciler must always plan against the
current stored state, otherwise the optimistic lock check is meaningless.

Every Redis failure is logged and treated as a cache miss; the API keeps
working without Redis.
"""

import json
from typing import Optional

import redis.asyncio as redis
from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None

DINNER_EVENTS_PREFIX = "dinner_events:"


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
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
            # Test connection
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
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


def _make_dinner_events_key(season_id: int) -> str:
    return f"{DINNER_EVENTS_PREFIX}season={season_id}"


async def get_cached_dinner_events(season_id: int) -> Optional[dict]:
    """Retrieve a cached season calendar."""
    client = await get_redis()
    if not client:
        return None

    key = _make_dinner_events_key(season_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_dinner_events(season_id: int, data: dict) -> None:
    """Cache a season calendar with TTL."""
    client = await get_redis()
    if not client:
        return

    key = _make_dinner_events_key(season_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=True)
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_dinner_event_cache(season_id: Optional[int] = None) -> None:
    """
    Drop a season's cached calendar, or every cached calendar when no
    season is given (SCAN over the key prefix).
    """
    client = await get_redis()
    if not client:
        return

    try:
        if season_id is not None:
            deleted = await client.delete(_make_dinner_events_key(season_id))
        else:
            deleted = 0
            async for key in client.scan_iter(match=f"{DINNER_EVENTS_PREFIX}*", count=100):
                await client.delete(key)
                deleted += 1
        logger.info("cache_invalidated", season_id=season_id, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        keyspace = await client.info("keyspace")
        return {
            "status": "connected",
            "hits": info.get("keyspace_hits", 0),
            "misses": info.get("keyspace_misses", 0),
            "hit_rate": (
                round(
                    info.get("keyspace_hits", 0)
                    / max(info.get("keyspace_hits", 0) + info.get("keyspace_misses", 0), 1)
                    * 100,
                    2,
                )
            ),
            "keys": keyspace,
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
