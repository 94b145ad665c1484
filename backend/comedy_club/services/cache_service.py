"""
Redis cache for the programme listing.

What we cache:
  - Programme pages, stored as the serialized EventListResponse
  - Key: "programme:list:{page}:{page_size}:{upcoming|all}"

Invalidation:
  - Adding a show drops every programme page (prefix SCAN + UNLINK)
  - REDIS_CACHE_TTL bounds staleness if an invalidation is missed

Seat availability is never cached. A stale remaining-seats figure is exactly
what lets a show be oversold, so it always comes from the database.

Redis is optional. Disabled or unreachable, every read is a miss and every
write is skipped; the programme is then served straight from PostgreSQL.
"""

from typing import Optional

import redis.asyncio as redis
from pydantic import ValidationError
from redis.exceptions import RedisError

from comedy_club.schemas.event import EventListResponse
from comedy_club.core.config import get_settings
from comedy_club.core.metrics import record_cache_operation
from comedy_club.core.logging import get_logger

logger = get_logger(__name__)

PROGRAMME_KEY_PREFIX = "programme:list:"

_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Shared client, connected on first use. None when Redis is off or down."""
    global _client
    settings = get_settings()
    if not settings.REDIS_ENABLED:
        return None
    if _client is not None:
        return _client

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("redis_connection_failed", url=settings.REDIS_URL, error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    _client = client
    return _client


async def close_redis() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


def programme_key(page: int, page_size: int, upcoming_only: bool) -> str:
    scope = "upcoming" if upcoming_only else "all"
    return f"{PROGRAMME_KEY_PREFIX}{page}:{page_size}:{scope}"


async def get_cached_programme(
    page: int,
    page_size: int,
    upcoming_only: bool,
) -> Optional[EventListResponse]:
    client = await get_redis()
    if client is None:
        return None

    key = programme_key(page, page_size, upcoming_only)
    try:
        raw = await client.get(key)
    except RedisError as e:
        logger.error("cache_get_error", key=key, error=str(e))
        return None

    record_cache_operation("get", hit=raw is not None)
    if raw is None:
        return None
    try:
        return EventListResponse.model_validate_json(raw)
    except ValidationError:
        # Written by an older release with a different shape
        logger.warning("cache_entry_unreadable", key=key)
        return None


async def set_cached_programme(
    page: int,
    page_size: int,
    upcoming_only: bool,
    listing: EventListResponse,
) -> None:
    client = await get_redis()
    if client is None:
        return

    key = programme_key(page, page_size, upcoming_only)
    ttl = get_settings().REDIS_CACHE_TTL
    try:
        await client.set(key, listing.model_dump_json(), ex=ttl)
    except RedisError as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_programme_cache() -> int:
    client = await get_redis()
    if client is None:
        return 0

    batch, dropped = [], 0
    try:
        async for key in client.scan_iter(match=f"{PROGRAMME_KEY_PREFIX}*", count=100):
            batch.append(key)
            if len(batch) == 100:
                dropped += await client.unlink(*batch)
                batch.clear()
        if batch:
            dropped += await client.unlink(*batch)
    except RedisError as e:
        logger.error("cache_invalidation_error", error=str(e))
        return dropped

    logger.info("programme_cache_invalidated", keys_deleted=dropped)
    return dropped


async def get_cache_stats() -> dict:
    client = await get_redis()
    if client is None:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
    except RedisError as e:
        return {"status": "error", "error": str(e)}

    hits = info.get("keyspace_hits", 0)
    misses = info.get("keyspace_misses", 0)
    return {
        "status": "connected",
        "hits": hits,
        "misses": misses,
        "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
    }
