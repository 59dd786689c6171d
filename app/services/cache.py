"""Cache invalidation for collections cached by the read side."""

import logging

from redis.asyncio import Redis

from app.core.config import settings

logger = logging.getLogger(__name__)


async def clear_cache(redis: Redis, pattern: str) -> int:
    """Delete every key matching `pattern`. Returns the number of keys removed."""
    keys = [key async for key in redis.scan_iter(match=pattern, count=500)]
    if not keys:
        return 0
    return await redis.delete(*keys)


async def invalidate_switch_caches(redis: Redis) -> None:
    """Drop the student, student revenue and batch collections."""
    for pattern in settings.CACHE_INVALIDATION_PATTERNS:
        removed = await clear_cache(redis, pattern)
        logger.debug("Cleared %d cache keys for %s", removed, pattern)
