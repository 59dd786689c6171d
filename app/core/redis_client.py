"""
Redis client used for cache invalidation.

Read paths elsewhere in the platform cache student, revenue and batch
collections under key prefixes; this service only ever deletes them.
"""

import redis.asyncio as redis

from app.core.config import settings

redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)


async def get_redis() -> redis.Redis:
    """FastAPI dependency returning the shared Redis client."""
    return redis_client
