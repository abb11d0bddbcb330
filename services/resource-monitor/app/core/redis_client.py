"""
Resource Monitor — Redis client singleton (broadcast publishing + SSE subscriptions)
"""
import redis.asyncio as aioredis
from app.core.config import get_settings

settings = get_settings()

_redis_client: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    global _redis_client
    if _redis_client is None:
        _redis_client = aioredis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=settings.HEALTH_CHECK_TIMEOUT,
        )
    return _redis_client


def new_redis() -> aioredis.Redis:
    """Get a dedicated client, owned by the caller (Celery firings run on their own loop)."""
    return aioredis.from_url(settings.redis_url, decode_responses=True)


async def close_redis():
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
