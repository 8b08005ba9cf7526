"""Redis connection for the lifecycle notifier (Pub/Sub only).

Offers and payments never live in Redis; PostgreSQL is the store.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """Shared client; the connection pool is created on first use."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            health_check_interval=30,
        )
    return _client


async def ping_redis() -> bool:
    """Startup connectivity check. Events are fire-and-forget, so a dead Redis is not fatal."""
    try:
        client = await get_redis()
        return bool(await client.ping())
    except (RedisError, OSError):
        logger.warning("Redis unreachable at startup; lifecycle events will be dropped")
        return False


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
