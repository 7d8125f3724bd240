"""
Redis Configuration

Async Redis client backing the rate limiter. Redis is optional: when it
cannot be reached at startup the API runs with a None client and the rate
limiter fails open.
"""

import logging

from redis.asyncio import Redis, from_url
from redis.exceptions import RedisError

from schoolhub.core.config import Settings

logger = logging.getLogger(__name__)


async def init_redis(settings: Settings) -> Redis | None:
    """
    Create a Redis client and check the connection.

    Call this on application startup.

    Returns:
        Connected client, or None if Redis is unreachable
    """
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.redis_socket_timeout,
        socket_connect_timeout=settings.redis_socket_timeout,
    )

    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.warning(f"Redis unavailable, rate limiting disabled: {e}")
        await client.aclose()
        return None

    logger.info("Redis connection established")
    return client


async def close_redis(client: Redis | None) -> None:
    """Close a Redis connection."""
    if client is not None:
        await client.aclose()
