"""
Redis Client Management
Handles Redis connections for the plan and conversation stores
"""

from typing import Optional

import redis.asyncio as redis
from loguru import logger

from ..config import settings


def create_redis_client(url: Optional[str] = None) -> redis.Redis:
    """
    Create an asyncio Redis client

    Args:
        url: Redis connection URL (defaults to settings.redis_url)

    Returns:
        redis.Redis: Client with string responses and bounded socket timeouts
    """
    client = redis.from_url(
        url or settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_timeout=settings.REDIS_TIMEOUT,
        socket_connect_timeout=settings.REDIS_TIMEOUT
    )
    logger.info("Redis client created")
    return client


async def check_redis_health(client: redis.Redis) -> bool:
    """
    Check if Redis is healthy

    Returns:
        bool: True if Redis is accessible
    """
    try:
        await client.ping()
        return True
    except Exception as e:
        logger.warning(f"Redis health check failed: {e}")
        return False
