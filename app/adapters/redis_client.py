"""Process-wide Redis client.

``redis.Redis.from_url`` connects lazily, so building the client never
touches the network; the first command does.
"""

from __future__ import annotations

import logging

import redis

from app.core.config import RedisSettings, settings

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def create_redis_client(redis_settings: RedisSettings) -> redis.Redis:
    """Build a Redis client from settings."""
    return redis.Redis.from_url(
        redis_settings.url,
        socket_timeout=redis_settings.socket_timeout_seconds,
        socket_connect_timeout=redis_settings.connect_timeout_seconds,
    )


def get_redis_client() -> redis.Redis:
    """Get or create the Redis client singleton."""
    global _redis_client

    if _redis_client is None:
        _redis_client = create_redis_client(settings.redis)
        logger.info("redis.client_created")

    return _redis_client


def close_redis_client() -> None:
    """Close and forget the singleton; a later call builds a new one."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None
