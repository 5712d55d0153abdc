"""Redis client configuration."""
from __future__ import annotations

import logging

import redis.asyncio as aioredis

from ..config import Settings

LOGGER = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


def configure_redis(settings: Settings) -> aioredis.Redis:
    """Create the shared Redis client on first use."""

    global _client
    if _client is None:
        _client = aioredis.from_url(
            settings.redis.url,
            decode_responses=True,
            socket_timeout=settings.redis.socket_timeout,
            socket_connect_timeout=settings.redis.socket_timeout,
        )
    return _client


async def close_redis() -> None:
    """Close the shared client if one was created."""

    global _client
    if _client is None:
        return
    await _client.aclose()
    _client = None
    LOGGER.info("Redis client closed")


__all__ = ["configure_redis", "close_redis"]
