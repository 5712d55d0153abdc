"""Redis backed registry of live refresh-token ids per user."""
from __future__ import annotations

import logging
from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .exceptions import RegistryUnavailableError

LOGGER = logging.getLogger(__name__)


class SessionRegistry:
    """Track which token ids may still be redeemed, in issue order.

    Each username maps to one Redis list. Every command is a single round trip
    with no local caching, so a revocation is visible to the very next call.
    """

    def __init__(self, client: Redis, *, key_prefix: str = "auth:tokens", ttl_seconds: Optional[int] = None) -> None:
        self.client = client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, username: str) -> str:
        return f"{self.key_prefix}:{username}"

    async def add(self, username: str, token_id: str) -> None:
        """Append ``token_id`` to the user's live sessions."""

        key = self._key(username)
        try:
            pipe = self.client.pipeline()
            pipe.rpush(key, token_id)
            if self.ttl_seconds:
                # The newest entry expires last, so its lifetime bounds the whole list.
                pipe.expire(key, self.ttl_seconds)
            await pipe.execute()
        except RedisError as exc:
            raise self._unavailable("add", username, exc) from exc
        LOGGER.info("Registered session %s for user '%s'", token_id, username)

    async def remove(self, username: str, token_id: str) -> int:
        """Remove the first occurrence of ``token_id``.

        Returns the number of entries removed; ``0`` means the id was not live.
        """

        try:
            removed = int(await self.client.lrem(self._key(username), 1, token_id))
        except RedisError as exc:
            raise self._unavailable("remove", username, exc) from exc
        LOGGER.info("Removed session %s for user '%s' (removed=%d)", token_id, username, removed)
        return removed

    async def remove_all(self, username: str) -> None:
        """Forget every live session of the user."""

        try:
            await self.client.delete(self._key(username))
        except RedisError as exc:
            raise self._unavailable("remove_all", username, exc) from exc
        LOGGER.info("Removed all sessions for user '%s'", username)

    async def list_all(self, username: str) -> list[str]:
        try:
            return list(await self.client.lrange(self._key(username), 0, -1))
        except RedisError as exc:
            raise self._unavailable("list_all", username, exc) from exc

    @staticmethod
    def _unavailable(operation: str, username: str, exc: RedisError) -> RegistryUnavailableError:
        LOGGER.error("Session registry %s failed for user '%s': %s", operation, username, exc)
        return RegistryUnavailableError("Session registry unavailable", cause=exc)


__all__ = ["SessionRegistry"]
