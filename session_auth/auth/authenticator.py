"""Per-request bearer token authentication."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..infrastructure.database import User
from .exceptions import InvalidTokenError
from .tokens import TokenCodec

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated principal handed to downstream authorization."""

    user_id: str
    username: str
    roles: frozenset[str]

    def has_any_role(self, *roles: str) -> bool:
        return not roles or bool(self.roles.intersection(roles))


def extract_bearer_token(header_value: Optional[str], prefix: str = "Bearer") -> Optional[str]:
    """Return the token of a ``"<prefix> <token>"`` header value, if well formed."""

    if not header_value:
        return None
    start = f"{prefix} "
    if not header_value.startswith(start):
        return None
    token = header_value[len(start):].strip()
    return token or None


class UserLookup(Protocol):
    async def find_by_username(self, username: str) -> Optional[User]: ...


class InboundAuthenticator:
    """Turn an ``Authorization`` header value into an :class:`Identity`.

    Only the token signature, expiry and type are checked; the session
    registry is never consulted. Roles come from the freshly loaded user so
    role changes apply on the next request.
    """

    def __init__(self, codec: TokenCodec, users: UserLookup, *, header_prefix: str = "Bearer") -> None:
        self.codec = codec
        self.users = users
        self.header_prefix = header_prefix

    def extract_token(self, header_value: Optional[str]) -> Optional[str]:
        return extract_bearer_token(header_value, self.header_prefix)

    async def authenticate(self, header_value: Optional[str]) -> Optional[Identity]:
        token = self.extract_token(header_value)
        if token is None:
            return None
        try:
            claims = self.codec.validate_access(token)
        except InvalidTokenError:
            return None

        user = await self.users.find_by_username(claims.subject)
        if user is None:
            LOGGER.warning("Valid access token for unknown user '%s'", claims.subject)
            return None
        return Identity(user_id=str(user.id), username=user.username, roles=frozenset(user.roles or ()))


__all__ = ["Identity", "InboundAuthenticator", "UserLookup", "extract_bearer_token"]
