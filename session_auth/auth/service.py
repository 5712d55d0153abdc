"""Authentication service: register, login, token rotation and logout."""
from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from ..infrastructure.database import User
from .exceptions import AlreadyExistsError, BadCredentialsError, InvalidTokenError, UserNotFoundError
from .passwords import PasswordHasher
from .schemas import RegisterRequest
from .token_registry import SessionRegistry
from .tokens import AccessClaims, IssuedPair, TokenCodec

LOGGER = logging.getLogger(__name__)


class UserStore(Protocol):
    """Username keyed account lookup and persistence."""

    async def find_by_username(self, username: str) -> Optional[User]: ...

    async def exists_by_username(self, username: str) -> bool: ...

    async def save(self, user: User) -> User: ...


class AuthService:
    """Ties accounts, signed tokens and the session registry together.

    Only refresh-token ids are registered. Access tokens stay valid until their
    own expiry even after logout.
    """

    def __init__(
        self,
        user_store: UserStore,
        password_hasher: PasswordHasher,
        codec: TokenCodec,
        registry: SessionRegistry,
        *,
        default_roles: Sequence[str],
    ) -> None:
        self.user_store = user_store
        self.password_hasher = password_hasher
        self.codec = codec
        self.registry = registry
        self.default_roles = list(default_roles)

    async def register(self, payload: RegisterRequest) -> IssuedPair:
        LOGGER.info("Registering user '%s'", payload.username)
        if await self.user_store.exists_by_username(payload.username):
            LOGGER.warning("Attempt to register existing username '%s'", payload.username)
            raise AlreadyExistsError(f"Username: {payload.username} already exists")

        user = User(
            username=payload.username,
            email=payload.email,
            first_name=payload.first_name,
            last_name=payload.last_name,
            hashed_password=self.password_hasher.hash(payload.password),
            roles=list(self.default_roles),
        )
        user = await self.user_store.save(user)
        return await self._open_session(user)

    async def login(self, username: str, password: str) -> IssuedPair:
        LOGGER.info("User '%s' attempting to login", username)
        user = await self._get_user(username)
        if not self.password_hasher.matches(password, user.hashed_password):
            LOGGER.warning("Invalid password for user '%s'", username)
            raise BadCredentialsError("Invalid credentials")
        return await self._open_session(user)

    async def refresh(self, refresh_token: str) -> IssuedPair:
        """Redeem a refresh token once and hand out a brand new pair."""

        claims = self.codec.validate_refresh(refresh_token)

        # LREM is atomic: of several concurrent redemptions only one sees a removal.
        removed = await self.registry.remove(claims.subject, claims.token_id)
        if not removed:
            LOGGER.warning(
                "Refresh token %s for user '%s' is no longer live", claims.token_id, claims.subject
            )
            raise InvalidTokenError()

        user = await self._get_user(claims.subject)
        issued = await self._open_session(user)
        LOGGER.info("Rotated session %s -> %s for user '%s'", claims.token_id, issued.token_id, user.username)
        return issued

    async def logout_current_device(self, access_token: str) -> None:
        claims = self._access_claims(access_token)
        LOGGER.info("Logging out current device for user '%s'", claims.subject)
        await self.registry.remove(claims.subject, claims.token_id)

    async def logout_all_devices(self, access_token: str) -> None:
        claims = self._access_claims(access_token)
        LOGGER.info("Logging out all devices for user '%s'", claims.subject)
        await self.registry.remove_all(claims.subject)

    async def change_password(self, access_token: str, current_password: str, new_password: str) -> None:
        """Replace the password and revoke every outstanding refresh token."""

        claims = self._access_claims(access_token)
        user = await self._get_user(claims.subject)
        if not self.password_hasher.matches(current_password, user.hashed_password):
            LOGGER.warning("Password change rejected for user '%s'", user.username)
            raise BadCredentialsError("Invalid credentials")
        user.hashed_password = self.password_hasher.hash(new_password)
        await self.user_store.save(user)
        await self.registry.remove_all(user.username)
        LOGGER.info("Password changed for user '%s'", user.username)

    async def list_sessions(self, access_token: str) -> list[str]:
        claims = self._access_claims(access_token)
        return await self.registry.list_all(claims.subject)

    async def _open_session(self, user: User) -> IssuedPair:
        issued = self.codec.issue_pair(user)
        await self.registry.add(issued.subject, issued.token_id)
        return issued

    async def _get_user(self, username: str) -> User:
        user = await self.user_store.find_by_username(username)
        if user is None:
            LOGGER.warning("Username not found: '%s'", username)
            raise UserNotFoundError(f"Not found username: {username}")
        return user

    def _access_claims(self, access_token: str) -> AccessClaims:
        return self.codec.validate_access(access_token)


__all__ = ["AuthService", "UserStore"]
