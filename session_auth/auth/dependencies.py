"""Authentication dependencies."""
from __future__ import annotations

from typing import Callable

from fastapi import Depends, Request
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..dependencies import get_db_session, get_redis_client, get_settings
from ..infrastructure.repositories.user_repo import UserRepository
from .authenticator import Identity, InboundAuthenticator, extract_bearer_token
from .exceptions import AccessDeniedError, AuthenticationError
from .passwords import BcryptPasswordHasher
from .service import AuthService
from .token_registry import SessionRegistry
from .tokens import TokenCodec


def get_token_codec(settings: Settings = Depends(get_settings)) -> TokenCodec:
    return TokenCodec.from_settings(settings.jwt)


def get_session_registry(
    settings: Settings = Depends(get_settings),
    client: Redis = Depends(get_redis_client),
) -> SessionRegistry:
    return SessionRegistry(
        client,
        key_prefix=settings.redis.key_prefix,
        ttl_seconds=settings.jwt.refresh_token_expire_minutes * 60,
    )


async def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
    codec: TokenCodec = Depends(get_token_codec),
    registry: SessionRegistry = Depends(get_session_registry),
) -> AuthService:
    return AuthService(
        UserRepository(session),
        BcryptPasswordHasher(settings.auth.bcrypt_rounds),
        codec,
        registry,
        default_roles=settings.auth.default_roles,
    )


async def get_authenticator(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
    codec: TokenCodec = Depends(get_token_codec),
) -> InboundAuthenticator:
    return InboundAuthenticator(codec, UserRepository(session), header_prefix=settings.jwt.header_prefix)


def get_bearer_token(request: Request, settings: Settings = Depends(get_settings)) -> str:
    """Return the raw bearer token or reject the request."""

    token = extract_bearer_token(request.headers.get(settings.jwt.header_name), settings.jwt.header_prefix)
    if token is None:
        raise AuthenticationError("Not authenticated")
    return token


async def get_current_identity(
    request: Request,
    settings: Settings = Depends(get_settings),
    authenticator: InboundAuthenticator = Depends(get_authenticator),
) -> Identity:
    """Dependency returning the currently authenticated identity."""

    identity = await authenticator.authenticate(request.headers.get(settings.jwt.header_name))
    if identity is None:
        raise AuthenticationError("Not authenticated")
    return identity


def require_roles(*allowed_roles: str) -> Callable[..., Identity]:
    """Ensure that the current identity possesses one of the provided roles."""

    async def dependency(identity: Identity = Depends(get_current_identity)) -> Identity:
        if not identity.has_any_role(*allowed_roles):
            raise AccessDeniedError("Insufficient permissions")
        return identity

    return dependency


__all__ = [
    "get_auth_service",
    "get_authenticator",
    "get_bearer_token",
    "get_current_identity",
    "get_session_registry",
    "get_token_codec",
    "require_roles",
]
