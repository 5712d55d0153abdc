"""Signed access/refresh token codec built on PyJWT."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, ClassVar, Iterable, Protocol, Union
from uuid import uuid4

import jwt

from ..config import JWTSettings
from .constants import ROLES_CLAIM, TOKEN_TYPE_CLAIM, USER_ID_CLAIM, TokenType
from .exceptions import InvalidTokenError

LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_REQUIRED_CLAIMS = ["sub", "jti", "iat", "exp", TOKEN_TYPE_CLAIM]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    access: str
    refresh: str


@dataclass(frozen=True)
class IssuedPair:
    """A freshly signed pair plus the session linkage the caller registers."""

    tokens: TokenPair
    subject: str
    token_id: str
    issued_at: datetime
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class AccessClaims:
    subject: str
    token_id: str
    user_id: str
    roles: frozenset[str]
    issued_at: datetime
    expires_at: datetime

    token_type: ClassVar[TokenType] = TokenType.ACCESS


@dataclass(frozen=True)
class RefreshClaims:
    subject: str
    token_id: str
    issued_at: datetime
    expires_at: datetime

    token_type: ClassVar[TokenType] = TokenType.REFRESH


TokenClaims = Union[AccessClaims, RefreshClaims]


class TokenIdentity(Protocol):
    """Minimal shape of an account the codec can sign tokens for."""

    id: str
    username: str
    roles: Iterable[str]


class TokenCodec:
    """Create and verify HMAC signed tokens of two distinct types.

    Both halves of a pair share one random ``jti``. Expiry is checked against
    the injected clock instead of PyJWT's own wall clock so that every
    timestamp comparison goes through a single time source.
    """

    def __init__(
        self,
        secret_key: str,
        *,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=7),
        leeway: timedelta = timedelta(0),
        clock: Clock = utc_now,
    ) -> None:
        if access_ttl <= timedelta(0) or refresh_ttl <= timedelta(0):
            raise ValueError("Token lifetimes must be positive")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.leeway = leeway
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: JWTSettings, *, clock: Clock = utc_now) -> "TokenCodec":
        return cls(
            settings.secret_key,
            algorithm=settings.algorithm,
            access_ttl=timedelta(minutes=settings.access_token_expire_minutes),
            refresh_ttl=timedelta(minutes=settings.refresh_token_expire_minutes),
            leeway=timedelta(seconds=settings.leeway_seconds),
            clock=clock,
        )

    def issue_pair(self, user: TokenIdentity) -> IssuedPair:
        """Sign an access and a refresh token sharing one fresh token id."""

        token_id = uuid4().hex
        now = self.clock()
        access_expires = now + self.access_ttl
        refresh_expires = now + self.refresh_ttl

        access = self._encode(
            {
                "sub": user.username,
                "jti": token_id,
                TOKEN_TYPE_CLAIM: TokenType.ACCESS.value,
                USER_ID_CLAIM: str(user.id),
                ROLES_CLAIM: sorted(user.roles),
                "iat": now,
                "exp": access_expires,
            }
        )
        refresh = self._encode(
            {
                "sub": user.username,
                "jti": token_id,
                TOKEN_TYPE_CLAIM: TokenType.REFRESH.value,
                "iat": now,
                "exp": refresh_expires,
            }
        )
        LOGGER.info("Issued token pair for user '%s' (token id %s)", user.username, token_id)
        return IssuedPair(
            tokens=TokenPair(access=access, refresh=refresh),
            subject=user.username,
            token_id=token_id,
            issued_at=now,
            access_expires_at=access_expires,
            refresh_expires_at=refresh_expires,
        )

    def validate(self, token: str, expected_type: TokenType) -> TokenClaims:
        """Verify signature, expiry and type, returning typed claims.

        Every failure is reported as the same :class:`InvalidTokenError`.
        """

        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": _REQUIRED_CLAIMS, "verify_exp": False, "verify_iat": False},
            )
            claims = self._build_claims(payload)
        except (jwt.PyJWTError, KeyError, TypeError, ValueError) as exc:
            LOGGER.debug("Token rejected: %s", exc)
            raise InvalidTokenError() from exc

        if claims.token_type != expected_type:
            LOGGER.debug("Token rejected: expected %s, got %s", expected_type.value, claims.token_type.value)
            raise InvalidTokenError()
        if claims.expires_at + self.leeway <= self.clock():
            LOGGER.debug("Token rejected: expired at %s", claims.expires_at.isoformat())
            raise InvalidTokenError()
        return claims

    def validate_access(self, token: str) -> AccessClaims:
        claims = self.validate(token, TokenType.ACCESS)
        if not isinstance(claims, AccessClaims):
            raise InvalidTokenError()
        return claims

    def validate_refresh(self, token: str) -> RefreshClaims:
        claims = self.validate(token, TokenType.REFRESH)
        if not isinstance(claims, RefreshClaims):
            raise InvalidTokenError()
        return claims

    def subject_of(self, token: str) -> str:
        """Read the subject of a token the caller has already validated."""

        return str(self._unverified(token)["sub"])

    def token_id_of(self, token: str) -> str:
        """Read the token id of a token the caller has already validated."""

        return str(self._unverified(token)["jti"])

    def _encode(self, payload: dict[str, Any]) -> str:
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def _unverified(self, token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            raise InvalidTokenError() from exc
        if "sub" not in payload or "jti" not in payload:
            raise InvalidTokenError()
        return payload

    @staticmethod
    def _build_claims(payload: dict[str, Any]) -> TokenClaims:
        token_type = TokenType(payload[TOKEN_TYPE_CLAIM])
        subject = payload["sub"]
        token_id = payload["jti"]
        if not isinstance(subject, str) or not isinstance(token_id, str):
            raise TypeError("sub and jti must be strings")
        issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
        expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        if token_type is TokenType.ACCESS:
            roles = payload[ROLES_CLAIM]
            if not isinstance(roles, list):
                raise TypeError("roles must be a list")
            return AccessClaims(
                subject=subject,
                token_id=token_id,
                user_id=str(payload[USER_ID_CLAIM]),
                roles=frozenset(str(role) for role in roles),
                issued_at=issued_at,
                expires_at=expires_at,
            )
        return RefreshClaims(
            subject=subject,
            token_id=token_id,
            issued_at=issued_at,
            expires_at=expires_at,
        )


__all__ = [
    "AccessClaims",
    "Clock",
    "IssuedPair",
    "RefreshClaims",
    "TokenClaims",
    "TokenCodec",
    "TokenIdentity",
    "TokenPair",
    "utc_now",
]
