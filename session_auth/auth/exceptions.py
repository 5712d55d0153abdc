"""Authentication specific exceptions."""
from __future__ import annotations

from ..exceptions import NotFoundError, RepositoryError, ServiceError


class AuthenticationError(ServiceError):
    """Raised when authentication fails."""


class AlreadyExistsError(ServiceError):
    """Raised when registering a username that is already taken."""


class UserNotFoundError(NotFoundError):
    """Raised when no account matches the given username."""


class BadCredentialsError(AuthenticationError):
    """Raised when a password does not match the stored hash."""


class InvalidTokenError(AuthenticationError):
    """Raised for any token that cannot be accepted.

    Malformed, expired, wrongly signed, wrongly typed and already redeemed
    tokens all map to this one error so callers cannot tell them apart.
    """

    def __init__(self, message: str = "Invalid token") -> None:
        super().__init__(message)


class AccessDeniedError(ServiceError):
    """Raised when an authenticated identity lacks a required role."""


class RegistryUnavailableError(RepositoryError):
    """Raised when the session registry store cannot be reached."""


__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "AlreadyExistsError",
    "UserNotFoundError",
    "BadCredentialsError",
    "InvalidTokenError",
    "RegistryUnavailableError",
]
