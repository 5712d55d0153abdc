"""Constants used across the authentication package."""
from __future__ import annotations

from enum import Enum


class TokenType(str, Enum):
    """Discriminates the two kinds of signed tokens."""

    ACCESS = "access"
    REFRESH = "refresh"


DEFAULT_ROLE_NAME = "ROLE_USER"
ADMIN_ROLE_NAME = "ROLE_ADMIN"
TOKEN_TYPE_CLAIM = "type"
USER_ID_CLAIM = "user_id"
ROLES_CLAIM = "roles"
BEARER_TOKEN_TYPE = "bearer"

__all__ = [
    "TokenType",
    "DEFAULT_ROLE_NAME",
    "ADMIN_ROLE_NAME",
    "TOKEN_TYPE_CLAIM",
    "USER_ID_CLAIM",
    "ROLES_CLAIM",
    "BEARER_TOKEN_TYPE",
]
