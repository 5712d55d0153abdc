"""Pydantic schemas for authentication flows."""
from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .constants import BEARER_TOKEN_TYPE

# bcrypt only looks at the first 72 bytes of a secret and newer releases reject longer input.
MAX_PASSWORD_BYTES = 72


def _check_password_bytes(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
    return value


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=150)
    password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)
    email: str
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        if "@" not in value or value.startswith("@") or value.endswith("@"):
            raise ValueError("Invalid email address")
        return value

    @field_validator("username", "first_name", "last_name")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Must not be blank")
        return value

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, value: str) -> str:
        return _check_password_bytes(value)


class LoginRequest(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=MAX_PASSWORD_BYTES)

    @field_validator("new_password")
    @classmethod
    def validate_password_bytes(cls, value: str) -> str:
        return _check_password_bytes(value)


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = BEARER_TOKEN_TYPE
    expires_in: int


class IdentityResponse(BaseModel):
    user_id: str
    username: str
    roles: list[str]


class SessionsResponse(BaseModel):
    username: str
    token_ids: list[str]


__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "RefreshRequest",
    "ChangePasswordRequest",
    "TokenResponse",
    "IdentityResponse",
    "SessionsResponse",
]
