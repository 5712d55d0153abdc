"""Repository package exports."""

from .base import AsyncRepository
from .user_repo import UserRepository

__all__ = ["AsyncRepository", "UserRepository"]
