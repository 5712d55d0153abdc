"""Password hashing built on bcrypt."""
from __future__ import annotations

from typing import Protocol

import bcrypt


class PasswordHasher(Protocol):
    """Turns a raw secret into a comparable hash and checks matches."""

    def hash(self, raw: str) -> str: ...

    def matches(self, raw: str, hashed: str) -> bool: ...


class BcryptPasswordHasher:
    """Default :class:`PasswordHasher` using bcrypt with a per-hash salt."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, raw: str) -> str:
        return bcrypt.hashpw(raw.encode(), bcrypt.gensalt(rounds=self.rounds)).decode()

    def matches(self, raw: str, hashed: str) -> bool:
        try:
            return bcrypt.checkpw(raw.encode(), hashed.encode())
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False


__all__ = ["PasswordHasher", "BcryptPasswordHasher"]
