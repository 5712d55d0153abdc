"""User repository implementation."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import User
from .base import AsyncRepository
from ...auth.exceptions import AlreadyExistsError

LOGGER = logging.getLogger(__name__)


class UserRepository(AsyncRepository[User]):
    """Repository for user specific queries."""

    model = User

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    async def find_by_username(self, username: str) -> Optional[User]:
        stmt = select(User).where(User.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_by_username(self, username: str) -> bool:
        stmt = select(func.count()).select_from(User).where(User.username == username)
        result = await self.session.execute(stmt)
        return bool(result.scalar_one())

    async def save(self, user: User) -> User:
        """Insert or update a user and commit.

        The unique username constraint is the final arbiter for concurrent
        registrations, so an integrity violation is reported as a conflict.
        """

        try:
            await self.add(user)
            await self.commit()
        except IntegrityError as exc:
            await self.rollback()
            LOGGER.warning("Username '%s' rejected by unique constraint", user.username)
            raise AlreadyExistsError(f"Username: {user.username} already exists") from exc
        await self.session.refresh(user)
        return user


__all__ = ["UserRepository"]
