from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
import os
from pathlib import Path
import sys
import tempfile
from typing import Any, Optional
from uuid import uuid4

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from fastapi import FastAPI
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from session_auth import dependencies
from session_auth.auth.exceptions import AlreadyExistsError
from session_auth.auth.passwords import BcryptPasswordHasher
from session_auth.auth.service import AuthService
from session_auth.auth.token_registry import SessionRegistry
from session_auth.auth.tokens import TokenCodec
from session_auth.config import Settings
from session_auth.infrastructure.database import Base, User

TEST_SECRET = "test-secret-key-0123456789-abcdefghijklmnop"


class AsyncSessionWrapper:
    """Minimal async-compatible wrapper around a synchronous SQLAlchemy session."""

    def __init__(self, sync_session: Session) -> None:
        self._sync = sync_session

    def add(self, instance: object) -> None:
        self._sync.add(instance)

    async def execute(self, statement, *args, **kwargs):
        return self._sync.execute(statement, *args, **kwargs)

    async def commit(self) -> None:
        self._sync.commit()

    async def rollback(self) -> None:
        self._sync.rollback()

    async def flush(self) -> None:
        self._sync.flush()

    async def refresh(self, instance: object) -> None:
        self._sync.refresh(instance)

    async def close(self) -> None:
        self._sync.close()

    def __getattr__(self, item: str):
        return getattr(self._sync, item)


class AsyncSessionContext:
    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory
        self._sync: Session | None = None

    async def __aenter__(self) -> AsyncSessionWrapper:
        self._sync = self._factory()
        return AsyncSessionWrapper(self._sync)

    async def __aexit__(self, exc_type, exc, tb) -> None:
        assert self._sync is not None
        if exc_type is not None:
            self._sync.rollback()
        self._sync.close()


class AsyncSessionFactory:
    def __init__(self, factory: sessionmaker) -> None:
        self._factory = factory

    def __call__(self) -> AsyncSessionContext:
        return AsyncSessionContext(self._factory)


class FakePipeline:
    def __init__(self, client: "FakeRedis") -> None:
        self._client = client
        self._commands: list[tuple[str, tuple[Any, ...]]] = []

    def rpush(self, key: str, *values: str) -> "FakePipeline":
        self._commands.append(("rpush", (key, *values)))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self._commands.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list[Any]:
        results = []
        for name, args in self._commands:
            results.append(await getattr(self._client, name)(*args))
        self._commands.clear()
        return results


class FakeRedis:
    """In-memory stand-in for the Redis list commands used by the registry."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.ttls: dict[str, int] = {}

    def pipeline(self) -> FakePipeline:
        return FakePipeline(self)

    async def rpush(self, key: str, *values: str) -> int:
        self.lists.setdefault(key, []).extend(values)
        return len(self.lists[key])

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.lists:
            return False
        self.ttls[key] = seconds
        return True

    async def lrem(self, key: str, count: int, value: str) -> int:
        # Yield first so concurrent callers interleave the way network calls do.
        await asyncio.sleep(0)
        items = self.lists.get(key, [])
        removed = 0
        while value in items and (count == 0 or removed < count):
            items.remove(value)
            removed += 1
        if key in self.lists and not items:
            del self.lists[key]
            self.ttls.pop(key, None)
        return removed

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        items = self.lists.get(key, [])
        stop = None if end == -1 else end + 1
        return list(items[start:stop])

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.lists.pop(key, None) is not None:
                deleted += 1
            self.ttls.pop(key, None)
        return deleted

    async def aclose(self) -> None:
        return None


class FailingPipeline(FakePipeline):
    async def execute(self) -> list[Any]:
        raise RedisConnectionError("Connection refused")


class FailingRedis(FakeRedis):
    """Redis double whose every command fails as if the server were down."""

    def pipeline(self) -> FakePipeline:
        return FailingPipeline(self)

    async def lrem(self, key: str, count: int, value: str) -> int:
        raise RedisConnectionError("Connection refused")

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        raise RedisConnectionError("Connection refused")

    async def delete(self, *keys: str) -> int:
        raise RedisConnectionError("Connection refused")


class InMemoryUserStore:
    """Dictionary backed user store for service level tests."""

    def __init__(self) -> None:
        self.users: dict[str, User] = {}

    async def find_by_username(self, username: str) -> Optional[User]:
        return self.users.get(username)

    async def exists_by_username(self, username: str) -> bool:
        return username in self.users

    async def save(self, user: User) -> User:
        if user.id is None:
            user.id = str(uuid4())
        existing = self.users.get(user.username)
        if existing is not None and existing is not user:
            raise AlreadyExistsError(f"Username: {user.username} already exists")
        self.users[user.username] = user
        return user


class FrozenClock:
    """Controllable clock handed to the token codec."""

    def __init__(self) -> None:
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings() -> Settings:
    settings = Settings()
    settings.jwt.secret_key = TEST_SECRET
    settings.auth.bcrypt_rounds = 4
    return settings


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def codec(settings: Settings, clock: FrozenClock) -> TokenCodec:
    return TokenCodec.from_settings(settings.jwt, clock=clock)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def failing_redis() -> FailingRedis:
    return FailingRedis()


@pytest.fixture
def registry(fake_redis: FakeRedis, settings: Settings) -> SessionRegistry:
    return SessionRegistry(
        fake_redis,  # type: ignore[arg-type]
        key_prefix=settings.redis.key_prefix,
        ttl_seconds=settings.jwt.refresh_token_expire_minutes * 60,
    )


@pytest.fixture
def password_hasher() -> BcryptPasswordHasher:
    return BcryptPasswordHasher(rounds=4)


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def auth_service(
    user_store: InMemoryUserStore,
    password_hasher: BcryptPasswordHasher,
    codec: TokenCodec,
    registry: SessionRegistry,
    settings: Settings,
) -> AuthService:
    return AuthService(
        user_store,
        password_hasher,
        codec,
        registry,
        default_roles=settings.auth.default_roles,
    )


@pytest.fixture
def app(monkeypatch: pytest.MonkeyPatch, settings: Settings, fake_redis: FakeRedis) -> Iterator[FastAPI]:
    """Provide a FastAPI app wired to a temporary SQLite database and fake Redis."""

    fd, db_path = tempfile.mkstemp(prefix="session_auth_tests_", suffix=".db")
    os.close(fd)
    engine = create_engine(
        f"sqlite:///{db_path}",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    sync_session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    session_factory = AsyncSessionFactory(sync_session_factory)

    async def _get_db_session():
        async with session_factory() as session:
            yield session

    def _get_session_factory() -> AsyncSessionFactory:
        return session_factory

    original_get_settings = dependencies.get_settings
    original_get_db_session = dependencies.get_db_session
    original_get_redis_client = dependencies.get_redis_client
    monkeypatch.setattr(dependencies, "get_session_factory", _get_session_factory)

    from session_auth.main import create_app

    app = create_app(settings)
    app.dependency_overrides[original_get_settings] = lambda: settings
    app.dependency_overrides[original_get_db_session] = _get_db_session
    app.dependency_overrides[original_get_redis_client] = lambda: fake_redis
    app.state._session_factory = session_factory  # type: ignore[attr-defined]

    try:
        yield app
    finally:
        app.dependency_overrides.clear()
        engine.dispose()
        try:
            os.remove(db_path)
        except OSError:
            pass


@pytest.fixture
def session_factory(app: FastAPI) -> AsyncSessionFactory:
    """Expose the session factory for direct database access in tests."""

    return app.state._session_factory  # type: ignore[attr-defined]
