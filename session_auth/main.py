"""FastAPI application factory."""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from . import dependencies
from .auth.constants import ADMIN_ROLE_NAME, DEFAULT_ROLE_NAME
from .auth.passwords import BcryptPasswordHasher
from .auth.router import router as auth_router
from .config import Settings
from .error_handlers import register_exception_handlers
from .infrastructure.database import User
from .infrastructure.redis import close_redis
from .infrastructure.repositories.user_repo import UserRepository
from .logging import setup_logging

LOGGER = logging.getLogger(__name__)


async def ensure_bootstrap_admin(settings: Settings) -> None:
    """Create the configured administrator account when it is missing."""

    bootstrap = settings.bootstrap
    session_factory = dependencies.get_session_factory()
    async with session_factory() as session:  # type: ignore[call-arg]
        user_repo = UserRepository(session)
        if await user_repo.exists_by_username(bootstrap.admin_username):
            return
        await user_repo.save(
            User(
                username=bootstrap.admin_username,
                email=bootstrap.admin_email,
                first_name=bootstrap.admin_first_name,
                last_name=bootstrap.admin_last_name,
                hashed_password=BcryptPasswordHasher(settings.auth.bcrypt_rounds).hash(bootstrap.admin_password),
                roles=[ADMIN_ROLE_NAME, DEFAULT_ROLE_NAME],
            )
        )
        LOGGER.info("Bootstrap administrator '%s' created", bootstrap.admin_username)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or dependencies.get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.api.title,
        description=settings.api.description,
        version=settings.api.version,
        docs_url=settings.api.docs_url,
        redoc_url=settings.api.redoc_url,
        openapi_url=settings.api.openapi_url,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_allow_origins,
        allow_credentials=settings.api.cors_allow_credentials,
        allow_methods=settings.api.cors_allow_methods,
        allow_headers=settings.api.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware, minimum_size=settings.api.gzip_minimum_size)

    register_exception_handlers(app)
    app.include_router(auth_router, prefix="/auth", tags=["auth"])

    @app.on_event("startup")
    async def _bootstrap_admin_user() -> None:
        if settings.bootstrap.enabled:
            await ensure_bootstrap_admin(settings)

    @app.on_event("shutdown")
    async def _close_redis() -> None:
        await close_redis()

    return app


app = create_app()
