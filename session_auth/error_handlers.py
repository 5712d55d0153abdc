"""Map domain exceptions to HTTP responses."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .auth.exceptions import (
    AccessDeniedError,
    AlreadyExistsError,
    AuthenticationError,
    RegistryUnavailableError,
    UserNotFoundError,
)

LOGGER = logging.getLogger(__name__)


def _error_response(request: Request, status_code: int, message: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"url": str(request.url), "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers rendering every domain error as ``{"url", "message"}``."""

    @app.exception_handler(AlreadyExistsError)
    async def handle_already_exists(request: Request, exc: AlreadyExistsError) -> JSONResponse:
        return _error_response(request, status.HTTP_400_BAD_REQUEST, str(exc))

    @app.exception_handler(UserNotFoundError)
    async def handle_user_not_found(request: Request, exc: UserNotFoundError) -> JSONResponse:
        return _error_response(request, status.HTTP_401_UNAUTHORIZED, str(exc))

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError) -> JSONResponse:
        response = _error_response(request, status.HTTP_401_UNAUTHORIZED, str(exc))
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    @app.exception_handler(AccessDeniedError)
    async def handle_access_denied(request: Request, exc: AccessDeniedError) -> JSONResponse:
        return _error_response(request, status.HTTP_403_FORBIDDEN, str(exc))

    @app.exception_handler(RegistryUnavailableError)
    async def handle_registry_unavailable(request: Request, exc: RegistryUnavailableError) -> JSONResponse:
        LOGGER.error("Session registry unavailable for %s %s", request.method, request.url.path)
        return _error_response(request, status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = {".".join(str(part) for part in error["loc"][1:]) or "body": error["msg"] for error in exc.errors()}
        return _error_response(request, status.HTTP_400_BAD_REQUEST, errors)


__all__ = ["register_exception_handlers"]
