"""Auth API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from .authenticator import Identity
from .constants import ADMIN_ROLE_NAME
from .dependencies import (
    get_auth_service,
    get_bearer_token,
    get_current_identity,
    get_session_registry,
    require_roles,
)
from .schemas import (
    ChangePasswordRequest,
    IdentityResponse,
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    SessionsResponse,
    TokenResponse,
)
from .service import AuthService
from .token_registry import SessionRegistry
from .tokens import IssuedPair

router = APIRouter()


def _token_response(issued: IssuedPair) -> TokenResponse:
    expires_in = int((issued.access_expires_at - issued.issued_at).total_seconds())
    return TokenResponse(
        access_token=issued.tokens.access,
        refresh_token=issued.tokens.refresh,
        expires_in=expires_in,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    """Create an account and open its first session."""

    return _token_response(await service.register(payload))


@router.post("/login", response_model=TokenResponse)
async def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> TokenResponse:
    return _token_response(await service.login(payload.username, payload.password))


@router.post("/refresh-pair-token", response_model=TokenResponse)
async def refresh_pair_token(
    payload: RefreshRequest, service: AuthService = Depends(get_auth_service)
) -> TokenResponse:
    """Redeem a refresh token for a new pair; the old refresh token stops working."""

    return _token_response(await service.refresh(payload.refresh_token))


@router.post("/logout-current-device", status_code=status.HTTP_204_NO_CONTENT)
async def logout_current_device(
    token: str = Depends(get_bearer_token), service: AuthService = Depends(get_auth_service)
) -> Response:
    await service.logout_current_device(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/logout-all-device", status_code=status.HTTP_204_NO_CONTENT)
async def logout_all_devices(
    token: str = Depends(get_bearer_token), service: AuthService = Depends(get_auth_service)
) -> Response:
    await service.logout_all_devices(token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    payload: ChangePasswordRequest,
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
) -> Response:
    await service.change_password(token, payload.current_password, payload.new_password)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=IdentityResponse)
async def read_current_identity(identity: Identity = Depends(get_current_identity)) -> IdentityResponse:
    """Return details about the currently authenticated user."""

    return IdentityResponse(user_id=identity.user_id, username=identity.username, roles=sorted(identity.roles))


@router.get("/sessions", response_model=SessionsResponse)
async def list_own_sessions(
    token: str = Depends(get_bearer_token), service: AuthService = Depends(get_auth_service)
) -> SessionsResponse:
    token_ids = await service.list_sessions(token)
    return SessionsResponse(username=service.codec.subject_of(token), token_ids=token_ids)


@router.get("/sessions/{username}", response_model=SessionsResponse)
async def list_user_sessions(
    username: str,
    _: Identity = Depends(require_roles(ADMIN_ROLE_NAME)),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionsResponse:
    """Administrative view of another user's live sessions."""

    return SessionsResponse(username=username, token_ids=await registry.list_all(username))


__all__ = ["router"]
