# src/tokengate/api/v1/endpoints/auth.py
"""Token refresh, logout and identity endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from tokengate.api.v1.dependencies import (
    CurrentAuthDep,
    OptionalAuthDep,
    RotationPolicyDep,
    SessionDep,
)
from tokengate.api.v1.rate_limit import RateLimiter
from tokengate.core.context import DeviceContext
from tokengate.core.errors import Err, token_error
from tokengate.core.settings import settings
from tokengate.models.refresh_token import REVOKED_LOGOUT
from tokengate.schemas.auth import (
    AuthContextResponse,
    RefreshRequest,
    SessionResponse,
    TokenPair,
)
from tokengate.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

refresh_limiter = RateLimiter(max_requests=settings.refresh_rate_limit_max_requests)
default_limiter = RateLimiter()

_ERROR_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorEnvelope},
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorEnvelope},
}


@router.post(
    "/refresh",
    summary="Exchange a refresh token for a new token pair",
    response_model=TokenPair,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(refresh_limiter)],
)
async def refresh_tokens(
    payload: RefreshRequest,
    request: Request,
    db: SessionDep,
    rotation: RotationPolicyDep,
) -> TokenPair:
    """Rotate a refresh token.

    Presenting a token that was already used revokes its whole family and
    the client has to sign in again.
    """
    outcome = rotation.refresh_tokens(db, payload.refresh_token, DeviceContext.from_request(request))
    if isinstance(outcome, Err):
        logger.info("Refresh rejected: %s (%s)", outcome.kind.value, outcome.detail)
        raise token_error(outcome.kind)
    return outcome.value


@router.post(
    "/logout",
    summary="Revoke a refresh token owned by the caller",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(default_limiter)],
)
async def logout(
    payload: RefreshRequest,
    auth: CurrentAuthDep,
    db: SessionDep,
    rotation: RotationPolicyDep,
) -> Response:
    """Revoke the given refresh token. Unknown or already revoked tokens are ignored."""
    rotation.revoke_token(db, payload.refresh_token, REVOKED_LOGOUT, user_id=auth.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/me",
    summary="Return the authenticated caller",
    response_model=AuthContextResponse,
    responses=_ERROR_RESPONSES,
    dependencies=[Depends(default_limiter)],
)
async def read_me(auth: CurrentAuthDep) -> AuthContextResponse:
    return AuthContextResponse.model_validate(auth)


@router.get(
    "/session",
    summary="Describe the caller if a valid token was presented",
    response_model=SessionResponse,
)
async def read_session(auth: OptionalAuthDep) -> SessionResponse:
    """Anonymous callers get ``authenticated: false`` rather than an error."""
    if auth is None:
        return SessionResponse(authenticated=False)
    return SessionResponse(authenticated=True, user_id=auth.user_id, email=auth.email)
