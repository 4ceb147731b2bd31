"""Shared API dependencies: the auth gate in required and optional modes.

Identity never lives on the request object. Route handlers receive an
``AuthContext`` (or ``None``) as an ordinary parameter.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from tokengate.core.context import AuthContext
from tokengate.core.errors import AuthErrorKind, Err, Ok, Result, StoreError, auth_error
from tokengate.db.session import get_db
from tokengate.repositories.user_repo import UserRepository
from tokengate.services.rotation import RotationPolicy, get_rotation_policy
from tokengate.services.token_issuer import TokenIssuer, get_token_issuer

logger = logging.getLogger(__name__)

# HTTP Bearer scheme; missing or non-bearer headers yield None instead of a 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]
BearerDep = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_token_issuer_dep() -> TokenIssuer:
    return get_token_issuer()


def get_rotation_policy_dep() -> RotationPolicy:
    return get_rotation_policy()


TokenIssuerDep = Annotated[TokenIssuer, Depends(get_token_issuer_dep)]
RotationPolicyDep = Annotated[RotationPolicy, Depends(get_rotation_policy_dep)]


def resolve_auth_context(
    credentials: HTTPAuthorizationCredentials | None,
    db: Session,
    issuer: TokenIssuer,
) -> Result[AuthContext, AuthErrorKind]:
    """Run every auth check and return the caller's context or the failing kind.

    Raises:
        StoreError: If the user store cannot be reached.
    """
    if credentials is None or not credentials.credentials:
        return Err(AuthErrorKind.UNAUTHORIZED, "missing bearer credentials")

    verified = issuer.verify_access_token(credentials.credentials)
    if isinstance(verified, Err):
        return verified
    payload = verified.value

    user = UserRepository(db).get_by_id(payload.sub)
    if user is None or not user.is_active:
        return Err(AuthErrorKind.USER_NOT_FOUND, f"no active user {payload.sub}")
    if not user.verified:
        return Err(AuthErrorKind.EMAIL_NOT_VERIFIED, f"user {user.id} unverified")

    return Ok(AuthContext(user_id=user.id, email=user.email, session_id=payload.session_id))


def require_auth(credentials: BearerDep, db: SessionDep, issuer: TokenIssuerDep) -> AuthContext:
    """Return the caller's context or reject the request.

    Raises:
        ApiError: 401 or 403 depending on the failing check.
        StoreError: If the store is unavailable; nobody is authenticated then.
    """
    outcome = resolve_auth_context(credentials, db, issuer)
    if isinstance(outcome, Err):
        logger.info("Authentication rejected: %s (%s)", outcome.kind.value, outcome.detail)
        raise auth_error(outcome.kind)
    return outcome.value


def optional_auth(
    credentials: BearerDep,
    db: SessionDep,
    issuer: TokenIssuerDep,
) -> AuthContext | None:
    """Return the caller's context when every check passes, otherwise None."""
    try:
        outcome = resolve_auth_context(credentials, db, issuer)
    except StoreError:
        logger.warning("User store unavailable; continuing anonymously", exc_info=True)
        return None
    if isinstance(outcome, Err):
        if outcome.kind is not AuthErrorKind.UNAUTHORIZED:
            logger.debug("Optional auth fell through: %s", outcome.kind.value)
        return None
    return outcome.value


# Type aliases for auth context dependencies
CurrentAuthDep = Annotated[AuthContext, Depends(require_auth)]
OptionalAuthDep = Annotated[AuthContext | None, Depends(optional_auth)]
