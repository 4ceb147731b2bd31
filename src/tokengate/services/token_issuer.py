"""Access/refresh token pair issuance."""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Final

from sqlalchemy.orm import Session

from tokengate.core.context import DeviceContext
from tokengate.core.errors import AuthErrorKind, Err, Ok, Result
from tokengate.core.security import SignedTokenCodec, device_fingerprint
from tokengate.core.settings import settings
from tokengate.models.user import User
from tokengate.repositories.base import commit
from tokengate.repositories.refresh_token_repo import RefreshTokenRepository
from tokengate.schemas.auth import TokenPair, TokenPayload
from tokengate.services.audit import TOKEN_GENERATED, AuditLogger

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL_SECONDS: Final[int] = 15 * 60
REFRESH_TOKEN_TTL_SECONDS: Final[int] = 7 * 24 * 60 * 60


def new_token_family() -> str:
    return secrets.token_urlsafe(24)


def new_session_id() -> str:
    return secrets.token_urlsafe(18)


def new_refresh_token_value() -> str:
    """Return ``rt_<id>.<secret>``: a unique id plus 384 bits of randomness."""
    return f"rt_{secrets.token_urlsafe(18)}.{secrets.token_urlsafe(48)}"


class TokenIssuer:
    """Create token pairs for users and verify the access half.

    Signing is delegated to a ``SignedTokenCodec``; refresh tokens are stored
    through ``RefreshTokenRepository``.
    """

    def __init__(
        self,
        codec: SignedTokenCodec,
        *,
        audit: AuditLogger | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.codec = codec
        self.audit = audit or AuditLogger()
        # Access and refresh expiry follow one clock.
        self.clock = clock or codec.clock

    def generate_token_pair(
        self,
        db: Session,
        user: User,
        device: DeviceContext | None = None,
        *,
        token_family: str | None = None,
    ) -> TokenPair:
        """Issue and persist a new pair, then record an audit event.

        Args:
            db: Database session; committed before the audit event is written.
            user: Account the tokens are issued to.
            device: Client metadata stored with the refresh token.
            token_family: Existing family to extend; a fresh login passes None.

        Raises:
            StoreError: If the refresh token could not be stored.
        """
        device = device or DeviceContext()
        user_id = user.id
        pair = self.stage_token_pair(db, user, device, token_family=token_family)
        commit(db)
        self.audit_issuance(db, user_id, device)
        return pair

    def stage_token_pair(
        self,
        db: Session,
        user: User,
        device: DeviceContext,
        *,
        token_family: str | None = None,
    ) -> TokenPair:
        """Sign an access token and add its refresh record without committing."""
        now = self.clock()
        family = token_family or new_token_family()
        session_id = new_session_id()

        access_payload = TokenPayload(
            sub=user.id,
            email=user.email,
            type="access",
            jti=f"at_{secrets.token_urlsafe(18)}",
            fingerprint=device_fingerprint(device),
            session_id=session_id,
        )
        access_token = self.codec.sign(access_payload, ACCESS_TOKEN_TTL_SECONDS)

        refresh_token = new_refresh_token_value()
        RefreshTokenRepository(db).create(
            user_id=user.id,
            token=refresh_token,
            token_family=family,
            expires_at=now + timedelta(seconds=REFRESH_TOKEN_TTL_SECONDS),
            device=device,
        )

        return TokenPair(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=ACCESS_TOKEN_TTL_SECONDS,
            refresh_expires_in=REFRESH_TOKEN_TTL_SECONDS,
        )

    def audit_issuance(self, db: Session, user_id: str, device: DeviceContext) -> None:
        """Record a ``token.generated`` event; failures are logged, not raised."""
        try:
            self.audit.record(
                db,
                TOKEN_GENERATED,
                user_id=user_id,
                metadata={
                    "device_id": device.device_id,
                    "device_name": device.device_name,
                    "issued_at": self.clock().isoformat(),
                },
                ip_address=device.ip_address,
                user_agent=device.user_agent,
            )
        except Exception:
            logger.warning("Failed to record token issuance for user %s", user_id, exc_info=True)

    def verify_access_token(self, token: str) -> Result[TokenPayload, AuthErrorKind]:
        """Verify ``token`` and require it to be an access token."""
        outcome = self.codec.verify(token)
        if isinstance(outcome, Err):
            return outcome
        if outcome.value.type != "access":
            return Err(AuthErrorKind.INVALID_TOKEN, f"unexpected token type {outcome.value.type!r}")
        return Ok(outcome.value)


@lru_cache(maxsize=1)
def get_codec() -> SignedTokenCodec:
    """Return the process-wide codec configured from settings."""
    return SignedTokenCodec(
        settings.jwt_secret,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        algorithm=settings.jwt_algorithm,
    )


def get_token_issuer() -> TokenIssuer:
    """Return a token issuer bound to the configured codec."""
    return TokenIssuer(get_codec())
