"""Refresh-token rotation with reuse detection.

Every refresh token is single use. Presenting one that was already revoked is
treated as evidence that it was copied, and the whole family descending from
the original login is revoked so that both the legitimate client and the
attacker must sign in again.

Lookups and writes are separate round-trips. Two concurrent refreshes with
the same live token can both pass the revocation check and both succeed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from tokengate.core.context import DeviceContext
from tokengate.core.errors import Err, Ok, Result, TokenErrorKind
from tokengate.models.refresh_token import REVOKED_REUSE_DETECTED, REVOKED_ROTATION
from tokengate.repositories.base import commit
from tokengate.repositories.refresh_token_repo import RefreshTokenRepository
from tokengate.repositories.user_repo import UserRepository
from tokengate.schemas.auth import TokenPair
from tokengate.services.audit import TOKEN_REUSE_DETECTED, TOKEN_REVOKED
from tokengate.services.token_issuer import TokenIssuer, get_token_issuer

logger = logging.getLogger(__name__)


class RotationPolicy:
    """Exchange refresh tokens for new pairs and revoke token lineages."""

    def __init__(
        self, issuer: TokenIssuer, *, clock: Callable[[], datetime] | None = None
    ) -> None:
        self.issuer = issuer
        self._clock = clock or issuer.clock

    def refresh_tokens(
        self,
        db: Session,
        presented_token: str,
        device: DeviceContext | None = None,
    ) -> Result[TokenPair, TokenErrorKind]:
        """Rotate ``presented_token`` into a new pair in the same family.

        Returns:
            ``Ok(pair)`` on success, otherwise ``Err`` with TOKEN_NOT_FOUND,
            TOKEN_REUSED (after revoking the family) or TOKEN_EXPIRED.

        Raises:
            StoreError: If the store is unavailable. Rotation fails closed.
        """
        device = device or DeviceContext()
        now = self._clock()
        tokens = RefreshTokenRepository(db)

        record = tokens.get_by_token(presented_token)
        if record is None:
            return Err(TokenErrorKind.TOKEN_NOT_FOUND, "no record for presented token")

        if record.revoked_at is not None:
            family, owner_id = record.token_family, record.user_id
            revoked = tokens.revoke_family(family, reason=REVOKED_REUSE_DETECTED, now=now)
            commit(db)
            logger.error(
                "Refresh token reuse detected for family %s; revoked %d token(s)", family, revoked
            )
            self._audit(
                db,
                TOKEN_REUSE_DETECTED,
                user_id=owner_id,
                metadata={"token_family": family, "revoked": revoked},
                device=device,
                severity="critical",
            )
            return Err(TokenErrorKind.TOKEN_REUSED, f"family {family} revoked")

        if record.expires_at <= now:
            return Err(TokenErrorKind.TOKEN_EXPIRED, f"expired at {record.expires_at.isoformat()}")

        user = UserRepository(db).get_by_id(record.user_id)
        if user is None or not user.is_active:
            return Err(TokenErrorKind.TOKEN_NOT_FOUND, "token owner missing or deleted")

        # New record first, then retire the old one; both land in one commit.
        user_id = user.id
        pair = self.issuer.stage_token_pair(db, user, device, token_family=record.token_family)
        tokens.mark_revoked(record.id, reason=REVOKED_ROTATION, now=now)
        commit(db)
        self.issuer.audit_issuance(db, user_id, device)
        return Ok(pair)

    def revoke_token(
        self,
        db: Session,
        token: str,
        reason: str,
        *,
        user_id: str | None = None,
    ) -> int:
        """Revoke a single refresh token. Already revoked or unknown tokens are a no-op.

        Passing ``user_id`` restricts revocation to tokens that user owns.
        """
        revoked = RefreshTokenRepository(db).revoke_by_token(
            token, reason=reason, now=self._clock(), user_id=user_id
        )
        commit(db)
        if revoked:
            self._audit(
                db, TOKEN_REVOKED, user_id=user_id, metadata={"reason": reason, "scope": "token"}
            )
        return revoked

    def revoke_token_family(self, db: Session, token_family: str, reason: str) -> int:
        """Revoke every live token in a family. Returns how many were newly revoked."""
        revoked = RefreshTokenRepository(db).revoke_family(
            token_family, reason=reason, now=self._clock()
        )
        commit(db)
        if revoked:
            self._audit(
                db,
                TOKEN_REVOKED,
                metadata={"reason": reason, "scope": "family", "token_family": token_family},
            )
        return revoked

    def _audit(
        self,
        db: Session,
        action: str,
        *,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        device: DeviceContext | None = None,
        severity: str = "info",
    ) -> None:
        device = device or DeviceContext()
        try:
            self.issuer.audit.record(
                db,
                action,
                user_id=user_id,
                metadata=metadata,
                ip_address=device.ip_address,
                user_agent=device.user_agent,
                severity=severity,
            )
        except Exception:
            logger.warning("Failed to record audit event %s", action, exc_info=True)


def get_rotation_policy() -> RotationPolicy:
    """Return a rotation policy bound to the configured token issuer."""
    return RotationPolicy(get_token_issuer())
