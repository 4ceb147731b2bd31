"""Data access helpers for refresh-token records."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import ColumnElement, and_, delete, select, update
from sqlalchemy.orm import Session

from tokengate.core.context import DeviceContext
from tokengate.models.refresh_token import RefreshTokenRecord
from tokengate.repositories.base import store_errors

__all__ = ["RefreshTokenRepository"]


class RefreshTokenRepository:
    """Thin wrapper around database access for refresh-token records.

    Methods flush but never commit; the calling service owns the transaction.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def create(
        self,
        *,
        user_id: str,
        token: str,
        token_family: str,
        expires_at: datetime,
        device: DeviceContext,
    ) -> RefreshTokenRecord:
        """Insert a new record and return the pending ORM instance."""
        record = RefreshTokenRecord(
            user_id=user_id,
            token=token,
            token_family=token_family,
            expires_at=expires_at,
            device_id=device.device_id,
            device_name=device.device_name,
            user_agent=device.user_agent,
            ip_address=device.ip_address,
        )
        with store_errors("refresh token insert"):
            self.session.add(record)
            self.session.flush()
        return record

    def get_by_token(self, token: str) -> RefreshTokenRecord | None:
        """Return the record holding ``token``, revoked or not."""
        with store_errors("refresh token lookup"):
            result = self.session.execute(
                select(RefreshTokenRecord).where(RefreshTokenRecord.token == token)
            )
            return result.scalars().first()

    def mark_revoked(self, record_id: str, *, reason: str, now: datetime) -> bool:
        """Revoke one record by id. Returns False if it was already revoked."""
        return self._revoke_where(RefreshTokenRecord.id == record_id, reason=reason, now=now) > 0

    def revoke_by_token(
        self,
        token: str,
        *,
        reason: str,
        now: datetime,
        user_id: str | None = None,
    ) -> int:
        """Revoke the record holding ``token`` if it is not revoked yet.

        When ``user_id`` is given, only a record owned by that user matches.
        """
        condition = RefreshTokenRecord.token == token
        if user_id is not None:
            condition = and_(condition, RefreshTokenRecord.user_id == user_id)
        return self._revoke_where(condition, reason=reason, now=now)

    def revoke_family(self, token_family: str, *, reason: str, now: datetime) -> int:
        """Revoke every unrevoked record in a family with one bulk update."""
        return self._revoke_where(
            RefreshTokenRecord.token_family == token_family,
            reason=reason,
            now=now,
        )

    def purge_expired(self, *, before: datetime) -> int:
        """Delete records whose expiry lies before ``before``."""
        with store_errors("refresh token purge"):
            result = self.session.execute(
                delete(RefreshTokenRecord).where(RefreshTokenRecord.expires_at < before)
            )
        return int(result.rowcount or 0)

    def _revoke_where(self, condition: ColumnElement[bool], *, reason: str, now: datetime) -> int:
        # Only unrevoked rows: the first revocation timestamp and reason stick.
        stmt = (
            update(RefreshTokenRecord)
            .where(condition, RefreshTokenRecord.revoked_at.is_(None))
            .values(revoked_at=now, revoked_reason=reason)
            .execution_options(synchronize_session="fetch")
        )
        with store_errors("refresh token revoke"):
            result = self.session.execute(stmt)
        return int(result.rowcount or 0)
