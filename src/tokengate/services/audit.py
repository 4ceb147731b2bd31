"""Audit event sink."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from tokengate.core.errors import StoreError
from tokengate.repositories.audit_repo import AuditRepository
from tokengate.repositories.base import commit

logger = logging.getLogger(__name__)

TOKEN_GENERATED = "token.generated"
TOKEN_REUSE_DETECTED = "token.reuse_detected"
TOKEN_REVOKED = "token.revoked"


class AuditLogger:
    """Persist structured audit events in their own commit.

    Callers commit their own work first, so a failing audit write never rolls
    back the state it describes.
    """

    def record(
        self,
        db: Session,
        action: str,
        *,
        user_id: str | None = None,
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        severity: str = "info",
    ) -> None:
        """Append an event and commit it.

        Raises:
            StoreError: If the event could not be stored.
        """
        try:
            AuditRepository(db).append(
                action=action,
                user_id=user_id,
                metadata=metadata,
                ip_address=ip_address,
                user_agent=user_agent,
                severity=severity,
            )
        except StoreError:
            db.rollback()
            raise
        commit(db)
        logger.debug("audit %s user=%s severity=%s", action, user_id, severity)