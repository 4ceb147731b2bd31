"""Append-only access to the audit log."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from tokengate.models.audit import AuditLog
from tokengate.repositories.base import store_errors

__all__ = ["AuditRepository"]


class AuditRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def append(
        self,
        *,
        action: str,
        user_id: str | None = None,
        entity: str = "auth",
        metadata: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        severity: str = "info",
    ) -> AuditLog:
        """Insert one audit row."""
        entry = AuditLog(
            user_id=user_id,
            action=action,
            entity=entity,
            event_metadata=metadata,
            ip_address=ip_address,
            user_agent=user_agent,
            severity=severity,
        )
        with store_errors("audit insert"):
            self.session.add(entry)
            self.session.flush()
        return entry
