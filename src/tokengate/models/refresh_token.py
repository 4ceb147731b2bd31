# src/tokengate/models/refresh_token.py
"""SQLAlchemy model for persisted refresh tokens."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tokengate.db.session import Base
from tokengate.db.time import UTCDateTime, utcnow

if TYPE_CHECKING:
    from .user import User

REVOKED_ROTATION = "rotation"
REVOKED_REUSE_DETECTED = "reuse_detected"
REVOKED_LOGOUT = "logout"


class RefreshTokenRecord(Base):
    """One refresh token issued to a user.

    Records sharing ``token_family`` descend from the same login. A record is
    live while unexpired and unrevoked; ``revoked_at`` is never cleared.
    """

    __tablename__ = "refresh_tokens"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token: Mapped[str] = mapped_column(String(128), unique=True, nullable=False, index=True)
    token_family: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    revoked_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Device metadata captured at issuance
    device_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    device_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    user: Mapped[User] = relationship("User", back_populates="refresh_tokens")

    def __repr__(self) -> str:
        return (
            f"RefreshTokenRecord(id={self.id!r}, user_id={self.user_id!r}, "
            f"family={self.token_family!r}, revoked={self.revoked_at is not None!r})"
        )
