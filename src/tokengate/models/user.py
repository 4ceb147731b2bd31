# src/tokengate/models/user.py
"""SQLAlchemy model for the user accounts tokens are issued to."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tokengate.db.session import Base
from tokengate.db.time import UTCDateTime, utcnow

if TYPE_CHECKING:
    from .refresh_token import RefreshTokenRecord


class User(Base):
    """Account owning refresh tokens. Managed outside this service."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    refresh_tokens: Mapped[list[RefreshTokenRecord]] = relationship(
        "RefreshTokenRecord",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        """Return True unless the account has been soft-deleted."""
        return self.deleted_at is None
