# src/tokengate/models/rate_limit.py
"""Models supporting request rate limiting."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from tokengate.db.session import Base
from tokengate.db.time import UTCDateTime


class RateLimitRecord(Base):
    """Attempt counter for one (identity, endpoint) pair within one window.

    Window bounds never change after insert; an expired window is replaced by
    a new record rather than reset.
    """

    __tablename__ = "rate_limit_records"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    # User id or origin address, whichever the key generator produced.
    identity: Mapped[str] = mapped_column(String(255), nullable=False)
    endpoint: Mapped[str] = mapped_column(String(512), nullable=False)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    window_start: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    window_end: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    blocked_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Who the window was opened for, kept for investigation
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    __table_args__ = (
        Index("ix_rate_limit_identity_endpoint_window", "identity", "endpoint", "window_end"),
    )
