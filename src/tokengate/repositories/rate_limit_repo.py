"""Data access helpers for rate-limit windows."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.orm import Session

from tokengate.models.rate_limit import RateLimitRecord
from tokengate.repositories.base import store_errors

__all__ = ["RateLimitRepository"]


class RateLimitRepository:
    """Single-record reads and writes against the rate-limit store."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_live(self, identity: str, endpoint: str, *, now: datetime) -> RateLimitRecord | None:
        """Return the most recent window for the pair that has not ended at ``now``."""
        stmt = (
            select(RateLimitRecord)
            .where(
                RateLimitRecord.identity == identity,
                RateLimitRecord.endpoint == endpoint,
                RateLimitRecord.window_end > now,
            )
            .order_by(RateLimitRecord.window_start.desc())
            .limit(1)
        )
        with store_errors("rate limit lookup"):
            return self.session.execute(stmt).scalars().first()

    def create(
        self,
        *,
        identity: str,
        endpoint: str,
        window_start: datetime,
        window_end: datetime,
        user_id: str | None = None,
        ip_address: str | None = None,
    ) -> RateLimitRecord:
        """Open a new window with a single recorded attempt."""
        record = RateLimitRecord(
            identity=identity,
            endpoint=endpoint,
            attempts=1,
            window_start=window_start,
            window_end=window_end,
            blocked=False,
            user_id=user_id,
            ip_address=ip_address,
        )
        with store_errors("rate limit insert"):
            self.session.add(record)
            self.session.flush()
        return record

    def register_attempt(self, record: RateLimitRecord, *, max_requests: int, now: datetime) -> int:
        """Write ``attempts + 1`` for ``record``, blocking it when the limit is reached.

        The new count is computed from the value read earlier, so concurrent
        callers may overwrite each other's increment.
        """
        attempts = record.attempts + 1
        values: dict[str, object] = {"attempts": attempts}
        if attempts >= max_requests:
            values["blocked"] = True
            values["blocked_at"] = now
        stmt = (
            update(RateLimitRecord)
            .where(RateLimitRecord.id == record.id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        with store_errors("rate limit update"):
            self.session.execute(stmt)
        return attempts

    def purge_ended(self, *, before: datetime) -> int:
        """Delete windows that ended before ``before``."""
        with store_errors("rate limit purge"):
            result = self.session.execute(
                delete(RateLimitRecord).where(RateLimitRecord.window_end < before)
            )
        return int(result.rowcount or 0)
