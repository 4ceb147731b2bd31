"""Persistent window-based request rate limiting.

Each ``(identity, endpoint)`` pair moves through Fresh -> Counting -> Blocked
inside one window. A blocked window stays blocked until it ends; the next
request after that opens a brand-new record.

The limiter fails open: if the store cannot be read or written the request
is let through. Reads and writes are separate round-trips, so a burst of
concurrent requests may overshoot ``max_requests`` slightly.
"""

# No postponed annotations here: FastAPI resolves the signature of
# RateLimiter.__call__ without access to this module's globals.
import logging
import math
from collections.abc import Callable
from contextlib import suppress
from datetime import datetime, timedelta

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tokengate.api.v1.dependencies import OptionalAuthDep, SessionDep
from tokengate.core.context import AuthContext
from tokengate.core.errors import StoreError, rate_limit_error
from tokengate.core.settings import settings
from tokengate.db.time import utcnow
from tokengate.repositories.base import commit
from tokengate.repositories.rate_limit_repo import RateLimitRepository

logger = logging.getLogger(__name__)

KeyGenerator = Callable[[Request, AuthContext | None], str]


def forwarded_address(request: Request) -> str | None:
    """Return the first address in ``X-Forwarded-For``, if any."""
    forwarded = request.headers.get("x-forwarded-for")
    if not forwarded:
        return None
    return forwarded.split(",")[0].strip() or None


def default_key(request: Request, auth: AuthContext | None) -> str:
    """Authenticated user id, else forwarded origin address, else ``"unknown"``."""
    if auth is not None:
        return auth.user_id
    return forwarded_address(request) or "unknown"


class RateLimiter:
    """FastAPI dependency counting requests per identity and endpoint.

    Mount one instance per route (or router) with its own limits::

        limiter = RateLimiter(window_ms=60_000, max_requests=5)

        @router.post("/thing", dependencies=[Depends(limiter)])
        async def thing() -> ...
    """

    def __init__(
        self,
        *,
        window_ms: int | None = None,
        max_requests: int | None = None,
        key_generator: KeyGenerator = default_key,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.window_ms = settings.rate_limit_window_ms if window_ms is None else window_ms
        self.max_requests = (
            settings.rate_limit_max_requests if max_requests is None else max_requests
        )
        if self.window_ms <= 0 or self.max_requests <= 0:
            raise ValueError("window_ms and max_requests must be positive")
        self.key_generator = key_generator
        self._clock = clock

    def __call__(self, request: Request, db: SessionDep, auth: OptionalAuthDep) -> None:
        identity = self.key_generator(request, auth)
        endpoint = request.url.path
        try:
            retry_after = self.hit(
                db,
                identity,
                endpoint,
                user_id=auth.user_id if auth else None,
                ip_address=forwarded_address(request) or "unknown",
            )
        except StoreError:
            logger.exception("Rate limiter store failure for %s on %s; allowing", identity, endpoint)
            with suppress(SQLAlchemyError):
                db.rollback()
            return
        if retry_after is not None:
            logger.info("Rate limit exceeded for %s on %s", identity, endpoint)
            raise rate_limit_error(retry_after)

    def hit(
        self,
        db: Session,
        identity: str,
        endpoint: str,
        *,
        user_id: str | None = None,
        ip_address: str | None = None,
    ) -> int | None:
        """Count one request and return seconds to wait if it must be rejected.

        Raises:
            StoreError: If the store cannot be read or written.
        """
        now = self._clock()
        windows = RateLimitRepository(db)
        record = windows.find_live(identity, endpoint, now=now)

        if record is None:
            windows.create(
                identity=identity,
                endpoint=endpoint,
                window_start=now,
                window_end=now + timedelta(milliseconds=self.window_ms),
                user_id=user_id,
                ip_address=ip_address,
            )
        elif record.blocked or record.attempts >= self.max_requests:
            return math.ceil((record.window_end - now).total_seconds())
        else:
            windows.register_attempt(record, max_requests=self.max_requests, now=now)

        commit(db)
        return None
