"""Engine, session factory and the per-request session dependency."""

from __future__ import annotations

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tokengate.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for users, refresh tokens, rate-limit windows and audit rows."""


# Models must be registered on Base.metadata before create_all runs.
import tokengate.models  # noqa: E402,F401


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine for ``url``.

    SQLite connections are shared across FastAPI's threadpool, and an
    in-memory database is pinned to a single connection so every session
    sees the same tables.
    """
    kwargs: dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(url, **kwargs)


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session for one request; uncommitted work is discarded on error."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def create_tables(bind: Engine | None = None) -> None:
    Base.metadata.create_all(bind=bind or engine)