"""Shared helpers for repository classes."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from tokengate.core.errors import StoreError

__all__ = ["commit", "store_errors"]


@contextmanager
def store_errors(operation: str) -> Iterator[None]:
    """Re-raise SQLAlchemy failures inside the block as ``StoreError``."""
    try:
        yield
    except SQLAlchemyError as err:
        raise StoreError(f"{operation} failed") from err


def commit(db: Session) -> None:
    """Commit the unit of work, rolling back and raising ``StoreError`` on failure."""
    try:
        db.commit()
    except SQLAlchemyError as err:
        db.rollback()
        raise StoreError("commit failed") from err
