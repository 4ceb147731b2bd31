"""Data access helpers for user accounts."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from tokengate.models.user import User
from tokengate.repositories.base import store_errors

__all__ = ["UserRepository"]


class UserRepository:
    """Read-only view of the user store."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_id(self, user_id: str) -> User | None:
        """Return a user by identifier, including soft-deleted users."""
        with store_errors("user lookup"):
            return self.session.execute(select(User).where(User.id == user_id)).scalars().first()
