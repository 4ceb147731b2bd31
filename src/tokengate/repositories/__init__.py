"""Repositories implementing the persistent-store contract."""

from .audit_repo import AuditRepository
from .rate_limit_repo import RateLimitRepository
from .refresh_token_repo import RefreshTokenRepository
from .user_repo import UserRepository

__all__ = [
    "AuditRepository",
    "RateLimitRepository",
    "RefreshTokenRepository",
    "UserRepository",
]
