# src/tokengate/models/__init__.py
"""SQLAlchemy models for the tokengate service."""

from .audit import AuditLog
from .rate_limit import RateLimitRecord
from .refresh_token import RefreshTokenRecord
from .user import User

__all__ = [
    "AuditLog",
    "RateLimitRecord",
    "RefreshTokenRecord",
    "User",
]
