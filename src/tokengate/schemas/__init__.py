"""Pydantic schemas for the tokengate API."""

from .auth import (
    AuthContextResponse,
    RefreshRequest,
    SessionResponse,
    TokenPair,
    TokenPayload,
)
from .common import ErrorBody, ErrorEnvelope

__all__ = [
    "AuthContextResponse",
    "ErrorBody",
    "ErrorEnvelope",
    "RefreshRequest",
    "SessionResponse",
    "TokenPair",
    "TokenPayload",
]
