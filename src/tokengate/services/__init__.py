# src/tokengate/services/__init__.py
"""Business logic services for the tokengate service."""

from .audit import AuditLogger
from .rotation import RotationPolicy
from .token_issuer import TokenIssuer

__all__ = [
    "AuditLogger",
    "RotationPolicy",
    "TokenIssuer",
]
