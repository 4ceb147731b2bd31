"""Request-scoped values passed explicitly through the call chain."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request


@dataclass(frozen=True)
class AuthContext:
    """Identity of the caller for the lifetime of one request."""

    user_id: str
    email: str
    session_id: str | None = None


@dataclass(frozen=True)
class DeviceContext:
    """Client device metadata recorded alongside issued refresh tokens."""

    device_id: str | None = None
    device_name: str | None = None
    user_agent: str | None = None
    ip_address: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> DeviceContext:
        """Collect device metadata from request headers."""
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            ip_address: str | None = forwarded.split(",")[0].strip()
        else:
            ip_address = request.client.host if request.client else None
        return cls(
            device_id=request.headers.get("x-device-id"),
            device_name=request.headers.get("x-device-name"),
            user_agent=request.headers.get("user-agent"),
            ip_address=ip_address,
        )
