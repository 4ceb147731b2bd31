"""Error kinds, result values and the HTTP-boundary error type.

Verification and rotation never raise for expected failures; they return an
``Err`` carrying one of the kinds below. Only the HTTP boundary turns kinds
into status codes, and it does so through the exhaustive mappers here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union, assert_never

from fastapi import status

T = TypeVar("T")
K = TypeVar("K")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome wrapping a value."""

    value: T


@dataclass(frozen=True)
class Err(Generic[K]):
    """Failed outcome carrying an error kind and an internal detail string.

    ``detail`` is for logs only and is never sent to clients.
    """

    kind: K
    detail: str = ""


Result = Union[Ok[T], Err[K]]


class AuthErrorKind(str, Enum):
    """Failures raised while authenticating a request."""

    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    EMAIL_NOT_VERIFIED = "EMAIL_NOT_VERIFIED"


class TokenErrorKind(str, Enum):
    """Failures raised while rotating a refresh token."""

    TOKEN_NOT_FOUND = "TOKEN_NOT_FOUND"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    TOKEN_REUSED = "TOKEN_REUSED"


class StoreError(RuntimeError):
    """The persistent store could not be read or written."""


class ConfigurationError(RuntimeError):
    """Fatal misconfiguration detected at construction time."""


class ApiError(Exception):
    """Exception rendered by the application as a JSON error envelope."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        *,
        retry_after: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.retry_after = retry_after


def auth_error(kind: AuthErrorKind) -> ApiError:
    """Map an authentication failure to its client-facing error."""
    if kind is AuthErrorKind.UNAUTHORIZED:
        return ApiError(
            status.HTTP_401_UNAUTHORIZED,
            kind.value,
            "Missing or invalid authorization header",
        )
    if kind is AuthErrorKind.INVALID_TOKEN:
        return ApiError(status.HTTP_401_UNAUTHORIZED, kind.value, "Invalid or expired token")
    if kind is AuthErrorKind.USER_NOT_FOUND:
        return ApiError(status.HTTP_401_UNAUTHORIZED, kind.value, "User not found")
    if kind is AuthErrorKind.EMAIL_NOT_VERIFIED:
        return ApiError(status.HTTP_403_FORBIDDEN, kind.value, "Email verification required")
    assert_never(kind)


def token_error(kind: TokenErrorKind) -> ApiError:
    """Map a refresh-token rotation failure to its client-facing error."""
    if kind is TokenErrorKind.TOKEN_NOT_FOUND:
        return ApiError(status.HTTP_401_UNAUTHORIZED, kind.value, "Invalid refresh token")
    if kind is TokenErrorKind.TOKEN_EXPIRED:
        return ApiError(status.HTTP_401_UNAUTHORIZED, kind.value, "Refresh token expired")
    if kind is TokenErrorKind.TOKEN_REUSED:
        return ApiError(
            status.HTTP_401_UNAUTHORIZED,
            kind.value,
            "Refresh token has been revoked; please sign in again",
        )
    assert_never(kind)


def rate_limit_error(retry_after: int) -> ApiError:
    return ApiError(
        status.HTTP_429_TOO_MANY_REQUESTS,
        "RATE_LIMIT_EXCEEDED",
        "Too many requests. Please try again later.",
        retry_after=retry_after,
    )
