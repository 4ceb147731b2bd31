# tests/test_errors.py
"""Tests for error-kind mapping and the error envelope."""

import pytest
from fastapi import status

from tokengate.core.errors import (
    ApiError,
    AuthErrorKind,
    TokenErrorKind,
    auth_error,
    rate_limit_error,
    token_error,
)
from tokengate.schemas.common import ErrorBody


@pytest.mark.parametrize(
    ("kind", "expected_status"),
    [
        (AuthErrorKind.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED),
        (AuthErrorKind.INVALID_TOKEN, status.HTTP_401_UNAUTHORIZED),
        (AuthErrorKind.USER_NOT_FOUND, status.HTTP_401_UNAUTHORIZED),
        (AuthErrorKind.EMAIL_NOT_VERIFIED, status.HTTP_403_FORBIDDEN),
    ],
)
def test_auth_error_mapping(kind: AuthErrorKind, expected_status: int) -> None:
    error = auth_error(kind)

    assert isinstance(error, ApiError)
    assert error.status_code == expected_status
    assert error.code == kind.value
    assert error.retry_after is None


def test_every_auth_kind_is_mapped() -> None:
    codes = {auth_error(kind).code for kind in AuthErrorKind}

    assert codes == {kind.value for kind in AuthErrorKind}


def test_every_token_kind_maps_to_401() -> None:
    for kind in TokenErrorKind:
        error = token_error(kind)
        assert error.status_code == status.HTTP_401_UNAUTHORIZED
        assert error.code == kind.value


def test_messages_do_not_leak_kinds() -> None:
    # Client messages are generic prose, codes carry the machine-readable part.
    for error in [*(auth_error(k) for k in AuthErrorKind), *(token_error(k) for k in TokenErrorKind)]:
        assert error.message
        assert error.message != error.code


def test_rate_limit_error_carries_retry_after() -> None:
    error = rate_limit_error(12)

    assert error.status_code == status.HTTP_429_TOO_MANY_REQUESTS
    assert error.code == "RATE_LIMIT_EXCEEDED"
    assert error.retry_after == 12


def test_error_body_serializes_with_camel_case_aliases() -> None:
    body = ErrorBody(
        message="Too many requests",
        code="RATE_LIMIT_EXCEEDED",
        request_id="abc",
        timestamp="2024-01-01T00:00:00+00:00",
        retry_after=5,
    )

    dumped = body.model_dump(by_alias=True, exclude_none=True)

    assert dumped == {
        "message": "Too many requests",
        "code": "RATE_LIMIT_EXCEEDED",
        "requestId": "abc",
        "timestamp": "2024-01-01T00:00:00+00:00",
        "retryAfter": 5,
    }
