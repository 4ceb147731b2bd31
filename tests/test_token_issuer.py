# tests/test_token_issuer.py
"""Tests for token pair issuance and access-token verification."""

import logging
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from jose import jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from tokengate.core.context import DeviceContext
from tokengate.core.errors import AuthErrorKind, Err, Ok, StoreError
from tokengate.core.security import SignedTokenCodec, device_fingerprint
from tokengate.models import AuditLog, RefreshTokenRecord, User
from tokengate.schemas.auth import TokenPayload
from tokengate.services.audit import TOKEN_GENERATED, AuditLogger
from tokengate.services.token_issuer import (
    ACCESS_TOKEN_TTL_SECONDS,
    REFRESH_TOKEN_TTL_SECONDS,
    TokenIssuer,
)


class FailingAuditLogger(AuditLogger):
    def record(self, db: Session, action: str, **kwargs: Any) -> None:
        raise StoreError("audit sink down")


def _record_for(db: Session, token: str) -> RefreshTokenRecord:
    return db.execute(
        select(RefreshTokenRecord).where(RefreshTokenRecord.token == token)
    ).scalar_one()


def test_generate_token_pair_shape(db_session, issuer: TokenIssuer, test_user: User) -> None:
    pair = issuer.generate_token_pair(db_session, test_user)

    assert pair.token_type == "Bearer"
    assert pair.expires_in == ACCESS_TOKEN_TTL_SECONDS == 15 * 60
    assert pair.refresh_expires_in == REFRESH_TOKEN_TTL_SECONDS == 7 * 24 * 60 * 60
    assert pair.refresh_token.startswith("rt_")
    assert "." in pair.refresh_token
    assert pair.access_token != pair.refresh_token


def test_refresh_record_persisted_with_device(
    db_session, codec: SignedTokenCodec, clock, test_user: User, device: DeviceContext
) -> None:
    issuer = TokenIssuer(codec, clock=clock)

    pair = issuer.generate_token_pair(db_session, test_user, device)
    record = _record_for(db_session, pair.refresh_token)

    assert record.user_id == test_user.id
    assert record.revoked_at is None
    assert record.expires_at == clock.now + timedelta(seconds=REFRESH_TOKEN_TTL_SECONDS)
    assert record.device_id == "device-123"
    assert record.device_name == "Test Phone"
    assert record.user_agent == "pytest-agent/1.0"
    assert record.ip_address == "203.0.113.7"
    assert record.token_family


def test_access_token_claims(
    db_session, issuer: TokenIssuer, test_user: User, device: DeviceContext
) -> None:
    pair = issuer.generate_token_pair(db_session, test_user, device)

    outcome = issuer.verify_access_token(pair.access_token)

    assert isinstance(outcome, Ok)
    payload = outcome.value
    assert payload.type == "access"
    assert payload.sub == test_user.id
    assert payload.email == test_user.email
    assert payload.jti.startswith("at_")
    assert payload.session_id
    assert payload.fingerprint == device_fingerprint(device)


def test_each_login_starts_a_new_family(db_session, issuer: TokenIssuer, test_user: User) -> None:
    first = issuer.generate_token_pair(db_session, test_user)
    second = issuer.generate_token_pair(db_session, test_user)

    assert (
        _record_for(db_session, first.refresh_token).token_family
        != _record_for(db_session, second.refresh_token).token_family
    )


def test_existing_family_is_reused_when_given(
    db_session, issuer: TokenIssuer, test_user: User
) -> None:
    pair = issuer.generate_token_pair(db_session, test_user, token_family="family-abc")

    assert _record_for(db_session, pair.refresh_token).token_family == "family-abc"


def test_refresh_type_token_rejected_as_access(
    issuer: TokenIssuer, codec: SignedTokenCodec
) -> None:
    token = codec.sign(
        TokenPayload(sub="user-1", email="u@example.com", type="refresh", jti="rt_x"),
        ACCESS_TOKEN_TTL_SECONDS,
    )

    outcome = issuer.verify_access_token(token)

    assert isinstance(outcome, Err)
    assert outcome.kind is AuthErrorKind.INVALID_TOKEN


def test_verify_passes_through_codec_failures(issuer: TokenIssuer) -> None:
    outcome = issuer.verify_access_token("definitely.not.valid")

    assert isinstance(outcome, Err)
    assert outcome.kind is AuthErrorKind.INVALID_TOKEN


def test_issuance_is_audited(
    db_session, issuer: TokenIssuer, test_user: User, device: DeviceContext
) -> None:
    issuer.generate_token_pair(db_session, test_user, device)

    entry = db_session.execute(select(AuditLog)).scalar_one()
    assert entry.action == TOKEN_GENERATED
    assert entry.user_id == test_user.id
    assert entry.ip_address == "203.0.113.7"
    assert entry.user_agent == "pytest-agent/1.0"
    assert entry.event_metadata["device_id"] == "device-123"
    assert entry.event_metadata["device_name"] == "Test Phone"
    assert "issued_at" in entry.event_metadata


def test_audit_failure_does_not_abort_issuance(
    db_session,
    codec: SignedTokenCodec,
    make_user: Callable[..., User],
    caplog,
) -> None:
    user = make_user()
    issuer = TokenIssuer(codec, audit=FailingAuditLogger())

    with caplog.at_level(logging.WARNING, logger="tokengate.services.token_issuer"):
        pair = issuer.generate_token_pair(db_session, user)

    assert _record_for(db_session, pair.refresh_token).user_id == user.id
    assert isinstance(issuer.verify_access_token(pair.access_token), Ok)
    assert any("Failed to record token issuance" in r.getMessage() for r in caplog.records)


def test_access_token_is_not_persisted(db_session, issuer: TokenIssuer, test_user: User) -> None:
    pair = issuer.generate_token_pair(db_session, test_user)
    jti = jwt.get_unverified_claims(pair.access_token)["jti"]

    tokens = db_session.execute(select(RefreshTokenRecord.token)).scalars().all()
    assert all(jti not in token for token in tokens)
    assert tokens == [pair.refresh_token]
