# tests/test_scripts.py
"""Tests for the token maintenance script."""

import json
from datetime import timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from tokengate.models import RateLimitRecord, RefreshTokenRecord
from tokengate.scripts import tokens


def _refresh_record(user_id: str, token: str, expires_at, family: str = "fam-1") -> RefreshTokenRecord:
    return RefreshTokenRecord(
        user_id=user_id,
        token=token,
        token_family=family,
        expires_at=expires_at,
    )


@pytest.fixture()
def script_sessions(engine, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the script's session factory at the test engine."""
    monkeypatch.setattr(tokens, "SessionLocal", sessionmaker(bind=engine, expire_on_commit=False))


def test_purge_removes_only_stale_records(db_session, clock, test_user) -> None:
    now = clock.now
    db_session.add_all(
        [
            _refresh_record(test_user.id, "rt_old.x", now - timedelta(days=31)),
            _refresh_record(test_user.id, "rt_recent.x", now - timedelta(days=2)),
            _refresh_record(test_user.id, "rt_live.x", now + timedelta(days=5)),
            RateLimitRecord(
                identity="a",
                endpoint="/x",
                window_start=now - timedelta(minutes=2),
                window_end=now - timedelta(minutes=1),
            ),
            RateLimitRecord(
                identity="b",
                endpoint="/x",
                window_start=now,
                window_end=now + timedelta(minutes=1),
            ),
        ]
    )
    db_session.commit()

    purged = tokens.purge_stale_records(db_session, now=now)

    assert purged == {"refresh_tokens": 1, "rate_limit_records": 1}
    remaining = db_session.execute(select(RefreshTokenRecord.token)).scalars().all()
    assert sorted(remaining) == ["rt_live.x", "rt_recent.x"]
    assert db_session.execute(select(RateLimitRecord.identity)).scalars().all() == ["b"]


def test_issue_for_user_rejects_deleted_user(db_session, issuer, make_user) -> None:
    user = make_user(deleted=True)

    with pytest.raises(LookupError):
        tokens.issue_for_user(db_session, issuer, user.id)


def test_issue_for_user_rejects_unknown_user(db_session, issuer) -> None:
    with pytest.raises(LookupError):
        tokens.issue_for_user(db_session, issuer, "missing")


def test_main_issue_prints_pair(script_sessions, db_session, test_user, capsys) -> None:
    exit_code = tokens.main(["issue", test_user.id])

    assert exit_code == 0
    pair = json.loads(capsys.readouterr().out)
    assert pair["token_type"] == "Bearer"
    record = db_session.execute(
        select(RefreshTokenRecord).where(RefreshTokenRecord.token == pair["refresh_token"])
    ).scalar_one()
    assert record.user_id == test_user.id


def test_main_issue_unknown_user_fails(script_sessions, capsys) -> None:
    exit_code = tokens.main(["issue", "missing"])

    assert exit_code == 1
    assert "no active user" in capsys.readouterr().err


def test_main_revoke_family(script_sessions, db_session, clock, test_user, capsys) -> None:
    db_session.add_all(
        [
            _refresh_record(test_user.id, "rt_a.x", clock.now + timedelta(days=1), "fam-9"),
            _refresh_record(test_user.id, "rt_b.x", clock.now + timedelta(days=1), "fam-9"),
        ]
    )
    db_session.commit()

    exit_code = tokens.main(["revoke-family", "fam-9", "--reason", "support_ticket"])

    assert exit_code == 0
    assert "revoked 2 token(s)" in capsys.readouterr().out
    db_session.expire_all()
    reasons = db_session.execute(
        select(RefreshTokenRecord.revoked_reason).where(RefreshTokenRecord.token_family == "fam-9")
    ).scalars().all()
    assert reasons == ["support_ticket", "support_ticket"]


def test_main_purge(script_sessions, capsys) -> None:
    assert tokens.main(["purge"]) == 0
    assert "purged 0 refresh token(s), 0 rate-limit window(s)" in capsys.readouterr().out
