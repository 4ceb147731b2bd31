# src/tokengate/scripts/tokens.py
"""
Operator tool for token maintenance.

Subcommands:
1. ``init-db``: create missing tables
2. ``issue USER_ID``: mint a token pair for an existing user (testing, support)
3. ``revoke-family FAMILY``: revoke every live token descending from one login
4. ``purge``: delete expired refresh tokens and ended rate-limit windows

Meant to be run as ``python -m tokengate.scripts.tokens`` or from cron.
"""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from tokengate.core.errors import StoreError
from tokengate.core.logging import configure_logging
from tokengate.db.session import SessionLocal, create_tables
from tokengate.db.time import utcnow
from tokengate.repositories.base import commit
from tokengate.repositories.rate_limit_repo import RateLimitRepository
from tokengate.repositories.refresh_token_repo import RefreshTokenRepository
from tokengate.repositories.user_repo import UserRepository
from tokengate.schemas.auth import TokenPair
from tokengate.services.rotation import RotationPolicy
from tokengate.services.token_issuer import TokenIssuer, get_token_issuer

# Revoked/expired tokens are kept this long so reuse can still be detected.
REFRESH_TOKEN_RETENTION_DAYS = 30


def issue_for_user(db: Session, issuer: TokenIssuer, user_id: str) -> TokenPair:
    """Mint a fresh token pair for ``user_id``.

    Raises:
        LookupError: If the user does not exist or is deleted.
    """
    user = UserRepository(db).get_by_id(user_id)
    if user is None or not user.is_active:
        raise LookupError(f"no active user {user_id}")
    return issuer.generate_token_pair(db, user)


def purge_stale_records(db: Session, *, now: datetime | None = None) -> dict[str, int]:
    """Delete long-expired refresh tokens and ended rate-limit windows.

    Args:
        db: Database session
        now: Reference time, defaults to the current UTC time

    Returns:
        Counts of deleted rows keyed by kind
    """
    now = now or utcnow()
    refresh_cutoff = now - timedelta(days=REFRESH_TOKEN_RETENTION_DAYS)
    purged = {
        "refresh_tokens": RefreshTokenRepository(db).purge_expired(before=refresh_cutoff),
        "rate_limit_records": RateLimitRepository(db).purge_ended(before=now),
    }
    commit(db)
    return purged


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Token maintenance for tokengate")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create missing database tables")

    issue = sub.add_parser("issue", help="Mint a token pair for a user")
    issue.add_argument("user_id", help="Identifier of an existing user")

    revoke = sub.add_parser("revoke-family", help="Revoke every token in a family")
    revoke.add_argument("token_family", help="Token family identifier")
    revoke.add_argument("--reason", default="admin_revocation", help="Recorded revocation reason")

    sub.add_parser("purge", help="Delete expired tokens and ended rate-limit windows")

    args = parser.parse_args(argv)
    configure_logging()

    if args.command == "init-db":
        create_tables()
        print("[tokens] database tables ensured")
        return 0

    db = SessionLocal()
    try:
        if args.command == "issue":
            pair = issue_for_user(db, get_token_issuer(), args.user_id)
            print(json.dumps(pair.model_dump(), indent=2))
        elif args.command == "revoke-family":
            count = RotationPolicy(get_token_issuer()).revoke_token_family(
                db, args.token_family, args.reason
            )
            print(f"[tokens] revoked {count} token(s) in family {args.token_family}")
        elif args.command == "purge":
            purged = purge_stale_records(db)
            print(
                f"[tokens] purged {purged['refresh_tokens']} refresh token(s), "
                f"{purged['rate_limit_records']} rate-limit window(s)"
            )
    except LookupError as exc:
        print(f"[tokens] ERROR: {exc}", file=sys.stderr)
        return 1
    except StoreError as exc:
        print(f"[tokens] ERROR: store unavailable: {exc}", file=sys.stderr)
        return 2
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
