# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import datetime, timedelta
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SECRET", "test-signing-secret-0123456789-abcdefghijklmnop")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from tokengate.core.context import DeviceContext
from tokengate.core.security import SignedTokenCodec
from tokengate.core.settings import settings
from tokengate.db.session import Base
from tokengate.db.session import get_db as app_get_session
from tokengate.db.time import utcnow
from tokengate.main import app as fastapi_app
from tokengate.models import User
from tokengate.services.rotation import RotationPolicy
from tokengate.services.token_issuer import TokenIssuer

TEST_DB_URL = "sqlite://"

_EMAIL_COUNTER = count(1)


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def clock() -> FrozenClock:
    """Return a clock frozen at the current UTC time."""
    return FrozenClock(utcnow())


@pytest.fixture()
def codec() -> SignedTokenCodec:
    """Codec configured exactly like the application's."""
    return SignedTokenCodec(
        settings.jwt_secret,
        issuer=settings.jwt_issuer,
        audience=settings.jwt_audience,
        algorithm=settings.jwt_algorithm,
    )


@pytest.fixture()
def issuer(codec: SignedTokenCodec) -> TokenIssuer:
    return TokenIssuer(codec)


@pytest.fixture()
def rotation(issuer: TokenIssuer) -> RotationPolicy:
    return RotationPolicy(issuer)


@pytest.fixture()
def device() -> DeviceContext:
    return DeviceContext(
        device_id="device-123",
        device_name="Test Phone",
        user_agent="pytest-agent/1.0",
        ip_address="203.0.113.7",
    )


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., User]:
    """Return a factory persisting users with unique emails."""

    def _make_user(*, verified: bool = True, deleted: bool = False) -> User:
        user = User(
            email=f"user{next(_EMAIL_COUNTER)}@example.com",
            verified=verified,
            deleted_at=utcnow() if deleted else None,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture()
def test_user(make_user: Callable[..., User]) -> User:
    """Create and return a verified, active user."""
    return make_user()


@pytest.fixture()
def auth_headers(
    db_session: Session,
    issuer: TokenIssuer,
    test_user: User,
) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    pair = issuer.generate_token_pair(db_session, test_user)
    return {"Authorization": f"Bearer {pair.access_token}"}
