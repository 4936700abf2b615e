"""Pytest configuration and fixtures.

Shared fixtures:
- settings: test configuration (no cookie domain, plain HTTP)
- engine / session: in-memory SQLite shared by the app and the test
- app / client: FastAPI app and TestClient bound to that engine
- codec: the app's token codec, so tests can mint cookies it accepts
- user_store / refresh_store: stores bound to the test session
- make_user: factory that persists a user
"""
from __future__ import annotations

from typing import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from stepjourney.app import create_app
from stepjourney.core import Settings
from stepjourney.models import User
from stepjourney.services import (
    CookiePolicy,
    RefreshTokenStore,
    TokenCodec,
    UserStore,
)

TEST_JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        jwt_secret=TEST_JWT_SECRET,
        cookie_domain=None,
        cookie_secure=False,
        frontend_url="http://frontend.test",
        session_secret="test-session-secret",
        database_url="sqlite://",
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def app(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(app):
    """TestClient with the app lifespan running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture
def codec(app) -> TokenCodec:
    return app.state.token_codec


@pytest.fixture
def cookie_policy() -> CookiePolicy:
    return CookiePolicy(domain=None, secure=False)


@pytest.fixture
def user_store(session) -> UserStore:
    return UserStore(session)


@pytest.fixture
def refresh_store(session) -> RefreshTokenStore:
    return RefreshTokenStore(session)


@pytest.fixture
def make_user(user_store) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(**overrides) -> User:
        counter["n"] += 1
        fields = {
            "oauth_provider": "google",
            "email": f"user{counter['n']}@example.com",
            "name": f"User {counter['n']}",
            "nickname": f"user{counter['n']}",
            "profile_image": "",
            "role": "USER",
            "visits_count": 1,
        }
        fields.update(overrides)
        return user_store.create(User(**fields))

    return _make
