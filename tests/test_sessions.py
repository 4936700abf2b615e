"""Tests for login orchestration: identity upsert, session issuance, logout."""
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlmodel import Session, SQLModel, create_engine, select
from starlette.responses import Response

from stepjourney.core import ensure_utc, utcnow
from stepjourney.core.errors import NotFoundError, ProviderError, StoreError
from stepjourney.models import RefreshToken, User
from stepjourney.services import (
    CookiePolicy,
    RefreshTokenStore,
    SessionManager,
    TokenCodec,
    UserStore,
    extract_user_id,
)

from helpers import cookie_header, cookie_value

SECRET = "session-test-secret-0123456789abcdef0123"


@pytest.fixture
def manager(user_store, refresh_store, cookie_policy) -> SessionManager:
    return SessionManager(TokenCodec(SECRET), user_store, refresh_store, cookie_policy)


def test_upsert_identity_creates_user_on_first_login(manager):
    user = manager.upsert_identity("google", "a@x.com", "nick", "Name", "http://img")

    assert user.id is not None
    assert user.oauth_provider == "google"
    assert user.role == "USER"
    assert user.visits_count == 1
    assert user.nickname == "nick"


def test_upsert_identity_reuses_row_across_providers(manager):
    """Given a Google signup, a later Kakao login with the same email reuses the row."""
    first = manager.upsert_identity("google", "a@x.com", "g", "G", "")

    second = manager.upsert_identity("kakao", "a@x.com", "k", "K", "")

    assert second.id == first.id
    assert second.oauth_provider == "google"
    assert second.nickname == "g"


def test_upsert_identity_normalizes_email(manager):
    first = manager.upsert_identity("naver", "  Mixed@Example.COM ", "n", "N", "")

    again = manager.upsert_identity("google", "mixed@example.com", "n", "N", "")

    assert first.email == "mixed@example.com"
    assert again.id == first.id


def test_upsert_identity_requires_email(manager):
    with pytest.raises(ProviderError):
        manager.upsert_identity("kakao", "", "n", "N", "")


def test_login_issues_session(manager, make_user, refresh_store, session):
    user = make_user(visits_count=1)
    response = Response()
    before = utcnow()

    issued = manager.login_and_issue_session(user, response)

    # visit counted
    session.expire_all()
    assert session.get(User, user.id).visits_count == 2

    # refresh token persisted with an absolute 14 day expiry
    row = refresh_store.find_by_token(issued.refresh_token)
    assert row.user_id == user.id
    expires = ensure_utc(row.expired_at)
    assert before + timedelta(days=14) - timedelta(seconds=5) <= expires
    assert expires <= utcnow() + timedelta(days=14)

    # both cookies written
    assert cookie_value(response, "access_token") == issued.access_token
    assert cookie_value(response, "refresh_token") == issued.refresh_token

    claims = manager.codec.verify(issued.access_token)
    assert extract_user_id(claims) == user.id


def test_login_cookie_attributes(user_store, refresh_store, make_user):
    manager = SessionManager(
        TokenCodec(SECRET),
        user_store,
        refresh_store,
        CookiePolicy(domain="stepjourney.example", secure=True),
    )
    response = Response()

    manager.login_and_issue_session(make_user(), response)

    access = cookie_header(response, "access_token").lower()
    refresh = cookie_header(response, "refresh_token").lower()
    for header in (access, refresh):
        assert "httponly" in header
        assert "samesite=lax" in header
        assert "path=/" in header
        assert "domain=stepjourney.example" in header
        assert "secure" in header
        assert "expires=" in header
    assert "max-age=900" in access
    assert f"max-age={14 * 24 * 3600}" in refresh


def test_local_cookies_are_not_secure(manager, make_user):
    response = Response()

    manager.login_and_issue_session(make_user(), response)

    header = cookie_header(response, "access_token").lower()
    assert "; secure" not in header
    assert "domain=" not in header


class _FailingUserStore(UserStore):
    def update(self, user):
        raise StoreError("database went away")


def test_login_aborts_when_visit_update_fails(session, refresh_store, cookie_policy, make_user):
    """No token is persisted or written when the visit-count update fails."""
    manager = SessionManager(
        TokenCodec(SECRET), _FailingUserStore(session), refresh_store, cookie_policy
    )
    response = Response()

    with pytest.raises(StoreError):
        manager.login_and_issue_session(make_user(), response)

    assert session.exec(select(RefreshToken)).all() == []
    assert cookie_header(response, "access_token") is None


class _FailingRefreshStore(RefreshTokenStore):
    def upsert(self, refresh_token):
        raise StoreError("insert failed")


def test_login_keeps_visit_count_when_token_persist_fails(
    session, user_store, cookie_policy, make_user
):
    manager = SessionManager(
        TokenCodec(SECRET), user_store, _FailingRefreshStore(session), cookie_policy
    )
    user = make_user(visits_count=3)
    response = Response()

    with pytest.raises(StoreError):
        manager.login_and_issue_session(user, response)

    session.expire_all()
    assert session.get(User, user.id).visits_count == 4
    assert cookie_header(response, "refresh_token") is None


def test_logout_revokes_refresh_token_and_clears_cookies(manager, make_user, refresh_store):
    issued = manager.login_and_issue_session(make_user(), Response())
    response = Response()

    manager.logout(issued.refresh_token, response)

    with pytest.raises(NotFoundError):
        refresh_store.find_by_token(issued.refresh_token)
    for name in ("access_token", "refresh_token"):
        assert "max-age=0" in cookie_header(response, name).lower()


def test_logout_without_cookie_only_clears(manager):
    response = Response()

    manager.logout(None, response)

    assert cookie_header(response, "access_token") is not None


def test_concurrent_logins_keep_separate_refresh_rows(tmp_path):
    """Two users logging in at once each end up with their own retrievable row."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrent.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as setup:
        store = UserStore(setup)
        user_ids = [
            store.create(User(email=f"c{i}@example.com", visits_count=1)).id for i in range(2)
        ]

    def login(user_id: int) -> str:
        with Session(engine) as session:
            manager = SessionManager(
                TokenCodec(SECRET),
                UserStore(session),
                RefreshTokenStore(session),
                CookiePolicy(domain=None, secure=False),
            )
            user = manager.users.find_by_id(user_id)
            return manager.login_and_issue_session(user, Response()).refresh_token

    with ThreadPoolExecutor(max_workers=2) as pool:
        tokens = list(pool.map(login, user_ids))

    assert tokens[0] != tokens[1]
    with Session(engine) as check:
        store = RefreshTokenStore(check)
        assert [store.find_by_token(token).user_id for token in tokens] == user_ids
    engine.dispose()


class _UnavailableRefreshStore(RefreshTokenStore):
    def delete_by_token(self, token):
        raise StoreError("db down")


def test_logout_clears_cookies_when_revocation_fails(session, user_store, cookie_policy):
    manager = SessionManager(
        TokenCodec(SECRET), user_store, _UnavailableRefreshStore(session), cookie_policy
    )
    response = Response()

    manager.logout("some-refresh-token", response)

    for name in ("access_token", "refresh_token"):
        assert "max-age=0" in cookie_header(response, name).lower()


class _RacingUserStore(UserStore):
    """Misses the first email lookup, as if another login inserted the row just after."""

    def __init__(self, session):
        super().__init__(session)
        self.missed = False

    def find_by_email(self, email):
        if not self.missed:
            self.missed = True
            raise NotFoundError("not yet")
        return super().find_by_email(email)


def test_upsert_identity_reuses_row_created_by_concurrent_login(
    session, refresh_store, cookie_policy, make_user
):
    existing = make_user(email="race@example.com", oauth_provider="kakao")
    manager = SessionManager(
        TokenCodec(SECRET), _RacingUserStore(session), refresh_store, cookie_policy
    )

    user = manager.upsert_identity("google", "race@example.com", "g", "G", "")

    assert user.id == existing.id
    assert user.oauth_provider == "kakao"
    assert len(session.exec(select(User)).all()) == 1
