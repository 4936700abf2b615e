"""Dependency injection for FastAPI routes."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Cookie, Depends, HTTPException, Request, Response, status
from sqlmodel import Session

from ..core import Settings, get_session
from ..core.errors import UnauthorizedError
from ..services import (
    AuthContext,
    AuthGuard,
    CookiePolicy,
    OAuthProviders,
    RefreshTokenStore,
    SessionManager,
    TokenCodec,
    UserStore,
)

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_cookie_policy(request: Request) -> CookiePolicy:
    return request.app.state.cookie_policy


def get_providers(request: Request) -> OAuthProviders:
    return request.app.state.providers


def get_user_store(session: Session = Depends(get_session)) -> UserStore:
    return UserStore(session)


def get_refresh_token_store(session: Session = Depends(get_session)) -> RefreshTokenStore:
    return RefreshTokenStore(session)


def get_session_manager(
    codec: TokenCodec = Depends(get_token_codec),
    users: UserStore = Depends(get_user_store),
    refresh_tokens: RefreshTokenStore = Depends(get_refresh_token_store),
    cookies: CookiePolicy = Depends(get_cookie_policy),
) -> SessionManager:
    return SessionManager(codec, users, refresh_tokens, cookies)


def get_auth_guard(
    codec: TokenCodec = Depends(get_token_codec),
    users: UserStore = Depends(get_user_store),
    refresh_tokens: RefreshTokenStore = Depends(get_refresh_token_store),
    cookies: CookiePolicy = Depends(get_cookie_policy),
) -> AuthGuard:
    return AuthGuard(codec, users, refresh_tokens, cookies)


def require_auth(
    request: Request,
    response: Response,
    access_token: Optional[str] = Cookie(default=None),
    refresh_token: Optional[str] = Cookie(default=None),
    guard: AuthGuard = Depends(get_auth_guard),
) -> AuthContext:
    """Authenticate the request from its session cookies.

    On success the resolved identity is stored on ``request.state.auth``
    and returned. Any rejection is a bare 401; the reason is only logged.

    Raises:
        HTTPException: 401 when neither cookie yields a valid identity.
    """

    try:
        auth = guard.authenticate(access_token, refresh_token, response)
    except UnauthorizedError as exc:
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized"
        ) from exc

    request.state.auth = auth
    return auth


def current_user_id(auth: AuthContext = Depends(require_auth)) -> int:
    """User id of the authenticated caller; never zero or negative."""

    if auth.user_id <= 0:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return auth.user_id


__all__ = [
    "current_user_id",
    "get_auth_guard",
    "get_cookie_policy",
    "get_providers",
    "get_refresh_token_store",
    "get_session_manager",
    "get_settings",
    "get_token_codec",
    "get_user_store",
    "require_auth",
]
