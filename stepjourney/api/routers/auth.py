"""OAuth login, callback and logout routes."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from starlette.concurrency import run_in_threadpool

from ...core import Settings
from ...core.errors import (
    ConflictError,
    ProviderError,
    ProviderNotConfiguredError,
    SigningError,
    StoreError,
)
from ...services import SessionManager
from ...services.providers import PROVIDERS, OAuthProviders, ProviderIdentity
from ..deps import get_providers, get_session_manager, get_settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _label(provider: str) -> str:
    if provider not in PROVIDERS:
        raise HTTPException(status_code=404, detail="Unknown provider")
    return provider.capitalize()


def _upsert(sessions: SessionManager, identity: ProviderIdentity):
    return sessions.upsert_identity(
        identity.provider,
        identity.email,
        identity.nickname,
        identity.name,
        identity.profile_image,
    )


@router.get("/{provider}/login")
async def oauth_login(
    provider: str,
    request: Request,
    providers: OAuthProviders = Depends(get_providers),
):
    label = _label(provider)
    try:
        return await providers.login_redirect(provider, request)
    except ProviderNotConfiguredError as exc:
        logger.error("[%s login] %s", provider, exc)
        raise HTTPException(
            status_code=500, detail=f"{label} OAuth not configured"
        ) from exc


@router.get("/{provider}/callback")
async def oauth_callback(
    provider: str,
    request: Request,
    code: Optional[str] = None,
    providers: OAuthProviders = Depends(get_providers),
    sessions: SessionManager = Depends(get_session_manager),
    settings: Settings = Depends(get_settings),
):
    label = _label(provider)
    if not code:
        raise HTTPException(status_code=400, detail="Missing code param")

    try:
        identity = await providers.exchange(provider, request)
        user = await run_in_threadpool(_upsert, sessions, identity)
    except (ProviderError, StoreError, ConflictError) as exc:
        logger.error("[%s callback] OAuth failed: %s", provider, exc)
        raise HTTPException(status_code=500, detail=f"{label} OAuth failed") from exc

    response = RedirectResponse(f"{settings.frontend_url}?login=success", status_code=302)
    try:
        await run_in_threadpool(sessions.login_and_issue_session, user, response)
    except (StoreError, SigningError) as exc:
        logger.error("[%s callback] login failed for user id=%s: %s", provider, user.id, exc)
        raise HTTPException(status_code=500, detail="Login failed") from exc
    return response


@router.post("/logout")
def logout(
    response: Response,
    refresh_token: Optional[str] = Cookie(default=None),
    sessions: SessionManager = Depends(get_session_manager),
):
    sessions.logout(refresh_token, response)
    logger.info("Logout completed, cookies cleared")
    return {"message": "Logged out successfully"}


__all__ = ["router"]
