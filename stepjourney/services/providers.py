"""OAuth provider integrations (Google, Kakao, Naver).

Each provider turns an authorization callback into a
:class:`ProviderIdentity`. The token exchange and profile fetch go through
authlib's Starlette client, which also keeps the ``state`` parameter in the
session cookie.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from authlib.integrations.base_client import OAuthError
from authlib.integrations.starlette_client import OAuth
from fastapi import Request
from httpx import HTTPError

from ..core.config import Settings
from ..core.errors import ProviderError, ProviderNotConfiguredError

logger = logging.getLogger(__name__)

GOOGLE = "google"
KAKAO = "kakao"
NAVER = "naver"
PROVIDERS = (GOOGLE, KAKAO, NAVER)


@dataclass(frozen=True)
class ProviderIdentity:
    provider: str
    provider_user_id: str
    email: str
    name: str
    nickname: str
    profile_image: str


def _require_email(provider: str, email: Optional[str]) -> str:
    if not email:
        raise ProviderError(f"no email in {provider} profile")
    return email


def parse_google_profile(data: Mapping[str, Any]) -> ProviderIdentity:
    email = _require_email(GOOGLE, data.get("email"))
    name = data.get("name") or ""
    return ProviderIdentity(
        provider=GOOGLE,
        provider_user_id=str(data.get("sub") or data.get("id") or ""),
        email=email,
        name=name,
        nickname=name or "GoogleUser",
        profile_image=data.get("picture") or "",
    )


def parse_kakao_profile(data: Mapping[str, Any]) -> ProviderIdentity:
    account = data.get("kakao_account") or {}
    profile = account.get("profile") or {}
    nickname = profile.get("nickname") or ""
    return ProviderIdentity(
        provider=KAKAO,
        provider_user_id=str(data.get("id") or ""),
        email=_require_email(KAKAO, account.get("email")),
        name=nickname,
        nickname=nickname,
        profile_image=profile.get("profile_image_url") or "",
    )


def parse_naver_profile(data: Mapping[str, Any]) -> ProviderIdentity:
    response = data.get("response") or {}
    nickname = response.get("nickname") or response.get("name") or ""
    return ProviderIdentity(
        provider=NAVER,
        provider_user_id=str(response.get("id") or ""),
        email=_require_email(NAVER, response.get("email")),
        name=nickname,
        nickname=nickname,
        profile_image=response.get("profile_image") or "",
    )


class OAuthProviders:
    """Registry of configured OAuth clients, built from settings at startup."""

    def __init__(self, settings: Settings) -> None:
        self.oauth = OAuth()
        self.redirect_urls: Dict[str, str] = {}
        secrets = settings.oauth

        if secrets.google_client_id and secrets.google_client_secret:
            self.oauth.register(
                name=GOOGLE,
                client_id=secrets.google_client_id,
                client_secret=secrets.google_client_secret,
                server_metadata_url="https://accounts.google.com/.well-known/openid-configuration",
                client_kwargs={"scope": "openid email profile"},
                authorize_params={"prompt": "select_account"},
            )
            self.redirect_urls[GOOGLE] = settings.google_redirect_url

        if secrets.kakao_rest_api_key:
            self.oauth.register(
                name=KAKAO,
                client_id=secrets.kakao_rest_api_key,
                client_secret=secrets.kakao_client_secret or None,
                authorize_url="https://kauth.kakao.com/oauth/authorize",
                access_token_url="https://kauth.kakao.com/oauth/token",
                api_base_url="https://kapi.kakao.com/",
                client_kwargs={
                    "scope": "account_email",
                    "token_endpoint_auth_method": (
                        "client_secret_post" if secrets.kakao_client_secret else "none"
                    ),
                },
            )
            self.redirect_urls[KAKAO] = settings.kakao_redirect_url

        if secrets.naver_client_id and secrets.naver_client_secret:
            self.oauth.register(
                name=NAVER,
                client_id=secrets.naver_client_id,
                client_secret=secrets.naver_client_secret,
                authorize_url="https://nid.naver.com/oauth2.0/authorize",
                access_token_url="https://nid.naver.com/oauth2.0/token",
                api_base_url="https://openapi.naver.com/",
                client_kwargs={"token_endpoint_auth_method": "client_secret_post"},
            )
            self.redirect_urls[NAVER] = settings.naver_redirect_url

    def is_configured(self, provider: str) -> bool:
        return provider in self.redirect_urls

    def _client(self, provider: str):
        if not self.is_configured(provider):
            raise ProviderNotConfiguredError(f"{provider} OAuth is not configured")
        return self.oauth.create_client(provider)

    async def login_redirect(self, provider: str, request: Request):
        client = self._client(provider)
        return await client.authorize_redirect(request, self.redirect_urls[provider])

    async def exchange(self, provider: str, request: Request) -> ProviderIdentity:
        """Exchange the callback's code for a verified identity."""

        client = self._client(provider)
        try:
            token = await client.authorize_access_token(request)
            if provider == GOOGLE:
                profile = token.get("userinfo") or await client.userinfo(token=token)
                return parse_google_profile(profile)
            if provider == KAKAO:
                resp = await client.get("v2/user/me", token=token)
                resp.raise_for_status()
                return parse_kakao_profile(resp.json())
            resp = await client.get("v1/nid/me", token=token)
            resp.raise_for_status()
            return parse_naver_profile(resp.json())
        except (OAuthError, HTTPError, ValueError) as exc:
            logger.error("%s token exchange failed: %s", provider, exc)
            raise ProviderError(f"{provider} exchange failed") from exc


__all__ = [
    "GOOGLE",
    "KAKAO",
    "NAVER",
    "PROVIDERS",
    "OAuthProviders",
    "ProviderIdentity",
    "parse_google_profile",
    "parse_kakao_profile",
    "parse_naver_profile",
]
