"""Session cookie writing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import Response

from ..core.config import Settings
from ..core.time import utcnow

ACCESS_TOKEN_COOKIE = "access_token"
REFRESH_TOKEN_COOKIE = "refresh_token"


@dataclass(frozen=True)
class CookiePolicy:
    """Attributes shared by every session cookie this service writes."""

    domain: Optional[str]
    secure: bool

    @classmethod
    def from_settings(cls, settings: Settings) -> "CookiePolicy":
        return cls(domain=settings.cookie_domain, secure=settings.cookie_secure)

    def set_token(self, response: Response, name: str, value: str, ttl: timedelta) -> None:
        response.set_cookie(
            key=name,
            value=value,
            max_age=int(ttl.total_seconds()),
            expires=utcnow() + ttl,
            path="/",
            domain=self.domain,
            secure=self.secure,
            httponly=True,
            samesite="lax",
        )

    def clear(self, response: Response) -> None:
        for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
            response.delete_cookie(
                key=name,
                path="/",
                domain=self.domain,
                secure=self.secure,
                httponly=True,
                samesite="lax",
            )


__all__ = ["ACCESS_TOKEN_COOKIE", "REFRESH_TOKEN_COOKIE", "CookiePolicy"]
