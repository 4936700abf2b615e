"""Login orchestration: identity upsert, token issuance and cookie writes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import Response

from ..core.errors import ConflictError, NotFoundError, ProviderError, StoreError
from ..models import DEFAULT_ROLE, RefreshToken, User
from .cookies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, CookiePolicy
from .refresh_tokens import RefreshTokenStore
from .tokens import TokenCodec
from .users import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedSession:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime


class SessionManager:
    def __init__(
        self,
        codec: TokenCodec,
        users: UserStore,
        refresh_tokens: RefreshTokenStore,
        cookies: CookiePolicy,
    ) -> None:
        self.codec = codec
        self.users = users
        self.refresh_tokens = refresh_tokens
        self.cookies = cookies

    def upsert_identity(
        self,
        provider: str,
        email: str,
        nickname: str,
        name: str,
        profile_image: str,
    ) -> User:
        """Return the user owning ``email``, creating it on first login.

        An existing row is returned untouched, so the provider tag keeps
        whichever provider created the account.
        """

        normalized_email = (email or "").strip().lower()
        if not normalized_email:
            raise ProviderError(f"{provider} identity has no email")

        try:
            return self.users.find_by_email(normalized_email)
        except NotFoundError:
            pass

        try:
            user = self.users.create(
                User(
                    oauth_provider=provider,
                    email=normalized_email,
                    nickname=nickname or "",
                    name=name or "",
                    profile_image=profile_image or "",
                    role=DEFAULT_ROLE,
                    visits_count=1,
                )
            )
        except ConflictError:
            # A concurrent first login created the row in between.
            logger.info("User for %s login created concurrently, reusing it", provider)
            return self.users.find_by_email(normalized_email)
        logger.info("Created user id=%s via %s", user.id, provider)
        return user

    def login_and_issue_session(self, user: User, response: Response) -> IssuedSession:
        """Count the visit, persist a refresh token and set both cookies.

        Steps run in order and any failure propagates; a failure after the
        visit count update leaves the count bumped with no session created.
        """

        user.visits_count += 1
        user = self.users.update(user)

        refresh_token = self.codec.issue_refresh_token(user)
        expires_at = self.codec.refresh_expiry()
        self.refresh_tokens.upsert(
            RefreshToken(user_id=user.id, token=refresh_token, expired_at=expires_at)
        )

        access_token = self.codec.issue_access_token(user)

        self.cookies.set_token(response, ACCESS_TOKEN_COOKIE, access_token, self.codec.access_ttl)
        self.cookies.set_token(response, REFRESH_TOKEN_COOKIE, refresh_token, self.codec.refresh_ttl)

        logger.info("Issued session for user id=%s (visits=%s)", user.id, user.visits_count)
        return IssuedSession(
            access_token=access_token,
            refresh_token=refresh_token,
            refresh_expires_at=expires_at,
        )

    def logout(self, refresh_token: Optional[str], response: Response) -> None:
        """Clear both cookies and revoke the presented refresh token, if any.

        The cookies are cleared even when the revocation fails.
        """

        self.cookies.clear(response)
        if not refresh_token:
            return
        try:
            self.refresh_tokens.delete_by_token(refresh_token)
        except StoreError as exc:
            logger.error("Refresh token revocation failed at logout: %s", exc)


__all__ = ["IssuedSession", "SessionManager"]
