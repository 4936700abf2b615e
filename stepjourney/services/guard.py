"""Per-request authentication with transparent access-token reissue.

A request is authorized when its ``access_token`` cookie verifies, or when
it does not (absent, expired, malformed, badly signed) but the
``refresh_token`` cookie names a stored, unexpired refresh token whose user
still exists. In the second case a fresh access token is written back as a
cookie; the refresh token itself is left as it is.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Response

from ..core.errors import NotFoundError, TokenError, UnauthorizedError
from ..core.time import ensure_utc
from .cookies import ACCESS_TOKEN_COOKIE, CookiePolicy
from .refresh_tokens import RefreshTokenStore
from .tokens import TokenCodec, extract_user_id
from .users import UserStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved for the current request."""

    user_id: int
    reissued: bool = False


class AuthGuard:
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

    def authenticate(
        self,
        access_token: Optional[str],
        refresh_token: Optional[str],
        response: Response,
    ) -> AuthContext:
        if access_token:
            try:
                claims = self.codec.verify(access_token)
            except TokenError as exc:
                logger.info("Access token rejected (%s), attempting reissue", exc.reason)
            else:
                user_id = extract_user_id(claims)
                if user_id == 0:
                    logger.warning("Verified access token has no usable subject")
                    raise UnauthorizedError("no user in token")
                return AuthContext(user_id=user_id)
        else:
            logger.info("No access token cookie, attempting reissue")

        if not refresh_token:
            raise UnauthorizedError("no refresh token")
        return self._reissue(refresh_token, response)

    def _reissue(self, refresh_token: str, response: Response) -> AuthContext:
        try:
            stored = self.refresh_tokens.find_by_token(refresh_token)
        except NotFoundError as exc:
            logger.warning("Refresh token not found")
            raise UnauthorizedError("refresh token not found") from exc

        if self.codec.clock() > ensure_utc(stored.expired_at):
            logger.warning("Refresh token for user id=%s has expired", stored.user_id)
            raise UnauthorizedError("refresh token expired")

        try:
            user = self.users.find_by_id(stored.user_id)
        except NotFoundError as exc:
            logger.warning("Refresh token owner id=%s no longer exists", stored.user_id)
            raise UnauthorizedError("refresh token owner missing") from exc

        access_token = self.codec.issue_access_token(user)
        self.cookies.set_token(response, ACCESS_TOKEN_COOKIE, access_token, self.codec.access_ttl)

        try:
            claims = self.codec.verify(access_token)
        except TokenError as exc:
            raise UnauthorizedError("reissued token failed verification") from exc
        user_id = extract_user_id(claims)
        if user_id == 0:
            raise UnauthorizedError("no user in reissued token")

        logger.info("Reissued access token for user id=%s", user_id)
        return AuthContext(user_id=user_id, reissued=True)


__all__ = ["AuthContext", "AuthGuard"]
