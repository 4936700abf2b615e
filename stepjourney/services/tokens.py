"""Issue and verify the signed session tokens carried in cookies.

Access and refresh tokens are HS256 JWTs signed with a single secret. The
subject is always ``user:<id>``; refresh tokens add ``scope=refresh``.
Expiry is checked against the codec's own clock rather than PyJWT's so the
codec can be driven from a fixed time in tests.
"""

from __future__ import annotations

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

import jwt

from ..core.errors import (
    InvalidTokenError,
    MissingClaimError,
    SigningError,
    TokenExpiredError,
)
from ..core.time import utcnow
from ..models import User

ALGORITHM = "HS256"
REFRESH_SCOPE = "refresh"

_SUBJECT_PATTERN = re.compile(r"user:([0-9]+)")


@dataclass(frozen=True)
class TokenClaims:
    """Claims decoded from a verified token."""

    sub: str
    iss: str
    iat: int
    exp: int
    email: Optional[str] = None
    role: Optional[str] = None
    scope: Optional[str] = None
    jti: Optional[str] = None

    @property
    def is_refresh(self) -> bool:
        return self.scope == REFRESH_SCOPE

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TokenClaims":
        try:
            return cls(
                sub=str(payload.get("sub") or ""),
                iss=str(payload.get("iss") or ""),
                iat=int(payload.get("iat") or 0),
                exp=int(payload["exp"]),
                email=payload.get("email"),
                role=payload.get("role"),
                scope=payload.get("scope"),
                jti=payload.get("jti"),
            )
        except (TypeError, ValueError) as exc:
            raise InvalidTokenError("token has malformed claims") from exc


def subject_for(user_id: int) -> str:
    return f"user:{user_id}"


def extract_user_id(claims: TokenClaims) -> int:
    """Return the numeric id in ``user:<id>``, or 0 when the subject is malformed."""

    match = _SUBJECT_PATTERN.fullmatch(claims.sub or "")
    if not match:
        return 0
    return int(match.group(1))


class TokenCodec:
    """Signs and verifies access/refresh tokens with one symmetric secret."""

    def __init__(
        self,
        secret: str,
        *,
        issuer: str = "step-journey",
        access_ttl: timedelta = timedelta(minutes=15),
        refresh_ttl: timedelta = timedelta(days=14),
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._secret = secret
        self.issuer = issuer
        self.access_ttl = access_ttl
        self.refresh_ttl = refresh_ttl
        self.clock = clock

    def issue_access_token(self, user: User) -> str:
        return self._issue(
            user,
            self.access_ttl,
            {"email": user.email, "role": user.role},
        )

    def issue_refresh_token(self, user: User) -> str:
        return self._issue(user, self.refresh_ttl, {"scope": REFRESH_SCOPE})

    def refresh_expiry(self) -> datetime:
        """Absolute expiry for a refresh token issued now."""
        return self.clock() + self.refresh_ttl

    def _issue(self, user: User, ttl: timedelta, extra: Dict[str, Any]) -> str:
        now = self.clock()
        payload: Dict[str, Any] = {
            "sub": subject_for(user.id),
            "iss": self.issuer,
            "iat": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": secrets.token_hex(8),
            **extra,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningError("failed to sign token") from exc

    def verify(self, token: str) -> TokenClaims:
        """Check signature and expiry, returning the decoded claims."""

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                    "verify_iss": False,
                },
            )
        except jwt.PyJWTError as exc:
            raise InvalidTokenError(str(exc)) from exc

        if payload.get("exp") is None:
            raise MissingClaimError("missing exp claim")

        claims = TokenClaims.from_payload(payload)
        if self.clock().timestamp() > claims.exp:
            raise TokenExpiredError("token is expired")
        return claims


__all__ = [
    "ALGORITHM",
    "REFRESH_SCOPE",
    "TokenClaims",
    "TokenCodec",
    "extract_user_id",
    "subject_for",
]
