"""Service layer: token codec, stores, session manager and auth guard."""

from .cookies import ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE, CookiePolicy
from .guard import AuthContext, AuthGuard
from .providers import OAuthProviders, ProviderIdentity
from .refresh_tokens import RefreshTokenStore
from .sessions import IssuedSession, SessionManager
from .tokens import TokenClaims, TokenCodec, extract_user_id
from .users import UserStore, create_local_user, user_to_dict

__all__ = [
    "ACCESS_TOKEN_COOKIE",
    "REFRESH_TOKEN_COOKIE",
    "AuthContext",
    "AuthGuard",
    "CookiePolicy",
    "IssuedSession",
    "OAuthProviders",
    "ProviderIdentity",
    "RefreshTokenStore",
    "SessionManager",
    "TokenClaims",
    "TokenCodec",
    "UserStore",
    "create_local_user",
    "extract_user_id",
    "user_to_dict",
]
