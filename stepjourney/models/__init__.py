"""Database model exports."""

from .refresh_token import RefreshToken
from .user import DEFAULT_ROLE, OAUTH_PROVIDERS, User

__all__ = [
    "DEFAULT_ROLE",
    "OAUTH_PROVIDERS",
    "RefreshToken",
    "User",
]
