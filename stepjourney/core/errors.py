"""Typed failures raised by the stores, the token codec and the services.

Routers translate these into HTTP responses; nothing below the API layer
knows about status codes.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for application errors."""


class NotFoundError(AppError):
    """A lookup matched no row."""


class ConflictError(AppError):
    """A write collided with a unique constraint."""


class StoreError(AppError):
    """The database failed underneath a store call."""


class SigningError(AppError):
    """A token could not be signed (bad key configuration)."""


class TokenError(AppError):
    """A token failed verification."""

    reason = "invalid"


class TokenExpiredError(TokenError):
    reason = "expired"


class MissingClaimError(TokenError):
    reason = "missing_claim"


class InvalidTokenError(TokenError):
    reason = "invalid"


class UnauthorizedError(AppError):
    """No valid credentials and no way to reissue them."""


class BadRequestError(AppError):
    """Malformed client input."""


class ProviderError(AppError):
    """An OAuth provider exchange failed."""


class ProviderNotConfiguredError(ProviderError):
    """The provider has no client credentials configured."""


__all__ = [
    "AppError",
    "BadRequestError",
    "ConflictError",
    "InvalidTokenError",
    "MissingClaimError",
    "NotFoundError",
    "ProviderError",
    "ProviderNotConfiguredError",
    "SigningError",
    "StoreError",
    "TokenError",
    "TokenExpiredError",
    "UnauthorizedError",
]
