"""Application settings and environment helpers."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Iterable, List, Optional

from dotenv import load_dotenv

LOCAL_ENVIRONMENT = "local"
_LOCAL_JWT_SECRET = "local-dev-secret-do-not-use-outside-local"

_local_dev_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]


def _require_env(name: str) -> str:
    """Return a required environment variable or raise an error."""

    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


@dataclass(frozen=True)
class OAuthSecrets:
    """Client credentials for the supported OAuth providers."""

    google_client_id: str = ""
    google_client_secret: str = ""
    naver_client_id: str = ""
    naver_client_secret: str = ""
    kakao_rest_api_key: str = ""
    kakao_client_secret: str = ""

    @classmethod
    def from_json(cls, raw: str) -> "OAuthSecrets":
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise RuntimeError("OAUTH_SECRET is not valid JSON") from exc
        if not isinstance(data, dict):
            raise RuntimeError("OAUTH_SECRET must be a JSON object")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise RuntimeError(f"OAUTH_SECRET has unknown keys: {', '.join(unknown)}")
        return cls(**{key: str(value or "") for key, value in data.items()})

    @classmethod
    def from_env(cls) -> "OAuthSecrets":
        raw = os.getenv("OAUTH_SECRET")
        if raw:
            return cls.from_json(raw)
        return cls(
            google_client_id=os.getenv("OAUTH_GOOGLE_CLIENT_ID", ""),
            google_client_secret=os.getenv("OAUTH_GOOGLE_CLIENT_SECRET", ""),
            naver_client_id=os.getenv("OAUTH_NAVER_CLIENT_ID", ""),
            naver_client_secret=os.getenv("OAUTH_NAVER_CLIENT_SECRET", ""),
            kakao_rest_api_key=os.getenv("OAUTH_KAKAO_REST_API_KEY", ""),
            kakao_client_secret=os.getenv("OAUTH_KAKAO_CLIENT_SECRET", ""),
        )


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, built once at startup and passed explicitly."""

    environment: str = LOCAL_ENVIRONMENT
    jwt_secret: str = _LOCAL_JWT_SECRET
    jwt_issuer: str = "step-journey"
    access_token_ttl: timedelta = timedelta(minutes=15)
    refresh_token_ttl: timedelta = timedelta(days=14)

    cookie_domain: Optional[str] = "localhost"
    cookie_secure: bool = False

    frontend_url: str = "http://localhost:5173"
    backend_url: str = "http://localhost:8000"
    allowed_cors_origins: List[str] = field(default_factory=lambda: list(_local_dev_origins))
    session_secret: str = "local-session-secret"

    database_url: str = "sqlite:///data/app.db"
    db_pool_size: int = 10
    db_reset: bool = False

    log_level: str = "INFO"

    oauth: OAuthSecrets = field(default_factory=OAuthSecrets)
    google_redirect_url: str = "http://localhost:8000/api/v1/auth/google/callback"
    kakao_redirect_url: str = "http://localhost:8000/api/v1/auth/kakao/callback"
    naver_redirect_url: str = "http://localhost:8000/api/v1/auth/naver/callback"

    @property
    def is_local(self) -> bool:
        return self.environment == LOCAL_ENVIRONMENT


def load_settings() -> Settings:
    """Read the environment (and ``.env``) into a :class:`Settings`."""

    load_dotenv(override=False)

    environment = (os.getenv("ENVIRONMENT") or LOCAL_ENVIRONMENT).strip().lower()
    is_local = environment == LOCAL_ENVIRONMENT

    if is_local:
        jwt_secret = os.getenv("JWT_SECRET") or _LOCAL_JWT_SECRET
        session_secret = os.getenv("SECRET_KEY") or "local-session-secret"
    else:
        jwt_secret = _require_env("JWT_SECRET")
        session_secret = _require_env("SECRET_KEY")

    access_minutes = _env_int("ACCESS_TOKEN_TTL_MINUTES", 15)
    refresh_days = _env_int("REFRESH_TOKEN_TTL_DAYS", 14)
    if access_minutes <= 0 or refresh_days <= 0:
        raise RuntimeError("Token TTLs must be positive")

    backend_url = os.getenv("BACKEND_URL", "http://localhost:8000").rstrip("/")
    frontend_url = os.getenv("FRONTEND_URL", "http://localhost:5173")

    # FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
    origins = _unique(
        [
            *_split_csv(os.getenv("FRONTEND_ORIGIN") or frontend_url),
            *_split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS")),
            *(_local_dev_origins if is_local else []),
        ]
    )

    return Settings(
        environment=environment,
        jwt_secret=jwt_secret,
        jwt_issuer=os.getenv("JWT_ISSUER", "step-journey"),
        access_token_ttl=timedelta(minutes=access_minutes),
        refresh_token_ttl=timedelta(days=refresh_days),
        cookie_domain=os.getenv("COOKIE_DOMAIN", "localhost") or None,
        cookie_secure=_env_bool("COOKIE_SECURE", not is_local),
        frontend_url=frontend_url,
        backend_url=backend_url,
        allowed_cors_origins=origins,
        session_secret=session_secret,
        database_url=os.getenv("DATABASE_URL", "sqlite:///data/app.db"),
        db_pool_size=_env_int("DB_POOL_SIZE", 10),
        db_reset=_env_bool("DB_RESET", False),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        oauth=OAuthSecrets.from_env(),
        google_redirect_url=os.getenv(
            "GOOGLE_REDIRECT_URL", f"{backend_url}/api/v1/auth/google/callback"
        ),
        kakao_redirect_url=os.getenv(
            "KAKAO_REDIRECT_URL", f"{backend_url}/api/v1/auth/kakao/callback"
        ),
        naver_redirect_url=os.getenv(
            "NAVER_REDIRECT_URL", f"{backend_url}/api/v1/auth/naver/callback"
        ),
    )


__all__ = ["LOCAL_ENVIRONMENT", "OAuthSecrets", "Settings", "load_settings"]
