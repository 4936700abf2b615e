"""Core configuration and infrastructure helpers."""

from .config import LOCAL_ENVIRONMENT, OAuthSecrets, Settings, load_settings
from .database import create_db_engine, get_session
from .logging import configure_logging
from .time import ensure_utc, utcnow

__all__ = [
    "LOCAL_ENVIRONMENT",
    "OAuthSecrets",
    "Settings",
    "configure_logging",
    "create_db_engine",
    "ensure_utc",
    "get_session",
    "load_settings",
    "utcnow",
]
