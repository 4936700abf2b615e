"""Database configuration and session helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from fastapi import Request
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, create_engine

from .config import Settings


def create_db_engine(settings: Settings) -> Engine:
    """Build the engine for ``settings.database_url``.

    SQLite files get their parent directory created; every other backend
    gets a bounded connection pool.
    """

    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        return create_engine(
            settings.database_url, connect_args={"check_same_thread": False}
        )

    return create_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_pre_ping=True,
    )


def get_session(request: Request) -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""

    with Session(request.app.state.engine) as session:
        yield session


__all__ = ["create_db_engine", "get_session"]
