"""Database model for persisted refresh tokens."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow


class RefreshToken(SQLModel, table=True):
    """Session-continuation credential, one row per issued token string."""

    __tablename__ = "refresh_tokens"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    user_id: int = ORMField(foreign_key="users.id", index=True)
    token: str = ORMField(unique=True, index=True)
    expired_at: datetime = ORMField(
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    created_at: datetime = ORMField(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


__all__ = ["RefreshToken"]
