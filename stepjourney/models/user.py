"""Database model for user accounts."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime
from sqlmodel import Field as ORMField, SQLModel

from ..core.time import utcnow

OAUTH_PROVIDERS = ("google", "kakao", "naver", "local")
DEFAULT_ROLE = "USER"


class User(SQLModel, table=True):
    """Account identified by email, whichever provider created it."""

    __tablename__ = "users"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    oauth_provider: str = ORMField(default="local")
    email: str = ORMField(index=True, unique=True)
    name: str = ""
    nickname: str = ""
    profile_image: str = ""
    role: str = ORMField(default=DEFAULT_ROLE)
    visits_count: int = 0
    created_at: datetime = ORMField(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = ORMField(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


__all__ = ["DEFAULT_ROLE", "OAUTH_PROVIDERS", "User"]
