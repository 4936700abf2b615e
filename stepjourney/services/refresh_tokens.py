"""Persistence for refresh tokens."""

from __future__ import annotations

from sqlalchemy import delete
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import NotFoundError, StoreError
from ..core.time import utcnow
from ..models import RefreshToken

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class RefreshTokenStore:
    """Find, upsert and delete refresh tokens by their opaque string."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, refresh_token: RefreshToken) -> None:
        """Insert the row, or on a token collision overwrite owner and expiry."""

        dialect = self.session.get_bind().dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            raise StoreError(f"refresh token upsert unsupported on {dialect}")

        statement = insert(RefreshToken).values(
            user_id=refresh_token.user_id,
            token=refresh_token.token,
            expired_at=refresh_token.expired_at,
            created_at=refresh_token.created_at or utcnow(),
        )
        statement = statement.on_conflict_do_update(
            index_elements=[RefreshToken.token],
            set_={
                "user_id": statement.excluded.user_id,
                "expired_at": statement.excluded.expired_at,
            },
        )
        try:
            self.session.exec(statement)
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError("refresh token upsert failed") from exc

    def find_by_token(self, token: str) -> RefreshToken:
        try:
            row = self.session.exec(
                select(RefreshToken).where(RefreshToken.token == token)
            ).first()
        except SQLAlchemyError as exc:
            raise StoreError("refresh token lookup failed") from exc
        if row is None:
            raise NotFoundError("refresh token not found")
        return row

    def delete_by_token(self, token: str) -> None:
        try:
            self.session.exec(delete(RefreshToken).where(RefreshToken.token == token))
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError("refresh token delete failed") from exc


__all__ = ["RefreshTokenStore"]
