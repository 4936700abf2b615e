"""User persistence and serialisation helpers."""

from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..core.errors import ConflictError, NotFoundError, StoreError
from ..core.time import utcnow
from ..models import DEFAULT_ROLE, User

# Fields an update may overwrite; id, email and created_at stay fixed.
_MUTABLE_FIELDS = (
    "oauth_provider",
    "name",
    "nickname",
    "profile_image",
    "role",
    "visits_count",
)


class UserStore:
    """Find, create, update and list users."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def find_by_id(self, user_id: int) -> User:
        try:
            user = self.session.get(User, user_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"user lookup failed for id={user_id}") from exc
        if user is None:
            raise NotFoundError(f"no user with id={user_id}")
        return user

    def find_by_email(self, email: str) -> User:
        try:
            user = self.session.exec(select(User).where(User.email == email)).first()
        except SQLAlchemyError as exc:
            raise StoreError("user lookup by email failed") from exc
        if user is None:
            raise NotFoundError("no user with that email")
        return user

    def create(self, user: User) -> User:
        now = utcnow()
        user.created_at = now
        user.updated_at = now
        self.session.add(user)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictError("a user with that email already exists") from exc
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError("user insert failed") from exc
        self.session.refresh(user)
        return user

    def update(self, user: User) -> User:
        stored = self.find_by_id(user.id)
        for name in _MUTABLE_FIELDS:
            setattr(stored, name, getattr(user, name))
        stored.updated_at = utcnow()
        self.session.add(stored)
        try:
            self.session.commit()
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise StoreError(f"user update failed for id={user.id}") from exc
        self.session.refresh(stored)
        return stored

    def list_all(self) -> List[User]:
        try:
            return list(self.session.exec(select(User).order_by(User.id)).all())
        except SQLAlchemyError as exc:
            raise StoreError("user listing failed") from exc


def create_local_user(store: UserStore, username: str) -> User:
    """Register a provider-less account keyed on a placeholder email.

    The email is lower-cased like provider emails, so "Bob" and "bob"
    collide.
    """

    return store.create(
        User(
            oauth_provider="local",
            email=f"{username.strip().lower()}@dummy.local",
            name=username,
            nickname=username,
            profile_image="",
            role=DEFAULT_ROLE,
            visits_count=1,
        )
    )


def user_to_dict(user: User) -> Dict[str, Any]:
    """Serialise a user model to an API-friendly dict."""

    return {
        "id": user.id,
        "oauth_provider": user.oauth_provider,
        "email": user.email,
        "name": user.name,
        "nickname": user.nickname,
        "profile_image": user.profile_image,
        "role": user.role,
        "visits_count": user.visits_count,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


__all__ = ["UserStore", "create_local_user", "user_to_dict"]
