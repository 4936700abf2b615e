"""User endpoints, all behind the session-cookie guard."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from ...core.errors import ConflictError, NotFoundError
from ...services import UserStore, create_local_user, user_to_dict
from ..deps import current_user_id, get_user_store, require_auth

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
    dependencies=[Depends(require_auth)],
)


@router.get("")
def list_users(users: UserStore = Depends(get_user_store)):
    return [user_to_dict(user) for user in users.list_all()]


@router.post("")
def create_user(body: Dict[str, Any], users: UserStore = Depends(get_user_store)):
    """Register a local (provider-less) user by name."""

    username = str(body.get("username") or "").strip()
    if not username:
        raise HTTPException(400, "Username is required")

    try:
        user = create_local_user(users, username)
    except ConflictError as exc:
        raise HTTPException(409, "User already exists") from exc
    return user_to_dict(user)


@router.get("/me")
def me(
    user_id: int = Depends(current_user_id),
    users: UserStore = Depends(get_user_store),
):
    try:
        user = users.find_by_id(user_id)
    except NotFoundError as exc:
        logger.error("Authenticated user id=%s not found", user_id)
        raise HTTPException(404, "User not found") from exc

    return {"id": user.id, "name": user.nickname, "email": user.email}


__all__ = ["router"]
