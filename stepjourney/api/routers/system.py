"""Liveness and readiness endpoints."""

from __future__ import annotations

import logging
from typing import Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/api/v1/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


@router.get("/healthz")
def healthz(request: Request) -> JSONResponse:
    """Readiness: 200 when the database answers, 503 otherwise."""

    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Readiness check failed: %s", exc)
        return JSONResponse({"ok": False, "database": "unavailable"}, status_code=503)
    return JSONResponse({"ok": True, "database": "ok"})


__all__ = ["router"]
