"""HTTP layer: dependency wiring and routers."""

from __future__ import annotations

import logging
from typing import Iterable

from fastapi import APIRouter, FastAPI

from .routers import ALL_ROUTERS

logger = logging.getLogger(__name__)


def register_routes(app: FastAPI, routers: Iterable[APIRouter] = ALL_ROUTERS) -> None:
    for router in routers:
        app.include_router(router)
    logger.debug("Registered %d routes", len(app.routes))


__all__ = ["register_routes"]
