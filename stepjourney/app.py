"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel
from starlette.middleware.sessions import SessionMiddleware

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import Settings, configure_logging, create_db_engine, load_settings
from .core.errors import BadRequestError, SigningError, StoreError, UnauthorizedError
from .services import CookiePolicy, OAuthProviders, TokenCodec

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    engine: Engine = app.state.engine
    logger.info("Starting application (environment=%s)", settings.environment)
    if settings.db_reset:
        logger.warning("DB_RESET set, dropping all tables")
        SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
    yield
    logger.info("Shutting down application...")
    engine.dispose()


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(UnauthorizedError)
    async def unauthorized_handler(request: Request, exc: UnauthorizedError):
        return JSONResponse({"detail": "Unauthorized"}, status_code=401)

    @app.exception_handler(BadRequestError)
    async def bad_request_handler(request: Request, exc: BadRequestError):
        return JSONResponse({"detail": str(exc) or "Bad Request"}, status_code=400)

    @app.exception_handler(StoreError)
    @app.exception_handler(SigningError)
    async def infrastructure_handler(request: Request, exc: Exception):
        logger.error("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
        return JSONResponse({"detail": "Internal Server Error"}, status_code=500)


def create_app(
    settings: Optional[Settings] = None,
    engine: Optional[Engine] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title="Step Journey API", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine or create_db_engine(settings)
    app.state.token_codec = TokenCodec(
        settings.jwt_secret,
        issuer=settings.jwt_issuer,
        access_ttl=settings.access_token_ttl,
        refresh_ttl=settings.refresh_token_ttl,
    )
    app.state.cookie_policy = CookiePolicy.from_settings(settings)
    app.state.providers = OAuthProviders(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    # Holds only the OAuth ``state`` between login redirect and callback.
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        session_cookie="oauth_state",
        https_only=settings.cookie_secure,
        same_site="lax",
    )

    _register_error_handlers(app)
    register_routes(app)
    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("stepjourney.app:create_app", factory=True, host="127.0.0.1", port=8000, reload=True)
