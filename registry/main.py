"""Application factory and top-level wiring.

``create_app`` assembles configuration, logging, middleware, error handlers
and routers. Tables are created, migrated and optionally seeded on startup,
so a fresh checkout serves requests against a local SQLite file.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .core.config import settings
from .core.errors import http_exception_handler, validation_exception_handler
from .core.logging import configure_logging
from .db.migrate import run_migrations
from .db.seed import seed_lookups
from .db.session import Base, SessionLocal, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware

# Registers every table with the metadata before create_all runs.
from . import models as _models  # noqa: F401
from .routers import api_auth, api_inventory, auth_ui, data_transfer

LOGGER = logging.getLogger(__name__)


def init_database() -> None:
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    if settings.SEED_LOOKUPS:
        with SessionLocal() as db:
            seed_lookups(db)


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL, service=settings.APP_NAME)
    app = FastAPI(title=settings.APP_NAME)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.APP_SECRET,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_MAX_AGE,
        same_site="lax",
        https_only=False,  # set True once the app is always accessed via HTTPS at the edge
    )
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(auth_ui.router)
    app.include_router(api_auth.router)
    app.include_router(api_inventory.router)
    app.include_router(data_transfer.router)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    @app.on_event("startup")
    def _startup() -> None:
        init_database()
        LOGGER.info("app.started", extra={"extra_data": {"env": settings.APP_ENV}})

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()

__all__ = ["app", "create_app"]
