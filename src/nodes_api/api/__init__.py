from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..app.core.env import CURRENT_ENVIRONMENT
from ..app.settings import ApiSettings, AppSettings, get_api_settings, get_app_settings
from ..db.engine import DBEngine
from ..db.schema import create_schema
from ..db.settings import DBSettings, get_db_settings
from .errors import CatchAllExceptionMiddleware, register_error_handlers
from .routers import health_router, nodes_router

logger = logging.getLogger(__name__)


def create_app(
    engine: Optional[DBEngine] = None,
    *,
    db_settings: Optional[DBSettings] = None,
    app_settings: Optional[AppSettings] = None,
    api_settings: Optional[ApiSettings] = None,
) -> FastAPI:
    """Build the FastAPI app.

    When `engine` is given the caller owns it (and its schema); otherwise the
    lifespan builds one from DB settings and disposes it on shutdown.
    """
    app_settings = app_settings or get_app_settings()
    api_settings = api_settings or get_api_settings()

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        owned = engine is None
        db = engine or DBEngine(db_settings or get_db_settings())
        _app.state.db_engine = db
        logger.info(
            "DB attached: url=%s driver=%s pool_size=%s max_overflow=%s",
            db.safe_url(),
            db.engine.url.get_backend_name(),
            db.settings.pool_size,
            db.settings.max_overflow,
        )
        try:
            if owned and db.settings.auto_create_schema:
                await create_schema(db)
            yield
        finally:
            if owned:
                await db.dispose()

    app = FastAPI(title=app_settings.name, version=app_settings.version, lifespan=lifespan)
    app.state.api_settings = api_settings
    if engine is not None:
        app.state.db_engine = engine

    origins = api_settings.cors_origin_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CatchAllExceptionMiddleware)
    register_error_handlers(app)

    app.include_router(health_router)
    app.include_router(nodes_router)

    logger.info(f"{app_settings.version} version of {app_settings.name} initialized [env: {CURRENT_ENVIRONMENT}]")
    return app


__all__ = ["create_app"]
