"""
FastAPI app entry point aggregating the routers under truthordare/routes.
Run as `uvicorn truthordare.api:app`.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .db import Database, connect_with_retry, load_settings
from .routes import base as base_routes
from .routes import logs as logs_routes
from .routes import questions as questions_routes
from .routes import tags as tags_routes

logger = logging.getLogger(__name__)


def create_app(db: Database | None = None) -> FastAPI:
    """Build the app. Without `db`, settings are resolved and the database opened at startup."""
    app = FastAPI(title="Truth or Dare API", version=base_routes.APP_VERSION)
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    def on_startup():
        if app.state.db is None:
            settings = load_settings()
            logging.basicConfig(level=settings.log_level)
            app.state.db = connect_with_retry(settings)
        app.state.db.ensure_schema()
        logger.info("Truth or Dare API ready (db=%s)", app.state.db.path)

    app.include_router(base_routes.router)
    app.include_router(questions_routes.router)
    app.include_router(tags_routes.router)
    app.include_router(logs_routes.router)
    return app


app = create_app()
