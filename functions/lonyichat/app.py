"""
FastAPI application entry point for the LonyiChat backend.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lonyichat.auth import TokenVerifier
from lonyichat.config import Settings, get_settings
from lonyichat.db import DbClient
from lonyichat.dependencies import init_backends
from lonyichat.errors import register_error_handlers
from lonyichat.routes import router


def create_app(
    settings: Optional[Settings] = None,
    db_client: Optional[DbClient] = None,
    token_verifier: Optional[TokenVerifier] = None,
) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())

    app = FastAPI(title="LonyiChat Backend", version="0.1.0")
    app.state.settings = settings
    init_backends(app.state, settings, db_client=db_client, token_verifier=token_verifier)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)
    app.include_router(router, prefix=settings.api_prefix)
    return app
