"""
Dependency wiring for the FastAPI app.

Backends are built once by ``init_backends`` when the app is created and
kept on ``app.state``; request handlers receive them through the getters
below.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, Request
from firebase_admin import firestore

from lonyichat.auth import (
    AuthenticatedUser,
    FirebaseTokenVerifier,
    StaticTokenVerifier,
    TokenVerifier,
    parse_bearer_token,
)
from lonyichat.config import Settings
from lonyichat.db import DbClient, InMemoryDbClient, PostgresDbClient
from lonyichat.errors import ApiError, StoreUnavailable
from lonyichat.firebase import initialize_firebase
from lonyichat.firestore_db import FirestoreDbClient

logger = logging.getLogger(__name__)


def build_backends(settings: Settings) -> tuple[DbClient, TokenVerifier]:
    """Construct the store client and token verifier selected by settings."""
    if settings.use_in_memory_backends:
        logger.warning("Using in-memory store and unchecked bearer tokens.")
        return InMemoryDbClient(), StaticTokenVerifier()

    firebase_app = initialize_firebase(settings)
    verifier = FirebaseTokenVerifier(firebase_app)
    if settings.database_url:
        return PostgresDbClient(settings.database_url), verifier
    return FirestoreDbClient(firestore.client(firebase_app)), verifier


def init_backends(
    state,
    settings: Settings,
    db_client: Optional[DbClient] = None,
    token_verifier: Optional[TokenVerifier] = None,
) -> None:
    """
    Populate ``state`` with the store client and token verifier.

    Explicitly passed backends are used as-is. Otherwise they are built from
    settings; a failure here is logged once and leaves the process not
    ready instead of failing inside every request.
    """
    state.startup_error = None
    if db_client is None or token_verifier is None:
        try:
            built_db, built_verifier = build_backends(settings)
        except Exception as exc:
            logger.error("Failed to initialize backends: %s", exc, exc_info=True)
            state.startup_error = str(exc) or type(exc).__name__
            built_db, built_verifier = None, None
        db_client = db_client or built_db
        token_verifier = token_verifier or built_verifier
    state.db_client = db_client
    state.token_verifier = token_verifier


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_client(request: Request) -> DbClient:
    db = getattr(request.app.state, "db_client", None)
    if db is None:
        raise StoreUnavailable()
    return db


def get_token_verifier(request: Request) -> TokenVerifier:
    verifier = getattr(request.app.state, "token_verifier", None)
    if verifier is None:
        raise ApiError("Server error: authentication provider not available.")
    return verifier


def get_current_user(
    authorization: Optional[str] = Header(None),
    verifier: TokenVerifier = Depends(get_token_verifier),
) -> AuthenticatedUser:
    token = parse_bearer_token(authorization)
    return verifier.verify(token)
