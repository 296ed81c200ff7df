"""
Firebase Admin SDK initialization.
"""

from __future__ import annotations

import json
import logging

import firebase_admin
from firebase_admin import credentials

from lonyichat.config import Settings

logger = logging.getLogger(__name__)


def initialize_firebase(settings: Settings) -> firebase_admin.App:
    """
    Initialize (once) and return the default Firebase app.

    ``FIREBASE_SERVICE_ACCOUNT`` holds the service-account key as a JSON
    string; without it application default credentials are used, which is
    what Cloud Run and the emulator provide.
    """
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    cred = None
    if settings.firebase_service_account:
        cred = credentials.Certificate(json.loads(settings.firebase_service_account))

    options = {}
    if settings.firebase_project_id:
        options["projectId"] = settings.firebase_project_id

    app = firebase_admin.initialize_app(cred, options=options or None)
    logger.info(
        "Firebase Admin initialized (%s).",
        "service account" if cred else "default credentials",
    )
    return app
