"""
Firebase project wiring: document store, identity and blob storage.

Credentials come from FIREBASE_CREDENTIALS (service-account json path) or,
when unset, Google application default credentials. The SDK picks up
FIRESTORE_EMULATOR_HOST / FIREBASE_AUTH_EMULATOR_HOST /
FIREBASE_STORAGE_EMULATOR_HOST on its own for local development.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import firebase_admin
from firebase_admin import auth, credentials, firestore, storage

from config import Settings, get_settings

logger = logging.getLogger(__name__)


def _options(settings: Settings) -> dict[str, Any]:
    opts: dict[str, Any] = {}
    if settings.firebase_project_id:
        opts["projectId"] = settings.firebase_project_id
    if settings.firebase_storage_bucket:
        opts["storageBucket"] = settings.firebase_storage_bucket
    return opts


def get_app(settings: Optional[Settings] = None) -> firebase_admin.App:
    """Return the default app, initializing it on first use."""
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    settings = settings or get_settings()
    if settings.firebase_credentials:
        cred = credentials.Certificate(settings.firebase_credentials)
    else:
        cred = credentials.ApplicationDefault()
    app = firebase_admin.initialize_app(cred, _options(settings))
    logger.info("Firebase app initialized (project=%s)", settings.firebase_project_id or "<default>")
    return app


def get_firestore_client(settings: Optional[Settings] = None):
    return firestore.client(app=get_app(settings))


def get_auth(settings: Optional[Settings] = None) -> auth.Client:
    return auth.Client(get_app(settings))


def get_storage_bucket(settings: Optional[Settings] = None):
    settings = settings or get_settings()
    if not settings.firebase_storage_bucket:
        raise RuntimeError("FIREBASE_STORAGE_BUCKET is not set")
    return storage.bucket(app=get_app(settings))
