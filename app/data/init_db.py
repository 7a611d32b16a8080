"""
Firestore client – created lazily and shared by the session store and the
campus reference-data lookups.
"""

from __future__ import annotations

import logging

from google.cloud import firestore

from app.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

_db: firestore.Client | None = None


def get_db() -> firestore.Client | None:
    """Return the Firestore client, or None when it cannot be created."""
    global _db
    if _db is None:
        try:
            _db = firestore.Client(
                project=settings.GOOGLE_CLOUD_PROJECT,
                database=settings.FIRESTORE_DATABASE,
            )
            logger.info(f"Firestore client ready (database={settings.FIRESTORE_DATABASE})")
        except Exception as e:
            logger.error(f"Could not create Firestore client: {e}")
            return None
    return _db
