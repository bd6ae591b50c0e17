# file: HIVE/core/firebase.py

import os
import json
import logging
import firebase_admin
from firebase_admin import credentials, firestore

from HIVE.core.config import FIREBASE_PROJECT_ID, CREDENTIAL_SOURCE

logger = logging.getLogger("core.firebase")

_db = None


def _load_credentials():
    if not CREDENTIAL_SOURCE:
        raise ValueError("GOOGLE_APPLICATION_CREDENTIALS env var is not set")

    # Case 1: it's a file path
    if os.path.exists(CREDENTIAL_SOURCE):
        logger.info("Loading Firebase credentials from file: %s", CREDENTIAL_SOURCE)
        return credentials.Certificate(CREDENTIAL_SOURCE)

    # Case 2: it's a raw JSON string
    logger.info("Loading Firebase credentials from raw JSON string")
    return credentials.Certificate(json.loads(CREDENTIAL_SOURCE))


def get_db():
    """
    Return the shared Firestore client, initializing Firebase Admin on first use.
    """
    global _db
    if _db is not None:
        return _db

    try:
        if not firebase_admin._apps:
            app = firebase_admin.initialize_app(_load_credentials(), {
                "projectId": FIREBASE_PROJECT_ID,
            })
            logger.info("🔥 Firebase initialized with project: %s", app.project_id)

        _db = firestore.client()
        logger.info("🔥 Firestore client project: %s", _db.project)
    except Exception as e:
        logger.exception("Failed to initialize Firebase Firestore: %s", e)
        raise

    return _db


def get_firestore():
    """FastAPI dependency wrapper around :func:`get_db`."""
    return get_db()


__all__ = ["get_db", "get_firestore"]
