# file: HIVE/core/config.py
import os
import logging

logger = logging.getLogger("core.config")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# ==============================
# Firebase / Firestore
# ==============================
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "hive-campus")
CREDENTIAL_SOURCE = os.getenv("GOOGLE_APPLICATION_CREDENTIALS")

EVENTS_COLLECTION = os.getenv("EVENTS_COLLECTION", "events")
USERS_COLLECTION = os.getenv("USERS_COLLECTION", "users")

# ==============================
# Lifecycle scheduling
# ==============================
EVENT_STATE_INTERVAL_MINUTES = int(os.getenv("EVENT_STATE_INTERVAL_MINUTES", "15"))

# Firestore rejects batches above 500 writes
MAX_BATCH_WRITES = min(int(os.getenv("MAX_BATCH_WRITES", "500")), 500)

ENABLE_LIFECYCLE_SCHEDULER = _env_flag("ENABLE_LIFECYCLE_SCHEDULER", "true")
ENABLE_CREATION_LISTENER = _env_flag("ENABLE_CREATION_LISTENER", "true")

# ==============================
# Logging
# ==============================
ENABLE_CLOUD_LOGGING = _env_flag("ENABLE_CLOUD_LOGGING", "false")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ==============================
# Security Settings
# ==============================
SECRET_KEY = os.getenv("SECRET_KEY")  # falls back to Firestore CONFIG/jwt
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "public"

TRANSITION_RATE_LIMIT = os.getenv("TRANSITION_RATE_LIMIT", "60/minute")
