# file: HIVE/core/security.py
from datetime import datetime, timedelta, timezone
import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from HIVE.core import config
from HIVE.core.errors import NotFound, PermissionDenied, Unauthenticated
from HIVE.core.firebase import get_firestore

# ---------------------------
# Logging
# ---------------------------
logger = logging.getLogger("core.security")

# Missing credentials must surface as "unauthenticated", not a bare 403
security = HTTPBearer(auto_error=False)


def get_secret_key(db=None) -> str:
    """Lazy-load stable JWT secret key from Firestore CONFIG/jwt."""
    if config.SECRET_KEY is None:
        if db is None:
            db = get_firestore()
        snap = db.collection("CONFIG").document("jwt").get()
        if not snap.exists:
            raise RuntimeError("Missing CONFIG/jwt document in Firestore")

        data = snap.to_dict() or {}
        key = data.get("SECRET_KEY")
        if not key or len(key) < 32:
            raise RuntimeError("Invalid or missing SECRET_KEY in Firestore CONFIG/jwt")

        config.SECRET_KEY = key
        logger.info("Loaded SECRET_KEY from Firestore")
    return config.SECRET_KEY


# ---------------------------
# Token Creation
# ---------------------------
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, get_secret_key(), algorithm=config.ALGORITHM)


# ---------------------------
# Dependency: Current Caller (JWT only)
# ---------------------------
async def get_current_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[dict]:
    """
    Resolve the calling actor from the bearer token.

    Returns ``None`` when no credentials were sent so the lifecycle
    operation itself decides how to reject anonymous calls.
    """
    if credentials is None:
        return None

    try:
        payload = jwt.decode(credentials.credentials, get_secret_key(), algorithms=[config.ALGORITHM])
    except JWTError as e:
        logger.warning("JWT error: %s", str(e))
        raise Unauthenticated("Invalid or expired token")

    user_id = payload.get("user_id") or payload.get("sub")
    if not user_id:
        logger.warning("Invalid JWT payload: %s", payload)
        raise Unauthenticated("Invalid token payload")

    logger.debug("JWT decoded → sub=%s user_id=%s", payload.get("sub"), user_id)
    return {"user_id": user_id, "email": payload.get("sub")}


def get_user_role(db, user_id: str) -> str:
    doc = db.collection(config.USERS_COLLECTION).document(user_id).get()
    if not doc.exists:
        raise NotFound("User document not found")
    return (doc.to_dict() or {}).get("role") or config.DEFAULT_ROLE


# ---------------------------
# Role-Based Dependencies
# ---------------------------
async def get_current_admin(
    caller: Optional[dict] = Depends(get_current_caller),
    db=Depends(get_firestore),
):
    if caller is None:
        raise Unauthenticated("You must be logged in to run the event lifecycle")
    if get_user_role(db, caller["user_id"]) != config.ADMIN_ROLE:
        raise PermissionDenied("Admin access required")
    return caller
