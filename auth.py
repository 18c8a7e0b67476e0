import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from bson.objectid import ObjectId
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import config
import database

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

PBKDF2_ITERATIONS = 120_000

# (resource, action) -> roles allowed to call it
POLICY = {
    ("user", "update"): {"admin"},
    ("user", "delete"): {"admin"},
    ("user", "restore"): {"admin"},
    ("user", "list"): {"admin", "customer"},
    ("user", "list_deleted"): {"admin"},
    ("profile", "manage"): {"admin", "customer", "seller"},
    ("cart", "manage"): {"admin", "customer"},
    ("brand", "create"): {"admin"},
    ("brand", "update"): {"admin"},
    ("brand", "delete"): {"admin"},
    ("brand", "restore"): {"admin"},
    ("brand", "list_deleted"): {"admin"},
    ("category", "create"): {"admin"},
    ("category", "update"): {"admin"},
    ("category", "delete"): {"admin"},
    ("category", "restore"): {"admin"},
    ("category", "list_deleted"): {"admin"},
    ("category", "read"): {"admin", "customer", "seller"},
    ("product", "create"): {"admin", "seller"},
    ("product", "update"): {"admin", "seller"},
    ("product", "delete"): {"admin"},
    ("product", "restore"): {"admin"},
    ("product", "list_deleted"): {"admin"},
    ("product", "read"): {"admin", "customer", "seller"},
    ("rating", "create"): {"admin", "customer"},
    ("rating", "update"): {"admin", "customer"},
    ("rating", "delete"): {"admin", "customer"},
    ("rating", "restore"): {"admin"},
    ("rating", "list"): {"admin", "customer"},
    ("rating", "list_deleted"): {"admin"},
    ("wishlist", "manage"): {"admin", "customer"},
    ("order", "create"): {"admin", "customer"},
    ("order", "read"): {"admin", "customer"},
    ("order", "pay"): {"admin", "customer"},
    ("order", "update_status"): {"admin"},
    ("order", "cancel"): {"admin", "customer"},
    ("order", "return"): {"admin", "customer"},
}


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), PBKDF2_ITERATIONS).hex()
    return f"pbkdf2_sha256${PBKDF2_ITERATIONS}${salt}${digest}"


def verify_password(password: str, stored: str) -> bool:
    try:
        _, iterations, salt, digest = stored.split("$")
    except (AttributeError, ValueError):
        return False
    candidate = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), int(iterations)).hex()
    return hmac.compare_digest(candidate, digest)


def create_token(user: dict) -> str:
    exp = datetime.now(timezone.utc) + timedelta(days=config.JWT_EXPIRE_DAYS)
    payload = {"user_id": str(user["_id"]), "role": user["role"], "exp": exp}
    return jwt.encode(payload, config.JWT_SECRET, algorithm=config.JWT_ALGO)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGO])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Access denied. No token provided.")
    payload = decode_token(credentials.credentials)
    user_id = payload.get("user_id")
    if not user_id or not ObjectId.is_valid(user_id):
        raise HTTPException(status_code=401, detail="Invalid token payload")
    user = database.users.get(ObjectId(user_id))
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user


def authorize(resource: str, action: str):
    """Dependency factory: the current user, provided their role may perform `action` on `resource`."""
    allowed = POLICY[(resource, action)]

    async def dependency(user: dict = Depends(get_current_user)) -> dict:
        if user.get("role") not in allowed:
            logger.warning(f"User {user['_id']} ({user.get('role')}) denied {resource}:{action}")
            raise HTTPException(status_code=403, detail="Forbidden: Insufficient permissions")
        return user

    return dependency


def is_owner_or_admin(user: dict, owner_id) -> bool:
    return user.get("role") == "admin" or user["_id"] == owner_id
