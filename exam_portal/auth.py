"""
Caller identity.

Tokens are issued and checked by the gateway in front of this service, which
forwards the authenticated user's id in the ``X-User-Id`` header. These
dependencies only resolve that id to a user record and check the role.
"""

from typing import Any, Dict, Optional

import bcrypt
from bson import ObjectId
from fastapi import Depends, Header

from .database import get_db
from .errors import AuthError, PermissionDeniedError

PRIVATE_FIELDS = ("password",)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    if not hashed:
        return False
    return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))


def public_user(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = {k: v for k, v in doc.items() if k not in PRIVATE_FIELDS}
    d["id"] = str(d.pop("_id"))
    return d


def load_user(db, user_id: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(user_id):
        return None
    return db["user"].find_one({"_id": ObjectId(user_id)})


def get_optional_user(x_user_id: Optional[str] = Header(None), db=Depends(get_db)):
    if not x_user_id:
        return None
    user = load_user(db, x_user_id)
    if user is None:
        raise AuthError("Not authorized, user not found")
    return user


def get_current_user(user=Depends(get_optional_user)):
    if user is None:
        raise AuthError("Not authorized, no identity supplied")
    return user


def require_admin(user=Depends(get_current_user)):
    if user.get("role") != "admin":
        raise PermissionDeniedError(f"User role {user.get('role')} is not authorized to access this route")
    return user
