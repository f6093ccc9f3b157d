"""Password hashing and session token helpers.

Customer sessions and admin sessions are signed with different secrets so a
customer token can never be replayed against the admin back-office.
"""

import re
import uuid
from datetime import timedelta
from typing import Any, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

PASSWORD_SPECIAL_CHARS = r"[!@#$%^&*(),.?\":{}|<>]"


class InvalidTokenError(Exception):
    """Raised when a session token cannot be decoded or has expired."""


def hash_password(password: str) -> str:
    return pwd_ctx.hash(password)


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    return pwd_ctx.verify(password, password_hash)


def password_strength_errors(password: str) -> list[str]:
    """Return the unmet password rules (empty list when the password is strong)."""
    errors = []
    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("Password must contain at least one number")
    if not re.search(PASSWORD_SPECIAL_CHARS, password):
        errors.append("Password must contain at least one special character")
    return errors


def _encode(claims: dict[str, Any], secret: str, expires_in: timedelta) -> str:
    settings = get_settings()
    now = utc_now()
    payload = {
        **claims,
        "jti": uuid.uuid4().hex,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.JWT_ALGORITHM)


def _decode(token: str, secret: str) -> dict[str, Any]:
    settings = get_settings()
    try:
        return jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e


def create_session_token(user_id: str, email: str, name: Optional[str] = None) -> str:
    """Sign a customer session JWT."""
    settings = get_settings()
    return _encode(
        {"sub": user_id, "email": email, "name": name, "type": "session"},
        settings.SESSION_SECRET,
        timedelta(days=settings.SESSION_MAX_AGE_DAYS),
    )


def decode_session_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    payload = _decode(token, settings.SESSION_SECRET)
    if payload.get("type") != "session":
        raise InvalidTokenError("Not a customer session token")
    return payload


def create_admin_token(admin_id: str, email: str, role: str) -> str:
    """Sign an admin session JWT."""
    settings = get_settings()
    return _encode(
        {"adminId": admin_id, "email": email, "role": role, "type": "admin"},
        settings.ADMIN_SESSION_SECRET,
        timedelta(hours=settings.ADMIN_SESSION_HOURS),
    )


def decode_admin_token(token: str) -> dict[str, Any]:
    settings = get_settings()
    payload = _decode(token, settings.ADMIN_SESSION_SECRET)
    if payload.get("type") != "admin" or "adminId" not in payload:
        raise InvalidTokenError("Not an admin session token")
    return payload
