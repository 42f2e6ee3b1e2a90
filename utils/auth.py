from __future__ import annotations

import hashlib
import hmac
import time
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request

from config import load_config
from db.database import get_db
from utils.errors import Forbidden

SESSION_COOKIE_NAME = "session"


@dataclass(frozen=True)
class Identity:
    user_id: int
    email: str
    name: Optional[str] = None
    is_admin: bool = False


def _get_auth_config() -> dict:
    config = load_config()
    return config.get("auth", {})


def _sign(secret: str, payload: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def create_session_cookie(user_id: int, secret: str, duration_hours: int) -> str:
    expires_at = int(time.time()) + int(duration_hours) * 3600
    payload = f"{int(user_id)}:{expires_at}"
    return f"{payload}:{_sign(secret, payload)}"


def verify_session_cookie(cookie_value: Optional[str], secret: Optional[str]) -> Optional[int]:
    """Return the user id carried by a valid, unexpired cookie, else None."""
    if not cookie_value or not secret:
        return None
    try:
        user_id_str, expires_str, signature = cookie_value.split(":", 2)
    except ValueError:
        return None
    expected = _sign(secret, f"{user_id_str}:{expires_str}")
    if not hmac.compare_digest(signature, expected):
        return None
    try:
        user_id = int(user_id_str)
        expires_at = int(expires_str)
    except ValueError:
        return None
    if expires_at < int(time.time()):
        return None
    return user_id


def resolve_identity(conn, cookie_value: Optional[str], auth_config: Optional[dict] = None) -> Optional[Identity]:
    auth_config = auth_config if auth_config is not None else _get_auth_config()
    user_id = verify_session_cookie(cookie_value, auth_config.get("session_secret"))
    if user_id is None:
        return None
    cursor = conn.cursor()
    cursor.execute("SELECT id, email, display_name FROM users WHERE id = ?", (user_id,))
    row = cursor.fetchone()
    if not row:
        return None
    email = row["email"]
    return Identity(
        user_id=row["id"],
        email=email,
        name=row["display_name"],
        is_admin=email.lower() in auth_config.get("admin_emails", []),
    )


def get_identity(request: Request, conn=Depends(get_db)) -> Optional[Identity]:
    """FastAPI dependency: the caller's identity, or None for anonymous callers."""
    return resolve_identity(conn, request.cookies.get(SESSION_COOKIE_NAME))


def require_identity(identity: Optional[Identity]) -> Identity:
    if identity is None:
        raise Forbidden("Authentication required")
    return identity
