from __future__ import annotations
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from .config import get_settings
settings = get_settings()

def new_session_id() -> str:
    return secrets.token_urlsafe(32)

def peek_claims(token: str) -> Dict[str, Any]:
    """Claims of an upstream token. The API verifies signatures; we only read them."""
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError:
        return {}

def session_expiry(token: str, *, now: datetime | None = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    exp = peek_claims(token).get("exp")
    if isinstance(exp, (int, float)):
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    return now + timedelta(minutes=settings.session_ttl_minutes)
