"""
Token helpers for local authentication.

The account service signs user tokens with the shared ``LOCAL_JWT_SECRET``;
this module mints the same tokens for seeding and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from marketplace.core.config import Settings


def create_access_token(
    user_id: str,
    settings: Settings,
    email: Optional[str] = None,
    name: Optional[str] = None,
    expires_minutes: int | None = None,
) -> str:
    """Create a signed JWT for a local user."""
    now = datetime.now(timezone.utc)
    expires = now + timedelta(minutes=expires_minutes or settings.LOCAL_JWT_EXPIRE_MINUTES)
    payload = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    if email:
        payload["email"] = email
    if name:
        payload["name"] = name
    if settings.LOCAL_JWT_ISSUER:
        payload["iss"] = settings.LOCAL_JWT_ISSUER
    return jwt.encode(payload, settings.LOCAL_JWT_SECRET, algorithm="HS256")
