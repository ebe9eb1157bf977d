from __future__ import annotations

import datetime as dt
import hashlib
import secrets
import uuid
from typing import Any

import jwt

from app.core.settings import Settings


SESSION_TTL_SECONDS = 30 * 24 * 60 * 60

# Tokens issued since the 2020-07 security advisory carry this prefix.
API_TOKEN_PREFIX = "cio"


def _now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def issue_session_token(*, user_id: uuid.UUID, settings: Settings) -> str:
    now = _now_utc()
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + dt.timedelta(seconds=SESSION_TTL_SECONDS)).timestamp()),
    }
    return jwt.encode(payload, settings.session_secret, algorithm="HS256")


def decode_session_token(*, token: str, settings: Settings) -> uuid.UUID:
    """Return the user id stored in a session cookie.

    Raises ``jwt.InvalidTokenError`` (or ``ValueError`` for a malformed
    subject) when the cookie cannot be trusted.
    """

    payload = jwt.decode(
        token,
        settings.session_secret,
        algorithms=["HS256"],
        options={"require": ["exp", "iat", "sub"]},
    )
    return uuid.UUID(str(payload["sub"]))


def generate_api_token() -> str:
    return API_TOKEN_PREFIX + secrets.token_urlsafe(24)


def is_legacy_api_token(token: str) -> bool:
    return not token.startswith(API_TOKEN_PREFIX)


def hash_api_token(token: str) -> str:
    # API tokens are high-entropy; plain SHA256 is sufficient at rest.
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
