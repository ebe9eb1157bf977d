from __future__ import annotations

import logging
import uuid

import jwt
import sqlalchemy as sa
from fastapi import Depends, Header, Request
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import (
    Fault,
    chain_internal_cause,
    chain_user_facing_fallback,
    is_read_only_violation,
    present_or_internal,
)
from app.core.responses import (
    INTERNAL_SERVER_ERROR_DETAIL,
    Forbidden,
    InsecurelyGeneratedTokenRevoked,
    ServerError,
)
from app.core.security import decode_session_token, hash_api_token, is_legacy_api_token
from app.core.settings import get_settings
from app.db.base import utcnow
from app.db.session import get_db
from app.models.api_token import ApiToken
from app.models.user import User


logger = logging.getLogger(__name__)

USER_NOT_FOUND = "user_id from cookie or token not found in database"


def _session_user_id(request: Request) -> uuid.UUID | None:
    settings = get_settings()
    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        return None
    try:
        return decode_session_token(token=cookie, settings=settings)
    except (jwt.InvalidTokenError, ValueError):
        # An untrusted cookie is the same as no session at all.
        return None


async def _find_api_token(db: AsyncSession, raw_token: str) -> ApiToken:
    if is_legacy_api_token(raw_token):
        raise Fault.root_cause(InsecurelyGeneratedTokenRevoked())

    row = (
        await db.execute(
            sa.select(ApiToken).where(
                ApiToken.token_hash == hash_api_token(raw_token),
                ApiToken.revoked.is_(False),
            )
        )
    ).scalar_one_or_none()
    with chain_user_facing_fallback(Forbidden):
        token = present_or_internal(row, "invalid token")

    token.last_used_at = utcnow()
    try:
        await db.commit()
    except DBAPIError as exc:
        if not is_read_only_violation(exc):
            raise
        # Reads still work in read-only mode; only the usage stamp is lost.
        logger.warning(
            "Could not record API token use (token_id=%s): %s", token.id, exc.orig
        )
        await db.rollback()
        await db.refresh(token)
    return token


async def get_current_user(
    request: Request,
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Authenticate with the session cookie first, then an API token."""

    user_id = _session_user_id(request)
    if user_id is None and authorization:
        user_id = (await _find_api_token(db, authorization.strip())).user_id

    if user_id is None:
        raise Fault.internal("no cookie session or auth header found").propose_response(
            Forbidden
        )

    # A trusted id without a row is unexpected. Committing a server error
    # keeps the storage error as the logged root instead of answering 404.
    with chain_user_facing_fallback(lambda: ServerError(INTERNAL_SERVER_ERROR_DETAIL)):
        with chain_internal_cause(USER_NOT_FOUND):
            return (
                await db.execute(sa.select(User).where(User.id == user_id))
            ).scalar_one()
