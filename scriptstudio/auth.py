"""Resolve the Better Auth session behind a request.

The frontend's auth server issues sessions and stores them in the shared
database; this service only reads them. The session cookie value is
``<token>.<signature>`` (URL-encoded), where the signature is the base64
HMAC-SHA256 of the token under ``BETTER_AUTH_SECRET``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import unquote

from fastapi import Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scriptstudio.config import get_settings
from scriptstudio.database import get_session
from scriptstudio.models import AuthSession, AuthUser

logger = logging.getLogger(__name__)

SESSION_COOKIES = ("better-auth.session_token", "__Secure-better-auth.session_token")


def _sign(token: str, secret: str) -> str:
    digest = hmac.new(secret.encode(), token.encode(), hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def token_from_cookie(value: str, secret: Optional[str] = None) -> Optional[str]:
    """Extract the session token from a signed cookie value, or None if the signature is bad."""
    value = unquote(value or "")
    token, _, signature = value.partition(".")
    if not token:
        return None
    if secret:
        if not signature or not hmac.compare_digest(_sign(token, secret), signature):
            return None
    return token


def session_token_from_request(request: Request, secret: Optional[str] = None) -> Optional[str]:
    header = request.headers.get("authorization", "")
    if header.lower().startswith("bearer "):
        token = header[7:].strip()
        return token or None
    for name in SESSION_COOKIES:
        value = request.cookies.get(name)
        if value:
            return token_from_cookie(value, secret)
    return None


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


async def get_current_user(request: Request, session: AsyncSession = Depends(get_session)) -> AuthUser:
    token = session_token_from_request(request, get_settings().better_auth_secret)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    result = await session.execute(
        select(AuthUser, AuthSession.expires_at)
        .join(AuthSession, AuthSession.user_id == AuthUser.id)
        .where(AuthSession.token == token)
    )
    row = result.first()
    if row is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user, expires_at = row
    if _as_utc(expires_at) <= datetime.now(timezone.utc):
        logger.info("Expired session for user %s", user.id)
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user
