"""Tests for auth.py: Better Auth cookie parsing and session lookup."""

from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from scriptstudio.auth import _sign, get_current_user, session_token_from_request, token_from_cookie
from scriptstudio.models import AuthSession

SECRET = "test-secret"


def make_request(headers):
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestTokenFromCookie:
    def test_valid_signature(self):
        value = quote(f"tok123.{_sign('tok123', SECRET)}")
        assert token_from_cookie(value, SECRET) == "tok123"

    def test_bad_signature(self):
        assert token_from_cookie("tok123.forged", SECRET) is None
        assert token_from_cookie("tok123", SECRET) is None

    def test_unsigned_accepted_without_secret(self):
        assert token_from_cookie("tok123.whatever") == "tok123"

    def test_empty(self):
        assert token_from_cookie("") is None


class TestSessionTokenFromRequest:
    def test_bearer_header(self):
        assert session_token_from_request(make_request({"Authorization": "Bearer abc"})) == "abc"

    def test_cookie(self):
        request = make_request({"Cookie": "better-auth.session_token=abc.sig"})
        assert session_token_from_request(request) == "abc"

    def test_secure_cookie(self):
        request = make_request({"Cookie": "__Secure-better-auth.session_token=abc.sig"})
        assert session_token_from_request(request) == "abc"

    def test_nothing(self):
        assert session_token_from_request(make_request({})) is None


class TestGetCurrentUser:
    @pytest.mark.asyncio
    async def test_valid_session(self, session_factory):
        async with session_factory() as session:
            session.add(AuthSession(
                id="s1", token="live", user_id="alice",
                expires_at=datetime.now(timezone.utc) + timedelta(days=1),
            ))
            await session.commit()

            user = await get_current_user(make_request({"Authorization": "Bearer live"}), session)
            assert user.id == "alice"

    @pytest.mark.asyncio
    async def test_expired_session(self, session_factory):
        async with session_factory() as session:
            session.add(AuthSession(
                id="s2", token="stale", user_id="bob",
                expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
            ))
            await session.commit()

            with pytest.raises(HTTPException) as exc:
                await get_current_user(make_request({"Authorization": "Bearer stale"}), session)
            assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_or_missing_token(self, session_factory):
        async with session_factory() as session:
            for headers in ({"Authorization": "Bearer nope"}, {}):
                with pytest.raises(HTTPException) as exc:
                    await get_current_user(make_request(headers), session)
                assert exc.value.status_code == 401
