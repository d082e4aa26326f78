"""Unit tests for bearer token authentication."""

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.core.auth import extract_bearer_token, get_current_user_id
from app.core.config import JWTSettings
from app.core.errors import AuthenticationAppError
from app.core.security import create_access_token


def _credentials(token: str, scheme: str = "Bearer") -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme=scheme, credentials=token)


class TestExtractBearerToken:
    def test_returns_token(self) -> None:
        assert extract_bearer_token(_credentials("abc.def.ghi")) == "abc.def.ghi"

    def test_missing_credentials(self) -> None:
        with pytest.raises(AuthenticationAppError) as exc_info:
            extract_bearer_token(None)

        assert exc_info.value.code == "missing_token"

    def test_wrong_scheme(self) -> None:
        with pytest.raises(AuthenticationAppError):
            extract_bearer_token(_credentials("abc", scheme="Basic"))


class TestGetCurrentUserId:
    """Test FastAPI dependency for bearer token verification."""

    @pytest.mark.asyncio
    async def test_valid_token_returns_subject(self) -> None:
        token = create_access_token("de305d54-75b4-431b-adb2-eb6b9e546099")

        user_id = await get_current_user_id(credentials=_credentials(token))

        assert user_id == "de305d54-75b4-431b-adb2-eb6b9e546099"

    @pytest.mark.asyncio
    async def test_missing_header_returns_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(credentials=None)

        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    @pytest.mark.asyncio
    async def test_garbage_token_returns_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(credentials=_credentials("not-a-jwt"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Invalid access token"

    @pytest.mark.asyncio
    async def test_token_signed_with_other_secret_returns_401(self) -> None:
        other = JWTSettings(secret_key="some-other-secret-0123456789abcdef")
        token = create_access_token("user-1", jwt_settings=other)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(credentials=_credentials(token))

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token_returns_401(self) -> None:
        issued = datetime.now(timezone.utc) - timedelta(days=2)
        token = create_access_token("user-1", now=issued)

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user_id(credentials=_credentials(token))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Access token has expired"
