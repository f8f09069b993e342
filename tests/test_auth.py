"""Tests for transport authentication."""

import os
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from paychat.auth import (
    FIXTURE_TRANSPORT_ID,
    get_auth_mode,
    get_transport_id,
    validate_jwt_token,
)

JWT_SECRET = "test-secret-key-for-jwt-validation"


def create_token(claims: dict, secret: str = JWT_SECRET, expired: bool = False) -> str:
    payload = {
        **claims,
        "iat": datetime.now(UTC),
        "exp": datetime.now(UTC) + timedelta(hours=-1 if expired else 1),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestAuthMode:
    def test_default_auth_mode_is_dev(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("PAYCHAT_AUTH_MODE", None)
            assert get_auth_mode() == "dev"

    def test_auth_mode_is_case_insensitive(self):
        with patch.dict(os.environ, {"PAYCHAT_AUTH_MODE": "JWT"}):
            assert get_auth_mode() == "jwt"


class TestJWTValidation:
    def test_transport_id_claim(self):
        with patch.dict(os.environ, {"JWT_SECRET_KEY": JWT_SECRET}):
            assert validate_jwt_token(create_token({"transport_id": "whatsapp-1"})) == "whatsapp-1"

    def test_sub_claim(self):
        with patch.dict(os.environ, {"JWT_SECRET_KEY": JWT_SECRET}):
            assert validate_jwt_token(create_token({"sub": "telegram-2"})) == "telegram-2"

    def test_expired_token(self):
        with patch.dict(os.environ, {"JWT_SECRET_KEY": JWT_SECRET}):
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token(create_token({"sub": "t"}, expired=True))
            assert exc_info.value.status_code == 401
            assert exc_info.value.detail == "Token expired"

    def test_wrong_secret(self):
        with patch.dict(os.environ, {"JWT_SECRET_KEY": JWT_SECRET}):
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token(create_token({"sub": "t"}, secret="other-secret"))
            assert exc_info.value.status_code == 401

    def test_missing_claim(self):
        with patch.dict(os.environ, {"JWT_SECRET_KEY": JWT_SECRET}):
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token(create_token({"scope": "messages"}))
            assert "missing transport identifier" in exc_info.value.detail

    def test_missing_secret(self):
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("JWT_SECRET_KEY", None)
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token("anything")
            assert exc_info.value.status_code == 500

    def test_unlisted_transport_rejected(self):
        env = {"JWT_SECRET_KEY": JWT_SECRET, "PAYCHAT_ALLOWED_TRANSPORTS": "whatsapp-1, telegram-2"}
        with patch.dict(os.environ, env):
            assert validate_jwt_token(create_token({"sub": "telegram-2"})) == "telegram-2"
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token(create_token({"sub": "slack-3"}))
            assert exc_info.value.detail == "Transport not allowed"

    def test_audience_checked_when_configured(self):
        env = {"JWT_SECRET_KEY": JWT_SECRET, "JWT_AUDIENCE": "paychat"}
        with patch.dict(os.environ, env):
            assert validate_jwt_token(create_token({"sub": "t", "aud": "paychat"})) == "t"
            with pytest.raises(HTTPException) as exc_info:
                validate_jwt_token(create_token({"sub": "t", "aud": "other"}))
            assert exc_info.value.status_code == 401


class TestGetTransportId:
    @pytest.mark.asyncio
    async def test_dev_mode_header(self):
        with patch.dict(os.environ, {"PAYCHAT_AUTH_MODE": "dev"}):
            assert await get_transport_id(x_transport_id="slack-7") == "slack-7"

    @pytest.mark.asyncio
    async def test_dev_mode_fixture(self):
        with patch.dict(os.environ, {"PAYCHAT_AUTH_MODE": "dev"}):
            assert await get_transport_id() == FIXTURE_TRANSPORT_ID

    @pytest.mark.asyncio
    async def test_jwt_mode_requires_token(self):
        with patch.dict(os.environ, {"PAYCHAT_AUTH_MODE": "jwt"}):
            with pytest.raises(HTTPException) as exc_info:
                await get_transport_id(x_transport_id="spoofed")
            assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_jwt_mode_with_token(self):
        env = {"PAYCHAT_AUTH_MODE": "jwt", "JWT_SECRET_KEY": JWT_SECRET}
        with patch.dict(os.environ, env):
            token = create_token({"transport_id": "whatsapp-1"})
            assert await get_transport_id(credentials=bearer(token)) == "whatsapp-1"

    @pytest.mark.asyncio
    async def test_unknown_mode(self):
        with patch.dict(os.environ, {"PAYCHAT_AUTH_MODE": "api_key"}):
            with pytest.raises(HTTPException) as exc_info:
                await get_transport_id()
            assert exc_info.value.status_code == 500
