"""Tests for auth.jwt: admin session tokens, expiry, scope validation."""

from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from auth.jwt import (
    ALGORITHM,
    ADMIN_TOKEN_EXPIRE_MINUTES,
    SCOPE_ARTICLES,
    SCOPE_MODERATION,
    create_admin_token,
    decode_admin_token,
)
from config import settings
from errors import AuthError


class TestCreateAdminToken:
    def test_returns_valid_jwt(self):
        token = create_admin_token(SCOPE_MODERATION)
        payload = pyjwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
        assert payload["scope"] == SCOPE_MODERATION
        assert payload["type"] == "admin"

    def test_expiry_is_set(self):
        token = create_admin_token(SCOPE_ARTICLES)
        payload = pyjwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
        exp = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        expected = datetime.now(timezone.utc) + timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES)
        assert abs((exp - expected).total_seconds()) < 5


class TestDecodeAdminToken:
    def test_round_trip(self):
        token = create_admin_token(SCOPE_MODERATION)
        assert decode_admin_token(token, SCOPE_MODERATION)["scope"] == SCOPE_MODERATION

    def test_other_dashboard_scope_rejected(self):
        token = create_admin_token(SCOPE_ARTICLES)
        with pytest.raises(AuthError) as exc_info:
            decode_admin_token(token, SCOPE_MODERATION)
        assert exc_info.value.status_code == 401

    def test_expired_token_rejected(self):
        payload = {
            "sub": "admin",
            "scope": SCOPE_MODERATION,
            "type": "admin",
            "exp": datetime.now(timezone.utc) - timedelta(seconds=10),
        }
        token = pyjwt.encode(payload, settings.app_secret_key, algorithm=ALGORITHM)
        with pytest.raises(AuthError, match="expired"):
            decode_admin_token(token, SCOPE_MODERATION)

    def test_bad_signature_rejected(self):
        payload = {
            "sub": "admin",
            "scope": SCOPE_MODERATION,
            "type": "admin",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = pyjwt.encode(payload, "wrong-secret", algorithm=ALGORITHM)
        with pytest.raises(AuthError):
            decode_admin_token(token, SCOPE_MODERATION)

    def test_wrong_type_rejected(self):
        payload = {
            "sub": "admin",
            "scope": SCOPE_MODERATION,
            "type": "access",
            "exp": datetime.now(timezone.utc) + timedelta(hours=1),
        }
        token = pyjwt.encode(payload, settings.app_secret_key, algorithm=ALGORITHM)
        with pytest.raises(AuthError):
            decode_admin_token(token, SCOPE_MODERATION)

    def test_garbage_rejected(self):
        with pytest.raises(AuthError):
            decode_admin_token("garbage.token.value", SCOPE_MODERATION)
