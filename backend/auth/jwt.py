"""JWT session tokens for the two admin dashboards."""

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config import settings
from errors import AuthError

ALGORITHM = "HS256"
ADMIN_TOKEN_EXPIRE_MINUTES = 60

SCOPE_MODERATION = "moderation"
SCOPE_ARTICLES = "articles"

_bearer_scheme = HTTPBearer(auto_error=False)


def create_admin_token(scope: str) -> str:
    """Create a short-lived token granting one dashboard scope."""
    payload = {
        "sub": "admin",
        "scope": scope,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=ADMIN_TOKEN_EXPIRE_MINUTES),
        "type": "admin",
    }
    return jwt.encode(payload, settings.app_secret_key, algorithm=ALGORITHM)


def decode_admin_token(token: str, expected_scope: str) -> dict:
    """Decode and validate an admin token, returning its payload.

    Raises:
        AuthError: If the token is invalid, expired, or for another dashboard.
    """
    try:
        payload = jwt.decode(token, settings.app_secret_key, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid session token")

    if payload.get("type") != "admin" or payload.get("scope") != expected_scope:
        raise AuthError("Invalid session token")
    return payload


def require_scope(scope: str):
    """Build a FastAPI dependency that re-checks the admin token on every request."""

    async def _dependency(
        credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
    ) -> dict:
        if credentials is None:
            raise AuthError("Admin authentication required")
        return decode_admin_token(credentials.credentials, expected_scope=scope)

    return _dependency


require_moderator = require_scope(SCOPE_MODERATION)
require_article_editor = require_scope(SCOPE_ARTICLES)
