"""API key issuance and lookup.

Keys are ``img_`` followed by 32 characters drawn from the 62-symbol
alphanumeric alphabet. They are bearer credentials, so they come from the
``secrets`` CSPRNG. No collision check is made before insertion; the unique
index on ``api_keys.key`` is the only guard.
"""

import logging
import secrets
import string

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import NotFoundError, StoreError, with_timeout
from models import ApiKeyRecord

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "img_"
API_KEY_LENGTH = 32
API_KEY_ALPHABET = string.ascii_letters + string.digits


def generate_api_key() -> str:
    """Return a fresh random API key string."""
    return API_KEY_PREFIX + "".join(secrets.choice(API_KEY_ALPHABET) for _ in range(API_KEY_LENGTH))


def mask_key(key: str) -> str:
    """Shorten a key for log output."""
    return key[:8] + "..."


async def create_api_key(
    db: AsyncSession,
    *,
    name: str,
    email: str,
    use_case: str,
    company: str | None = None,
    website: str | None = None,
    user_agent: str | None = None,
    ip: str | None = None,
) -> ApiKeyRecord:
    """Issue a key for an applicant and persist it in one commit."""
    record = ApiKeyRecord(
        key=generate_api_key(),
        active=True,
        name=name,
        email=email,
        company=company,
        website=website,
        use_case=use_case,
        total_uploads=0,
        last_used=None,
        user_agent=user_agent,
        ip=ip,
    )
    db.add(record)
    try:
        await with_timeout(db.commit())
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError(
            "Failed to process API key application. Please try again.", details=str(exc)
        ) from exc

    logger.info("API key issued: id=%s email=%s key=%s", record.id, email, mask_key(record.key))
    return record


async def find_api_key(db: AsyncSession, key: str) -> ApiKeyRecord | None:
    """Look up a key record by exact string match."""
    try:
        result = await with_timeout(db.execute(select(ApiKeyRecord).where(ApiKeyRecord.key == key)))
    except SQLAlchemyError as exc:
        raise StoreError("Failed to validate API key", details=str(exc)) from exc
    return result.scalar_one_or_none()


def is_key_active(record: ApiKeyRecord | None) -> bool:
    """A key is usable unless it is missing or explicitly deactivated.

    A NULL ``active`` column (legacy rows) counts as active.
    """
    if record is None:
        return False
    return record.active is not False


async def set_key_active(db: AsyncSession, key_id: str, active: bool) -> ApiKeyRecord:
    """Activate or deactivate a key by record id.

    Raises:
        NotFoundError: If no record has that id.
    """
    try:
        result = await with_timeout(db.execute(select(ApiKeyRecord).where(ApiKeyRecord.id == key_id)))
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundError("API key not found")
        record.active = active
        await with_timeout(db.commit())
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError("Failed to update API key", details=str(exc)) from exc

    logger.info("API key %s %s", key_id, "activated" if active else "deactivated")
    return record
