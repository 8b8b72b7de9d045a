"""Upload pipeline: validate, authorize, size, persist, link."""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.api_keys import find_api_key, is_key_active, mask_key
from errors import AuthError, StoreError, ValidationError, with_timeout
from images.anchor_cache import bump_dataset_version
from models import ImageRecord
from models.image import DEFAULT_MIME_TYPE

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


@dataclass
class UploadResult:
    image_id: str
    view_url: str
    direct_url: str
    file_size: int
    file_size_mb: float


def validate_upload(
    image_data: str | None,
    file_name: str | None,
    api_key: str | None,
) -> None:
    """Reject uploads missing any required field."""
    if not image_data or not file_name or not api_key or not api_key.strip():
        raise ValidationError("Missing required fields: imageData, fileName, or apiKey")


def estimate_size(image_data: str) -> tuple[int, float]:
    """Approximate decoded size of a base64 payload.

    Returns:
        (bytes, megabytes rounded to two decimals). Padding is not
        subtracted, so this can overshoot the true size by up to two bytes.
    """
    size = math.ceil(len(image_data) * 3 / 4)
    return size, round(size / BYTES_PER_MB, 2)


def build_view_url(origin: str, image_id: str, file_name: str | None = None) -> str:
    """Shareable URL for an image, optionally carrying its filename."""
    origin = origin.rstrip("/")
    if file_name is None:
        return f"{origin}/view/{image_id}"
    return f"{origin}/view/{quote(image_id, safe='')}/{quote(file_name, safe='')}"


def _store_suggestions(message: str) -> list[str]:
    if "permission denied" in message.lower():
        return [
            "Grant the application's database role INSERT on the images table",
            "Check DATABASE_URL points at the expected database user",
        ]
    if "does not exist" in message.lower() or "no such table" in message.lower():
        return [
            "Make sure the database has been initialised",
            "Restart the service so tables are created on startup",
        ]
    return ["Check database connectivity and configuration"]


async def upload_image(
    db: AsyncSession,
    *,
    image_data: str | None,
    file_name: str | None,
    mime_type: str | None,
    api_key: str | None,
    origin: str,
) -> UploadResult:
    """Run the full upload pipeline.

    Raises:
        ValidationError: A required field is missing.
        AuthError: The key is unknown or deactivated.
        QueryTimeoutError: The store did not answer in time.
        StoreError: The record could not be written.
    """
    validate_upload(image_data, file_name, api_key)
    api_key = api_key.strip()

    key_record = await find_api_key(db, api_key)
    if not is_key_active(key_record):
        logger.info("Upload rejected for key %s", mask_key(api_key))
        raise AuthError("Invalid or inactive API key")

    file_size, file_size_mb = estimate_size(image_data)
    logger.info("Upload '%s': %d bytes (%.2f MB)", file_name, file_size, file_size_mb)

    record = ImageRecord(
        file_name=file_name,
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        base64_data=image_data,
        file_size=file_size,
        file_size_mb=file_size_mb,
        uploaded_at=datetime.now(timezone.utc),
        created_at=datetime.now(timezone.utc).isoformat(),
        api_key=api_key,
    )
    db.add(record)
    try:
        await with_timeout(db.commit())
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError(
            "Failed to save image",
            suggestions=_store_suggestions(str(exc)),
            details=str(exc),
        ) from exc

    await bump_dataset_version()
    logger.info("Image %s stored", record.id)

    return UploadResult(
        image_id=record.id,
        view_url=build_view_url(origin, record.id),
        direct_url=build_view_url(origin, record.id, file_name),
        file_size=file_size,
        file_size_mb=file_size_mb,
    )
