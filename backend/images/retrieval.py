"""Fetch, serialize, decode and delete stored images."""

import base64
import binascii
import logging
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import StoreError, UnprocessableError, ValidationError, with_timeout
from images.anchor_cache import bump_dataset_version
from models import ImageRecord

logger = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000, immutable"


def to_iso(value: datetime | str | None) -> str | None:
    """Normalize a stored timestamp to an ISO-8601 string.

    Naive datetimes (SQLite drops tzinfo) are taken to be UTC.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()
    return value


def is_servable(record: ImageRecord) -> bool:
    return bool(record.base64_data) and bool(record.mime_type)


def serialize_image(record: ImageRecord, include_api_key: bool = False) -> dict:
    """JSON shape of an image record, payload included."""
    data = {
        "id": record.id,
        "fileName": record.file_name,
        "mimeType": record.mime_type,
        "base64Data": record.base64_data,
        "fileSize": record.file_size or 0,
        "fileSizeMB": record.file_size_mb or 0,
        "uploadedAt": to_iso(record.uploaded_at) or record.created_at,
        "createdAt": record.created_at,
    }
    if include_api_key:
        data["apiKey"] = record.api_key
    return data


async def get_image_record(db: AsyncSession, image_id: str) -> ImageRecord | None:
    """Load one image by id; None if it does not exist."""
    try:
        result = await with_timeout(db.execute(select(ImageRecord).where(ImageRecord.id == image_id)))
    except SQLAlchemyError as exc:
        raise StoreError("Failed to retrieve image", details=str(exc)) from exc
    return result.scalar_one_or_none()


def decode_payload(record: ImageRecord) -> bytes:
    """Decode the stored base64 payload to raw image bytes.

    Line breaks and other ASCII whitespace, as written by MIME-style encoders,
    are ignored.

    Raises:
        UnprocessableError: If the payload or MIME type is empty or the
            payload is not valid base64.
    """
    if not is_servable(record):
        raise UnprocessableError("Invalid image data")
    compact = "".join(record.base64_data.split())
    if not compact:
        raise UnprocessableError("Invalid image data")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise UnprocessableError("Invalid image data", details=str(exc)) from exc


async def delete_image(db: AsyncSession, image_id: str | None) -> None:
    """Delete an image if it exists; deleting a missing id is a no-op."""
    if not image_id:
        raise ValidationError("Image ID is required")
    try:
        result = await with_timeout(db.execute(delete(ImageRecord).where(ImageRecord.id == image_id)))
        await with_timeout(db.commit())
    except SQLAlchemyError as exc:
        await db.rollback()
        raise StoreError("Failed to delete image", details=str(exc)) from exc

    if result.rowcount:
        await bump_dataset_version()
        logger.info("Image %s deleted", image_id)
    else:
        logger.info("Delete of unknown image %s ignored", image_id)
