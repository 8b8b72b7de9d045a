"""Public image retrieval: JSON record, raw bytes, and filename redirect."""

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from api.uploads import request_origin
from errors import AppError, NotFoundError, StoreError, UnprocessableError
from images.retrieval import CACHE_CONTROL, decode_payload, get_image_record, is_servable, serialize_image
from images.upload import build_view_url
from models import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


@router.get("/image/{image_id}")
async def get_image(image_id: str, db: AsyncSession = Depends(get_db)):
    """Return an image record, payload included, as JSON."""
    record = await get_image_record(db, image_id)
    if record is None:
        raise NotFoundError("Image not found")
    if not is_servable(record):
        raise StoreError("Image data is missing or corrupted")
    return {"success": True, "imageData": serialize_image(record)}


@router.get("/view/{image_id}")
async def view_redirect(image_id: str, request: Request, db: AsyncSession = Depends(get_db)):
    """Redirect to the canonical URL that carries the stored filename."""
    try:
        record = await get_image_record(db, image_id)
    except AppError as e:
        logger.error("View redirect for %s failed: %s", image_id, e.details or e.message)
        return PlainTextResponse("Server Error", status_code=500)
    if record is None:
        return PlainTextResponse("Not Found", status_code=404)

    file_name = record.file_name or f"{image_id}.png"
    target = build_view_url(request_origin(request), image_id, file_name)
    return RedirectResponse(url=target, status_code=302)


@router.get("/view/{image_id}/{filename}")
async def view_image(image_id: str, filename: str, db: AsyncSession = Depends(get_db)):
    """Serve the decoded image bytes with long-lived cache headers.

    The filename segment is cosmetic; the stored filename is what ends up in
    Content-Disposition.
    """
    try:
        record = await get_image_record(db, image_id)
        if record is None:
            return PlainTextResponse("Not Found", status_code=404)
        data = decode_payload(record)
    except UnprocessableError:
        return PlainTextResponse("Invalid image data", status_code=422)
    except AppError as e:
        logger.error("View of %s failed: %s", image_id, e.details or e.message)
        return PlainTextResponse("Server Error", status_code=500)

    file_name = record.file_name or f"{image_id}.png"
    return Response(
        content=data,
        media_type=record.mime_type,
        headers={
            "Content-Length": str(len(data)),
            "Cache-Control": CACHE_CONTROL,
            "Content-Disposition": f'inline; filename="{quote(file_name)}"',
        },
    )
