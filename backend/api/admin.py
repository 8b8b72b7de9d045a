"""Moderation dashboard API: login, image listing, deletion, key activation."""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from auth.admin import check_shared_secret
from auth.api_keys import set_key_active
from auth.jwt import ADMIN_TOKEN_EXPIRE_MINUTES, SCOPE_MODERATION, create_admin_token, require_moderator
from config import settings
from images.pagination import DEFAULT_PAGE_LIMIT, list_images_page
from images.retrieval import delete_image, serialize_image
from models import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class AdminLoginRequest(BaseModel):
    adminKey: str | None = None


class SessionResponse(BaseModel):
    success: bool = True
    message: str = "Admin authenticated successfully"
    token: str
    expiresIn: int = ADMIN_TOKEN_EXPIRE_MINUTES * 60


class ImageListResponse(BaseModel):
    success: bool = True
    images: list[dict]
    totalImages: int
    totalPages: int
    currentPage: int
    hasNextPage: bool
    hasPrevPage: bool


class DeleteImageRequest(BaseModel):
    imageId: str | None = None


class KeyActiveRequest(BaseModel):
    active: bool


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/login", response_model=SessionResponse)
async def admin_login(body: AdminLoginRequest):
    """Exchange the moderation secret for a short-lived session token."""
    check_shared_secret(body.adminKey, settings.admin_key, rejection="Invalid admin key")
    logger.info("Moderation dashboard login")
    return SessionResponse(token=create_admin_token(SCOPE_MODERATION))


@router.get("/images", response_model=ImageListResponse)
async def admin_images(
    page: int = Query(1),
    limit: int = Query(DEFAULT_PAGE_LIMIT),
    _admin: dict = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Newest-first page of uploaded images with paging metadata."""
    result = await list_images_page(db, page=page, limit=limit)
    return ImageListResponse(
        images=[serialize_image(r, include_api_key=True) for r in result.images],
        totalImages=result.total,
        totalPages=result.total_pages,
        currentPage=result.page,
        hasNextPage=result.has_next,
        hasPrevPage=result.has_prev,
    )


@router.delete("/images/{image_id}")
async def admin_delete_image(
    image_id: str,
    _admin: dict = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Delete an image by id."""
    await delete_image(db, image_id)
    return {"success": True, "message": "Image deleted successfully"}


@router.delete("/images")
async def admin_delete_image_by_body(
    body: DeleteImageRequest | None = None,
    _admin: dict = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Delete an image named in the request body (``{"imageId": ...}``)."""
    await delete_image(db, body.imageId if body else None)
    return {"success": True, "message": "Image deleted successfully"}


@router.post("/api-keys/{key_id}/active")
async def admin_set_key_active(
    key_id: str,
    body: KeyActiveRequest,
    _admin: dict = Depends(require_moderator),
    db: AsyncSession = Depends(get_db),
):
    """Activate or deactivate an issued API key."""
    record = await set_key_active(db, key_id, body.active)
    return {"success": True, "id": record.id, "active": record.active}
