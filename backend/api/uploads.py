"""Image upload endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from images.upload import upload_image
from models import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["images"])


class UploadRequest(BaseModel):
    imageData: str | None = None
    fileName: str | None = None
    mimeType: str | None = None
    apiKey: str | None = None


class UploadResponse(BaseModel):
    success: bool = True
    imageId: str
    viewUrl: str
    directUrl: str
    fileSize: int
    fileSizeMB: float
    message: str = "Image uploaded successfully!"


def request_origin(request: Request) -> str:
    """Public origin for links handed back to callers."""
    return settings.public_base_url or str(request.base_url).rstrip("/")


@router.post("/upload", response_model=UploadResponse)
async def upload(
    body: UploadRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Store a base64 image for a valid API key and return its view URL."""
    result = await upload_image(
        db,
        image_data=body.imageData,
        file_name=body.fileName,
        mime_type=body.mimeType,
        api_key=body.apiKey,
        origin=request_origin(request),
    )
    return UploadResponse(
        imageId=result.image_id,
        viewUrl=result.view_url,
        directUrl=result.direct_url,
        fileSize=result.file_size,
        fileSizeMB=result.file_size_mb,
    )
