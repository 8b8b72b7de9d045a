"""Stored image records."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Float, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base

DEFAULT_MIME_TYPE = "image/jpeg"


def new_record_id() -> str:
    return uuid.uuid4().hex


class ImageRecord(Base):
    __tablename__ = "images"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=new_record_id)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False, default=DEFAULT_MIME_TYPE)
    # The image bytes, stored base64-encoded exactly as uploaded
    base64_data: Mapped[str] = mapped_column(Text, nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    file_size_mb: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True
    )
    created_at: Mapped[str] = mapped_column(String(40), nullable=False)
    api_key: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
