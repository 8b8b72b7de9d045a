"""Newest-first paging over stored images.

Records are ordered by ``uploaded_at DESC, id DESC``. The id breaks timestamp
ties so every record has exactly one rank and walking pages 1..N visits each
record once.

Page 1 is a plain ``LIMIT``. For page N > 1 the last record of page N-1 is
used as an anchor and the page is fetched with a keyset condition ("strictly
after the anchor"). Finding the anchor cold costs a walk over the first
(N-1) * limit keys, so deep pages get progressively slower; the anchor cache
removes that walk for sequential browsing.
"""

import logging
import math
from dataclasses import dataclass, field

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import StoreError, ValidationError, with_timeout
from images.anchor_cache import Anchor, current_version, get_anchor, put_anchor
from models import ImageRecord

logger = logging.getLogger(__name__)

DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 500

_NEWEST_FIRST = (ImageRecord.uploaded_at.desc(), ImageRecord.id.desc())


@dataclass
class ImagePage:
    images: list[ImageRecord] = field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = DEFAULT_PAGE_LIMIT

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def validate_paging(page: int, limit: int) -> None:
    if page < 1:
        raise ValidationError("page must be a positive integer")
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")


async def count_images(db: AsyncSession) -> int:
    result = await with_timeout(db.execute(select(func.count()).select_from(ImageRecord)))
    return result.scalar() or 0


def _after(anchor: Anchor):
    """Rows that sort strictly after ``anchor`` in newest-first order."""
    return or_(
        ImageRecord.uploaded_at < anchor.uploaded_at,
        and_(ImageRecord.uploaded_at == anchor.uploaded_at, ImageRecord.id < anchor.image_id),
    )


async def _walk_to_anchor(db: AsyncSession, skip: int) -> Anchor | None:
    """Find the record at rank ``skip`` (1-based); None if fewer records exist."""
    result = await with_timeout(
        db.execute(
            select(ImageRecord.uploaded_at, ImageRecord.id).order_by(*_NEWEST_FIRST).limit(skip)
        )
    )
    rows = result.all()
    if len(rows) < skip:
        return None
    last = rows[-1]
    return Anchor(uploaded_at=last.uploaded_at, image_id=last.id)


async def list_images_page(
    db: AsyncSession,
    page: int = 1,
    limit: int = DEFAULT_PAGE_LIMIT,
) -> ImagePage:
    """Return one page of images plus the totals needed to page through them.

    Raises:
        ValidationError: ``page`` or ``limit`` out of range.
        QueryTimeoutError: A query passed its deadline.
        StoreError: Any other database failure.
    """
    validate_paging(page, limit)
    version = await current_version()

    try:
        total = await count_images(db)
        result_page = ImagePage(total=total, page=page, limit=limit)

        query = select(ImageRecord).order_by(*_NEWEST_FIRST).limit(limit)
        if page > 1:
            anchor = await get_anchor(page, limit, version) if version is not None else None
            if anchor is None:
                anchor = await _walk_to_anchor(db, (page - 1) * limit)
            if anchor is None:
                logger.info("Page %d (limit %d) is past the end of %d images", page, limit, total)
                return result_page
            query = query.where(_after(anchor))

        result = await with_timeout(db.execute(query))
        result_page.images = list(result.scalars().all())
    except SQLAlchemyError as exc:
        raise StoreError("Failed to fetch images", details=str(exc)) from exc

    if version is not None and len(result_page.images) == limit:
        last = result_page.images[-1]
        await put_anchor(page + 1, limit, Anchor(uploaded_at=last.uploaded_at, image_id=last.id), version)

    logger.info(
        "Listed page %d/%d (%d images, limit %d)",
        page, result_page.total_pages, len(result_page.images), limit,
    )
    return result_page
