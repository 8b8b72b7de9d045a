"""Redis cache of pagination anchors.

Finding the start of page N means walking the (N-1) * limit newest records.
The last record of each page walked is cached here so the next request for the
following page can skip that walk.

Keys embed a dataset version that every upload and delete bumps, so anchors
never outlive the ordering they were computed from. Entries also expire after
ANCHOR_TTL_SECONDS.

The cache is an optimisation only: any Redis failure is logged and treated as
a miss.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime

import redis.asyncio as redis
from redis.exceptions import RedisError

from config import settings

logger = logging.getLogger(__name__)

ANCHOR_TTL_SECONDS = 300
ANCHOR_PREFIX = "image_anchor:"
VERSION_KEY = "image_dataset_version"

_redis_pool: redis.Redis | None = None


@dataclass(frozen=True)
class Anchor:
    """Sort position of the last record on a page."""

    uploaded_at: datetime
    image_id: str


def _get_redis() -> redis.Redis:
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.from_url(settings.redis_url, decode_responses=True)
    return _redis_pool


def _anchor_key(version: str, limit: int, page: int) -> str:
    return f"{ANCHOR_PREFIX}{version}:{limit}:{page}"


async def current_version() -> str | None:
    """Dataset version to read and write anchors under; None if Redis is down.

    Read it before querying the page so an anchor is never filed under a
    version bumped while the page was being read.
    """
    try:
        return await _get_redis().get(VERSION_KEY) or "0"
    except RedisError as e:
        logger.warning(f"Anchor cache version read failed: {e}")
        return None


async def get_anchor(page: int, limit: int, version: str) -> Anchor | None:
    """Return the cached anchor preceding ``page``, or None on a miss."""
    try:
        raw = await _get_redis().get(_anchor_key(version, limit, page))
    except RedisError as e:
        logger.warning(f"Anchor cache read failed: {e}")
        return None
    if not raw:
        return None
    data = json.loads(raw)
    return Anchor(uploaded_at=datetime.fromisoformat(data["uploaded_at"]), image_id=data["id"])


async def put_anchor(page: int, limit: int, anchor: Anchor, version: str) -> None:
    """Remember the anchor preceding ``page`` under the version it was computed from."""
    value = json.dumps({"uploaded_at": anchor.uploaded_at.isoformat(), "id": anchor.image_id})
    try:
        await _get_redis().setex(_anchor_key(version, limit, page), ANCHOR_TTL_SECONDS, value)
    except RedisError as e:
        logger.warning(f"Anchor cache write failed: {e}")


async def bump_dataset_version() -> None:
    """Invalidate every cached anchor after the image set changes."""
    try:
        await _get_redis().incr(VERSION_KEY)
    except RedisError as e:
        logger.warning(f"Anchor cache invalidation failed: {e}")
