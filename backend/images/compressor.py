"""Pre-upload image compression.

``compress_image`` shrinks a raster image until it fits a byte budget or the
attempt budget runs out. The codec is injected so the quality schedule can be
tested without real images; ``PillowEncoder`` is the production codec.

Schedule: scale so the longer edge is at most ``max_dimension``, encode at
``start_quality``, then while the result is over ``max_bytes`` lower the
quality by ``quality_step`` (never below ``min_quality``) and encode again, at
most ``max_attempts`` encodes in total. The smallest encode wins. If even that
is not smaller than the input, the input is returned untouched.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Protocol

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

# Vector and animated formats do not survive a single-frame raster re-encode
PASSTHROUGH_MIME_TYPES = frozenset({"image/svg+xml", "image/gif"})

_MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
    "image/png": ".png",
}


@dataclass(frozen=True)
class CompressionConstraints:
    max_bytes: int = 2_000_000
    max_dimension: int = 1200
    start_quality: float = 0.75
    min_quality: float = 0.6
    quality_step: float = 0.2
    max_attempts: int = 4


@dataclass(frozen=True)
class CompressionReport:
    original_bytes: int
    compressed_bytes: int
    mime_type: str
    file_name: str
    attempts: int
    quality: float | None
    compressed: bool

    @property
    def ratio(self) -> float:
        if not self.original_bytes:
            return 1.0
        return self.compressed_bytes / self.original_bytes


class ImageEncoder(Protocol):
    def dimensions(self, data: bytes) -> tuple[int, int]:
        """Decode ``data`` and return (width, height); ValueError if undecodable."""

    def encode(self, data: bytes, scale: float, quality: float) -> tuple[bytes, str]:
        """Re-encode ``data`` scaled by ``scale`` at ``quality`` (0..1).

        Returns:
            (encoded bytes, resulting MIME type)
        """


class PillowEncoder:
    """Raster codec backed by Pillow.

    Opaque images become JPEG; images with transparency become WebP so the
    alpha channel survives.
    """

    def _open(self, data: bytes) -> Image.Image:
        try:
            img = Image.open(io.BytesIO(data))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ValueError(f"Cannot decode image: {e}") from e
        return ImageOps.exif_transpose(img)

    def dimensions(self, data: bytes) -> tuple[int, int]:
        img = self._open(data)
        return img.width, img.height

    def encode(self, data: bytes, scale: float, quality: float) -> tuple[bytes, str]:
        img = self._open(data)
        if scale < 1:
            size = (max(1, round(img.width * scale)), max(1, round(img.height * scale)))
            img = img.resize(size, Image.Resampling.LANCZOS)

        has_alpha = img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info)
        buf = io.BytesIO()
        q = max(1, min(95, round(quality * 100)))
        if has_alpha:
            img.convert("RGBA").save(buf, format="WEBP", quality=q)
            return buf.getvalue(), "image/webp"
        img.convert("RGB").save(buf, format="JPEG", quality=q, optimize=True)
        return buf.getvalue(), "image/jpeg"


def quality_schedule(constraints: CompressionConstraints) -> list[float]:
    """Qualities tried in order, one per attempt.

    Once the floor is reached further attempts would repeat the same encode,
    so the schedule stops there.
    """
    qualities: list[float] = []
    q = constraints.start_quality
    for _ in range(constraints.max_attempts):
        current = round(max(q, constraints.min_quality), 4)
        if qualities and current == qualities[-1]:
            break
        qualities.append(current)
        q -= constraints.quality_step
    return qualities


def scale_factor(width: int, height: int, max_dimension: int) -> float:
    longest = max(width, height)
    if longest <= max_dimension:
        return 1.0
    return max_dimension / longest


def rename_for_mime(file_name: str, mime_type: str) -> str:
    """Swap the file extension to match ``mime_type``."""
    ext = _MIME_EXTENSIONS.get(mime_type)
    if ext is None:
        return file_name
    stem, _ = os.path.splitext(file_name)
    return f"{stem or 'image'}{ext}"


def compress_image(
    data: bytes,
    mime_type: str,
    file_name: str,
    constraints: CompressionConstraints | None = None,
    encoder: ImageEncoder | None = None,
) -> tuple[bytes, CompressionReport]:
    """Shrink an image toward ``constraints.max_bytes``.

    Args:
        data: Raw image file bytes.
        mime_type: MIME type of ``data``.
        file_name: Original file name.
        constraints: Budgets; defaults to ``CompressionConstraints()``.
        encoder: Codec; defaults to ``PillowEncoder()``.

    Returns:
        (bytes to upload, report). The target is not guaranteed to be met;
        callers must still check the size.

    Raises:
        ValueError: If a raster image cannot be decoded.
    """
    constraints = constraints or CompressionConstraints()
    original = len(data)

    def _unchanged(attempts: int) -> tuple[bytes, CompressionReport]:
        return data, CompressionReport(
            original_bytes=original,
            compressed_bytes=original,
            mime_type=mime_type,
            file_name=file_name,
            attempts=attempts,
            quality=None,
            compressed=False,
        )

    if mime_type.lower() in PASSTHROUGH_MIME_TYPES:
        return _unchanged(0)

    encoder = encoder or PillowEncoder()
    width, height = encoder.dimensions(data)
    scale = scale_factor(width, height, constraints.max_dimension)

    best: tuple[bytes, str, float] | None = None
    attempts = 0
    for quality in quality_schedule(constraints):
        attempts += 1
        encoded, out_mime = encoder.encode(data, scale, quality)
        logger.debug("Attempt %d at quality %.2f: %d bytes", attempts, quality, len(encoded))
        if best is None or len(encoded) < len(best[0]):
            best = (encoded, out_mime, quality)
        if len(encoded) <= constraints.max_bytes:
            break

    if best is None or len(best[0]) >= original:
        logger.info("Re-encoding '%s' did not shrink it; keeping original", file_name)
        return _unchanged(attempts)

    encoded, out_mime, quality = best
    report = CompressionReport(
        original_bytes=original,
        compressed_bytes=len(encoded),
        mime_type=out_mime,
        file_name=rename_for_mime(file_name, out_mime),
        attempts=attempts,
        quality=quality,
        compressed=True,
    )
    logger.info(
        "Compressed '%s' %d -> %d bytes (%.0f%%) in %d attempt(s)",
        file_name, original, report.compressed_bytes, report.ratio * 100, attempts,
    )
    return encoded, report
