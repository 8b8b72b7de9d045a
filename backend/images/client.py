"""
Image Host API Client

Async HTTP client for the upload service. Images are compressed locally
before they are sent; an image that is still too large after compression is
rejected here without touching the network.

Auth: the API key travels in the JSON body, as the upload endpoint expects.
"""

import base64
import logging
from pathlib import Path
from typing import Any

import httpx
from PIL import Image

from images.compressor import CompressionConstraints, CompressionReport, compress_image

logger = logging.getLogger(__name__)

CLIENT_TIMEOUT_SECONDS = 15.0
OVERSIZE_TOLERANCE = 1.1


class ImageHostAPIError(Exception):
    """Raised when the upload service returns an error response."""

    def __init__(self, status_code: int, message: str, response_body: dict | None = None):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Image host error {status_code}: {message}")


class ImageHostTimeoutError(ImageHostAPIError):
    """Raised when the upload service does not answer within the client timeout."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(status_code=408, message=f"Request timed out after {timeout:.0f}s")


class PayloadTooLargeError(Exception):
    """Raised when an image is still over budget after compression."""

    def __init__(self, size: int, limit: int):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Image is too large to upload ({size / 1_000_000:.2f} MB after compression, "
            f"limit {limit / 1_000_000:.2f} MB)"
        )


class ImageHostClient:
    """Async HTTP client for the image host REST API."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = CLIENT_TIMEOUT_SECONDS,
        constraints: CompressionConstraints | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.constraints = constraints or CompressionConstraints()

    async def _request(self, method: str, path: str, json_body: dict | None = None) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        logger.info(f"Image host request: {method} {url}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers={"Accept": "application/json"},
                    json=json_body,
                )
        except httpx.TimeoutException as e:
            logger.warning(f"Image host request timed out: {method} {url}")
            raise ImageHostTimeoutError(self.timeout) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {"raw": response.text}
            message = body.get("error") if isinstance(body, dict) else None
            raise ImageHostAPIError(
                status_code=response.status_code,
                message=message or response.text,
                response_body=body,
            )
        return response.json()

    def prepare(self, data: bytes, mime_type: str, file_name: str) -> tuple[bytes, CompressionReport]:
        """Compress and enforce the size guard.

        Raises:
            PayloadTooLargeError: Still more than 10% over budget.
        """
        payload, report = compress_image(data, mime_type, file_name, constraints=self.constraints)
        limit = int(self.constraints.max_bytes * OVERSIZE_TOLERANCE)
        if len(payload) > limit:
            raise PayloadTooLargeError(len(payload), limit)
        return payload, report

    async def upload(self, data: bytes, mime_type: str, file_name: str) -> dict[str, Any]:
        """Compress and upload an image.

        Returns:
            The service response with an extra ``compression`` entry.
        """
        payload, report = self.prepare(data, mime_type, file_name)
        result = await self._request(
            "POST",
            "/upload",
            json_body={
                "imageData": base64.b64encode(payload).decode("ascii"),
                "fileName": report.file_name,
                "mimeType": report.mime_type,
                "apiKey": self.api_key,
            },
        )
        result["compression"] = {
            "originalBytes": report.original_bytes,
            "compressedBytes": report.compressed_bytes,
            "ratio": report.ratio,
            "mimeType": report.mime_type,
            "fileName": report.file_name,
        }
        return result

    async def upload_file(self, path: str | Path) -> dict[str, Any]:
        """Upload an image file from disk, detecting its type with Pillow."""
        path = Path(path)
        data = path.read_bytes()
        if path.suffix.lower() == ".svg":
            mime_type = "image/svg+xml"
        else:
            with Image.open(path) as img:
                mime_type = Image.MIME.get(img.format or "", "application/octet-stream")
        return await self.upload(data, mime_type, path.name)

    async def get_image(self, image_id: str) -> dict[str, Any]:
        """Fetch an image record in JSON form."""
        result = await self._request("GET", f"/image/{image_id}")
        return result["imageData"]
