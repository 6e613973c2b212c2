from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import httpx
from loguru import logger

from turfease import settings
from turfease.client import ApiClient, service_call
from turfease.exceptions import ServiceError

CLOUDINARY_UPLOAD_URL = "https://api.cloudinary.com/v1_1/{cloud}/auto/upload"


@dataclass(frozen=True)
class FilePart:
    """A file to send as one multipart field."""

    name: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @classmethod
    def from_path(cls, path: str | Path, content_type: str) -> FilePart:
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes(), content_type=content_type)

    def as_httpx(self) -> tuple[str, bytes, str]:
        return (self.name, self.content, self.content_type)


class UploadService:
    def __init__(self, api: ApiClient, http_client: httpx.AsyncClient | None = None) -> None:
        self.api = api
        # Cloudinary is called directly, without the backend's base URL or token
        self._http_client = http_client

    @service_call
    async def upload_profile_image(self, image: FilePart) -> dict[str, Any]:
        return await self.api.post("/upload/profile", files={"image": image.as_httpx()})

    @service_call
    async def upload_images(self, images: list[FilePart]) -> list[str]:
        """Upload turf images through the backend; returns their hosted URLs."""
        logger.debug("Uploading {} turf images", len(images))
        files = [("images", image.as_httpx()) for image in images]
        payload = await self.api.post("/upload/images", files=files)
        if not isinstance(payload, dict) or not payload.get("success"):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise ServiceError(message or "Upload failed")
        data = payload.get("data")
        uploaded = data.get("images") if isinstance(data, dict) else None
        if not isinstance(uploaded, list):
            raise ServiceError("Upload failed")
        urls = [img.get("url") for img in uploaded if isinstance(img, dict)]
        if len(urls) != len(uploaded) or not all(urls):
            raise ServiceError("Upload failed")
        return urls

    async def upload_to_cloudinary(self, document: FilePart) -> str:
        """Unsigned direct upload; returns the ``secure_url`` of the stored file."""
        url = CLOUDINARY_UPLOAD_URL.format(cloud=settings.CLOUDINARY_CLOUD)
        logger.debug(
            "Uploading {} to Cloudinary preset={}", document.name, settings.CLOUDINARY_PRESET
        )
        client = self._http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
        try:
            resp = await client.post(
                url,
                data={"upload_preset": settings.CLOUDINARY_PRESET},
                files={"file": document.as_httpx()},
            )
        except httpx.TransportError as exc:
            raise ServiceError("Network error. Please check your connection.") from exc
        finally:
            if self._http_client is None:
                await client.aclose()
        if resp.status_code >= 400:
            logger.error("Cloudinary upload error: {}", resp.text)
            raise ServiceError("Cloudinary upload failed")
        try:
            secure_url = resp.json().get("secure_url")
        except (ValueError, AttributeError):
            secure_url = None
        if not secure_url:
            logger.error("Cloudinary reply without secure_url: {}", resp.text)
            raise ServiceError("Cloudinary upload failed")
        return secure_url
