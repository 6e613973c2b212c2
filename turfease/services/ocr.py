"""
Owner document verification through the backend's OCR endpoints.

Uploads go as multipart (``document`` field). The local helpers check a file
before it is sent and turn the backend's 0-1 verification score into a label.
"""

from __future__ import annotations

from typing import Any

from turfease.client import ApiClient, service_call
from turfease.services.uploads import FilePart

SUPPORTED_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "application/pdf",
        "image/tiff",
        "image/bmp",
    }
)


def validate_file_format(document: FilePart) -> bool:
    return document.content_type in SUPPORTED_TYPES


def validate_file_size(document: FilePart, max_size_mb: float = 10) -> bool:
    return document.size <= max_size_mb * 1024 * 1024


def format_file_size(size: int) -> str:
    if size == 0:
        return "0 Bytes"
    units = ("Bytes", "KB", "MB", "GB")
    value, i = float(size), 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {units[i]}"


def verification_status(score: float) -> str:
    if score >= 0.8:
        return "Verified"
    if score >= 0.6:
        return "Likely Valid"
    if score >= 0.4:
        return "Uncertain"
    return "Invalid"


class OcrService:
    base_path = "/ocr"

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    async def _verify(self, route: str, document: FilePart, **fields: Any) -> dict[str, Any]:
        return await self.api.post(
            f"{self.base_path}/{route}",
            files={"document": document.as_httpx()},
            data={k: str(v) for k, v in fields.items() if v is not None} or None,
        )

    @service_call
    async def extract_text(
        self,
        document: FilePart,
        language: str | None = None,
        preprocess: bool | None = None,
    ) -> dict[str, Any]:
        if preprocess is not None:
            preprocess = str(preprocess).lower()  # type: ignore[assignment]
        return await self._verify(
            "extract-text", document, language=language, preprocess=preprocess
        )

    @service_call
    async def extract_text_by_url(
        self,
        file_url: str,
        expected_name: str,
        owner_id: str,
        document_type: str = "other",
        language: str | None = None,
        preprocess: bool | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "fileUrl": file_url,
            "expectedName": expected_name,
            "ownerId": owner_id,
            "documentType": document_type,
        }
        if language:
            payload["language"] = language
        if preprocess is not None:
            payload["preprocess"] = preprocess
        return await self.api.post(f"{self.base_path}/extract-text", json=payload)

    @service_call
    async def verify_business_license(self, document: FilePart) -> dict[str, Any]:
        return await self._verify("verify-business-license", document)

    @service_call
    async def verify_pan_card(self, document: FilePart) -> dict[str, Any]:
        return await self._verify("verify-pan-card", document)

    @service_call
    async def verify_aadhaar_card(self, document: FilePart) -> dict[str, Any]:
        return await self._verify("verify-aadhaar-card", document)

    @service_call
    async def verify_gst_certificate(self, document: FilePart) -> dict[str, Any]:
        return await self._verify("verify-gst-certificate", document)

    @service_call
    async def verify_document(self, document: FilePart, document_type: str) -> dict[str, Any]:
        return await self._verify("verify-document", document, documentType=document_type)

    @service_call
    async def supported_formats(self) -> dict[str, Any]:
        return await self.api.get(f"{self.base_path}/supported-formats")

    @service_call
    async def cleanup_temp_files(self) -> dict[str, Any]:
        return await self.api.post(f"{self.base_path}/cleanup")
