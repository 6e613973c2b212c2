"""
Booking check-in at the turf.

A booking is checked in by its code, typed by the owner or read from the QR
code on the player's ticket. QR payloads are either JSON
(``{"bookingCode": ..., "bookingId": ...}``) or the bare code.

Camera access is abstracted behind two ports: a ``FrameSource`` yields frames
and a ``CodeScanner`` finds QR values in them. Environments without a
scanner use ``UnsupportedScanner`` and fall back to manual entry.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

import httpx
from loguru import logger

from turfease.exceptions import ApiError, CheckInError
from turfease.services.bookings import BookingService

INVALID_CODE_MESSAGE = "Invalid code. Please try again."
INVALID_QR_MESSAGE = "Invalid QR code format. Please scan a valid booking QR code."
CAMERA_UNAVAILABLE_MESSAGE = "Camera not available. Enter code manually."


def resolve_booking_code(raw: str | None) -> str | None:
    if raw is None:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw.strip() or None
    if not isinstance(parsed, dict):
        # "12345" parses as a number; treat scalars as the bare code
        return raw.strip() or None
    code = parsed.get("bookingCode") or parsed.get("bookingId")
    return str(code) if code else None


class FrameSource(Protocol):
    async def read(self) -> Any | None:
        """Next frame, or None when nothing is available yet."""
        ...

    async def close(self) -> None: ...


class CodeScanner(Protocol):
    supported: bool

    async def detect(self, frame: Any) -> list[str]: ...


class UnsupportedScanner:
    supported = False

    async def detect(self, frame: Any) -> list[str]:
        raise CheckInError(CAMERA_UNAVAILABLE_MESSAGE)


class ScanLoop:
    """Polls ``source`` until ``scanner`` reports a value, or until stopped."""

    def __init__(
        self, source: FrameSource, scanner: CodeScanner, interval: float = 0.25
    ) -> None:
        self.source = source
        self.scanner = scanner
        self.interval = interval
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    async def run(self) -> str | None:
        try:
            while not self._stopped.is_set():
                frame = await self.source.read()
                if frame is not None:
                    try:
                        codes = await self.scanner.detect(frame)
                    except CheckInError:
                        raise
                    except Exception as exc:
                        logger.debug("Frame skipped: {}", exc)
                        codes = []
                    if codes:
                        return codes[0]
                await asyncio.sleep(self.interval)
            return None
        finally:
            self._stopped.set()
            await self.source.close()


class CheckInService:
    def __init__(self, bookings: BookingService) -> None:
        self.bookings = bookings

    async def check_in(self, code: str) -> dict[str, Any]:
        code = (code or "").strip()
        if not code:
            raise CheckInError(INVALID_CODE_MESSAGE)
        try:
            response = await self.bookings.check_in(code)
        except ApiError as exc:
            logger.info("Check-in rejected: code={} status={}", code, exc.status_code)
            raise CheckInError(exc.data.get("message") or INVALID_CODE_MESSAGE) from exc
        except httpx.TransportError as exc:
            raise CheckInError(INVALID_CODE_MESSAGE) from exc

        if isinstance(response, dict) and response.get("success") is False:
            raise CheckInError(response.get("message") or INVALID_CODE_MESSAGE)
        logger.info("Checked in: code={}", code)
        return response

    async def check_in_scanned(self, raw: str) -> dict[str, Any]:
        code = resolve_booking_code(raw)
        if not code:
            raise CheckInError(INVALID_QR_MESSAGE)
        return await self.check_in(code)

    def start_scanner(
        self, source: FrameSource, scanner: CodeScanner, interval: float = 0.25
    ) -> ScanLoop:
        if not scanner.supported:
            raise CheckInError(CAMERA_UNAVAILABLE_MESSAGE)
        return ScanLoop(source, scanner, interval)

    async def scan_and_check_in(self, loop: ScanLoop) -> dict[str, Any] | None:
        raw = await loop.run()
        if raw is None:
            return None
        return await self.check_in_scanned(raw)
