"""
Booking code resolution, the scan loop and the check-in service.

Camera access is replaced by in-memory ``FrameSource``/``CodeScanner`` fakes.
"""

from __future__ import annotations

import asyncio
import json
import re

import pytest

from turfease.checkin import (
    CAMERA_UNAVAILABLE_MESSAGE,
    INVALID_CODE_MESSAGE,
    INVALID_QR_MESSAGE,
    ScanLoop,
    UnsupportedScanner,
    resolve_booking_code,
)
from turfease.exceptions import CheckInError

from .conftest import error_reply
from .factories import BOOKING_CODE, BOOKING_ID, booking_dict, envelope

CHECKIN_PATH = "/api/bookings/checkin"


class FakeSource:
    def __init__(self, frames):
        self.frames = list(frames)
        self.closed = False

    async def read(self):
        return self.frames.pop(0) if self.frames else None

    async def close(self):
        self.closed = True


class FakeScanner:
    supported = True

    def __init__(self, codes_by_frame: dict):
        self.codes_by_frame = codes_by_frame

    async def detect(self, frame):
        return self.codes_by_frame.get(frame, [])


class FlakyScanner(FakeScanner):
    """Fails on the first frame, like a detector whose video is not ready yet."""

    def __init__(self, codes_by_frame: dict):
        super().__init__(codes_by_frame)
        self.failures = 0

    async def detect(self, frame):
        if self.failures == 0:
            self.failures += 1
            raise RuntimeError("frame not ready")
        return await super().detect(frame)


class TestResolveBookingCode:
    def test_json_booking_code(self):
        raw = json.dumps({"bookingCode": BOOKING_CODE, "bookingId": BOOKING_ID})
        assert resolve_booking_code(raw) == BOOKING_CODE

    def test_json_booking_id_fallback(self):
        assert resolve_booking_code(json.dumps({"bookingId": BOOKING_ID})) == BOOKING_ID

    def test_json_without_either_key(self):
        assert resolve_booking_code(json.dumps({"turf": "x"})) is None

    def test_plain_string_trimmed(self):
        assert resolve_booking_code(f"  {BOOKING_CODE}\n") == BOOKING_CODE

    def test_numeric_code(self):
        assert resolve_booking_code("123456") == "123456"

    def test_compact_json_and_bare_code_agree(self):
        assert resolve_booking_code('{"bookingCode":"1234"}') == "1234"
        assert resolve_booking_code("1234") == "1234"

    def test_blank(self):
        assert resolve_booking_code("   ") is None
        assert resolve_booking_code(None) is None


class TestScanLoop:
    async def test_returns_first_detected_code(self):
        source = FakeSource([None, "f1", "f2"])
        scanner = FakeScanner({"f2": ["CODE-A", "CODE-B"]})
        result = await ScanLoop(source, scanner, interval=0).run()
        assert result == "CODE-A"
        assert source.closed

    async def test_stop_ends_loop_and_closes_source(self):
        source = FakeSource([])
        loop = ScanLoop(source, FakeScanner({}), interval=0.01)
        task = asyncio.create_task(loop.run())
        await asyncio.sleep(0.03)
        loop.stop()
        assert await task is None
        assert source.closed

    async def test_cancel_closes_source(self):
        source = FakeSource([])
        task = asyncio.create_task(ScanLoop(source, FakeScanner({}), interval=0.01).run())
        await asyncio.sleep(0.02)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert source.closed

    async def test_detector_error_keeps_polling(self):
        source = FakeSource(["warming-up", "f1"])
        scanner = FlakyScanner({"f1": ['{"bookingCode":"1234"}']})
        result = await ScanLoop(source, scanner, interval=0).run()
        assert result == '{"bookingCode":"1234"}'
        assert scanner.failures == 1
        assert source.closed

    async def test_unsupported_scanner_ends_loop(self):
        source = FakeSource(["f1"])
        with pytest.raises(CheckInError, match="Camera not available"):
            await ScanLoop(source, UnsupportedScanner(), interval=0).run()
        assert source.closed


class TestCheckIn:
    async def test_success(self, sdk, backend):
        backend.reply("POST", CHECKIN_PATH, envelope(booking_dict(status="in_progress")))
        response = await sdk.checkin.check_in(f" {BOOKING_CODE} ")
        assert response["success"] is True
        assert backend.last.json == {"bookingCode": BOOKING_CODE}

    async def test_rejection_uses_server_message(self, sdk, backend):
        backend.reply("POST", CHECKIN_PATH, error_reply(400, "Booking already checked in"))
        with pytest.raises(CheckInError, match="Booking already checked in"):
            await sdk.checkin.check_in(BOOKING_CODE)

    async def test_failure_envelope_raises(self, sdk, backend):
        backend.reply("POST", CHECKIN_PATH, {"success": False})
        with pytest.raises(CheckInError, match=re.escape(INVALID_CODE_MESSAGE)):
            await sdk.checkin.check_in(BOOKING_CODE)

    async def test_empty_code_not_sent(self, sdk, backend):
        with pytest.raises(CheckInError):
            await sdk.checkin.check_in("  ")
        assert backend.requests == []

    async def test_scanned_json_payload(self, sdk, backend):
        backend.reply("POST", CHECKIN_PATH, envelope(booking_dict()))
        await sdk.checkin.check_in_scanned(json.dumps({"bookingId": BOOKING_ID}))
        assert backend.last.json == {"bookingCode": BOOKING_ID}

    async def test_scanned_unusable_payload(self, sdk, backend):
        with pytest.raises(CheckInError) as exc_info:
            await sdk.checkin.check_in_scanned(json.dumps({"foo": "bar"}))
        assert str(exc_info.value) == INVALID_QR_MESSAGE
        assert backend.requests == []

    async def test_unsupported_scanner_falls_back_to_manual(self, sdk):
        with pytest.raises(CheckInError) as exc_info:
            sdk.checkin.start_scanner(FakeSource([]), UnsupportedScanner())
        assert str(exc_info.value) == CAMERA_UNAVAILABLE_MESSAGE

    async def test_scan_and_check_in(self, sdk, backend):
        backend.reply("POST", CHECKIN_PATH, envelope(booking_dict()))
        raw = json.dumps({"bookingCode": BOOKING_CODE})
        loop = sdk.checkin.start_scanner(FakeSource(["f"]), FakeScanner({"f": [raw]}), interval=0)
        await sdk.checkin.scan_and_check_in(loop)
        assert backend.last.json == {"bookingCode": BOOKING_CODE}
