from __future__ import annotations

import httpx

from turfease.checkin import CheckInService
from turfease.client import ApiClient
from turfease.offline import OfflineBookingService
from turfease.retry import CHAT_RETRY, RetryPolicy
from turfease.services.admin import AdminService
from turfease.services.auth import AuthService
from turfease.services.bookings import BookingService
from turfease.services.chat import ChatService
from turfease.services.location import LocationService
from turfease.services.matches import MatchService
from turfease.services.ocr import OcrService
from turfease.services.payments import PaymentFlow, PaymentService
from turfease.services.turfs import TurfService
from turfease.services.uploads import UploadService
from turfease.session import SessionManager
from turfease.storage import KeyValueStore, MemoryStore


class TurfEase:
    """Every service wired to one ``ApiClient`` and one store."""

    def __init__(
        self,
        store: KeyValueStore | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        chat_retry: RetryPolicy = CHAT_RETRY,
    ) -> None:
        self.store = store if store is not None else MemoryStore()
        self.api = ApiClient(self.store, base_url=base_url, http_client=http_client)

        self.auth = AuthService(self.api)
        self.turfs = TurfService(self.api)
        self.bookings = BookingService(self.api)
        self.payments = PaymentService(self.api)
        self.uploads = UploadService(self.api, http_client=http_client)
        self.ocr = OcrService(self.api)
        self.chat = ChatService(self.api, retry=chat_retry)
        self.admin = AdminService(self.api)
        self.matches = MatchService(self.api)
        self.location = LocationService(http_client=http_client)

        self.checkin = CheckInService(self.bookings)
        self.offline = OfflineBookingService(self.turfs)
        self.payment_flow = PaymentFlow(self.payments, self.store)
        self.session = SessionManager(self.store)
