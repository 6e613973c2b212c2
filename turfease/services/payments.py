"""
Razorpay payment flow.

The backend creates an order, a checkout gateway (the Razorpay widget, or
anything standing in for it) collects the payment, and the backend verifies
the returned signature. Only verification marks a booking as paid.
"""

from __future__ import annotations

from typing import Any, Protocol

from loguru import logger

from turfease import settings
from turfease.client import ApiClient, parse_data, parse_envelope, service_call
from turfease.exceptions import PaymentError
from turfease.schemas import CheckoutResult, PaymentOrder, PaymentVerification
from turfease.storage import KeyValueStore, StorageKey


class CheckoutGateway(Protocol):
    """Opens the payment widget for an order and returns what it reports."""

    async def checkout(self, key_id: str, order: PaymentOrder) -> CheckoutResult:
        """Raise ``PaymentError`` if the customer aborts or the payment fails."""
        ...


# ---------------------------------------------------------------------------
# Booking drafts: the booking being paid for, kept across the checkout redirect
# ---------------------------------------------------------------------------


async def save_booking_draft(store: KeyValueStore, draft: dict[str, Any]) -> None:
    await store.set(StorageKey.BOOKING_DRAFT, draft)


async def load_booking_draft(store: KeyValueStore) -> dict[str, Any] | None:
    return await store.get(StorageKey.BOOKING_DRAFT)


async def clear_booking_draft(store: KeyValueStore) -> None:
    await store.delete(StorageKey.BOOKING_DRAFT)


class PaymentService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    @service_call
    async def create_order(self, booking_id: str, amount: float) -> PaymentOrder:
        payload = await self.api.post(
            "/payment/create-order", json={"bookingId": booking_id, "amount": amount}
        )
        return parse_envelope(payload, PaymentOrder).data

    @service_call
    async def verify(self, booking_id: str, result: CheckoutResult) -> PaymentVerification:
        payload = await self.api.post(
            "/payment/verify", json={**result.model_dump(), "bookingId": booking_id}
        )
        return parse_data(payload, PaymentVerification)


class PaymentFlow:
    """create order -> checkout -> verify, for one booking."""

    def __init__(self, payments: PaymentService, store: KeyValueStore) -> None:
        self.payments = payments
        self.store = store

    async def pay(
        self, booking_id: str, amount: float, gateway: CheckoutGateway
    ) -> PaymentVerification:
        order = await self.payments.create_order(booking_id, amount)
        key_id = order.key_id or settings.RAZORPAY_KEY_ID
        if not key_id or not order.order_id:
            raise PaymentError("Payment configuration missing. Please retry.")
        if not order.currency:
            order.currency = "INR"

        logger.info("Opening checkout: booking_id={} order_id={}", booking_id, order.order_id)
        result = await gateway.checkout(key_id, order)

        verification = await self.payments.verify(booking_id, result)
        if not verification.success:
            raise PaymentError(verification.message or "Payment verification failed")
        await clear_booking_draft(self.store)
        logger.info("Payment verified: booking_id={}", booking_id)
        return verification
