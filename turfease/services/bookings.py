from __future__ import annotations

from datetime import datetime
from typing import Any

from turfease.booking_rules import can_rate_booking
from turfease.client import ApiClient, parse_envelope, service_call
from turfease.exceptions import ServiceError
from turfease.schemas import Booking, Review


class BookingService:
    def __init__(self, api: ApiClient) -> None:
        self.api = api

    @service_call
    async def list_bookings(self) -> list[Booking]:
        payload = await self.api.get("/bookings")
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"].get("bookings", [])
        return parse_envelope(payload, list[Booking]).data or []

    @service_call
    async def get_booking(self, booking_id: str) -> Booking:
        payload = await self.api.get(f"/bookings/{booking_id}")
        return parse_envelope(payload, Booking).data

    @service_call
    async def create_booking(self, data: dict[str, Any]) -> Booking:
        payload = await self.api.post("/bookings", json=data)
        return parse_envelope(payload, Booking).data

    @service_call
    async def update_booking(self, booking_id: str, data: dict[str, Any]) -> Booking:
        payload = await self.api.put(f"/bookings/{booking_id}", json=data)
        return parse_envelope(payload, Booking).data

    @service_call
    async def cancel_booking(self, booking_id: str) -> dict[str, Any]:
        return await self.api.delete(f"/bookings/{booking_id}")

    async def check_in(self, booking_code: str) -> Any:
        """Raw check-in call; ``checkin.CheckInService`` interprets the reply."""
        return await self.api.post(
            "/bookings/checkin", json={"bookingCode": str(booking_code or "").strip()}
        )

    @service_call
    async def submit_review(
        self,
        booking: Booking,
        rating: int,
        comment: str = "",
        now: datetime | None = None,
    ) -> Booking:
        """Attach a rating once the slot is over. The backend re-checks eligibility."""
        if not can_rate_booking(booking, now):
            raise ServiceError("This booking cannot be rated yet")
        review = Review(rating=rating, comment=comment)
        payload = await self.api.post(
            f"/bookings/{booking.id}/review",
            json={"turfId": booking.turf_ref, **review.to_api()},
        )
        return parse_envelope(payload, Booking).data
