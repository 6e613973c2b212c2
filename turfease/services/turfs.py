from __future__ import annotations

from datetime import date
from typing import Any

from loguru import logger

from turfease.client import ApiClient, ApiEnvelope, parse_envelope, service_call
from turfease.schemas import Booking, TimeSlot, Turf
from turfease.services.location import location_payload
from turfease.slots import SlotAllocation


def validate_turf_data(data: dict[str, Any]) -> list[str]:
    """Return the problems that stop a turf from being submitted (empty = valid)."""
    errors = []
    if not (data.get("name") or "").strip():
        errors.append("Turf name is required")

    location = data.get("location") or {}
    if not location.get("address"):
        errors.append("Location address is required")
    coordinates = location.get("coordinates") or {}
    if not coordinates.get("lat") or not coordinates.get("lng"):
        errors.append("Location coordinates are required")

    try:
        price = float(data.get("pricePerHour") or 0)
    except (TypeError, ValueError):
        price = 0
    if price <= 0:
        errors.append("Valid price per hour is required")

    if not data.get("images"):
        errors.append("At least one image is required")
    return errors


def format_turf_data(data: dict[str, Any]) -> dict[str, Any]:
    try:
        price = float(data.get("pricePerHour") or 0)
    except (TypeError, ValueError):
        price = 0.0
    return {
        "name": data.get("name"),
        "location": location_payload(data.get("location")),
        "pricePerHour": price,
        "images": data.get("images") or [],
        "sport": data.get("sport") or "",
        "description": data.get("description") or "",
        "amenities": data.get("amenities") or [],
    }


class TurfService:
    """Public turf browsing plus owner turf management."""

    def __init__(self, api: ApiClient) -> None:
        self.api = api

    @service_call
    async def list_turfs(self, **params: Any) -> ApiEnvelope:
        payload = await self.api.get("/turfs", params=params)
        return parse_envelope(payload, list[Turf])

    @service_call
    async def get_turf(self, turf_id: str) -> Turf:
        payload = await self.api.get(f"/turfs/{turf_id}")
        return parse_envelope(payload, Turf).data

    @service_call
    async def nearby_turfs(
        self, lat: float, lng: float, distance: int = 10000
    ) -> list[Turf]:
        payload = await self.api.get(
            "/turfs/nearby", params={"lat": lat, "lng": lng, "distance": distance}
        )
        return parse_envelope(payload, list[Turf]).data or []

    @service_call
    async def my_turfs(self) -> list[Turf]:
        logger.debug("Fetching owner turfs")
        payload = await self.api.get("/turfs/owner/my")
        return parse_envelope(payload, list[Turf]).data or []

    @service_call
    async def create_turf(self, data: dict[str, Any]) -> Turf:
        payload = await self.api.post("/turfs", json=data)
        return parse_envelope(payload, Turf).data

    @service_call
    async def update_turf(self, turf_id: str, data: dict[str, Any]) -> Turf:
        payload = await self.api.put(f"/turfs/{turf_id}", json=data)
        return parse_envelope(payload, Turf).data

    @service_call
    async def delete_turf(self, turf_id: str) -> dict[str, Any]:
        return await self.api.delete(f"/turfs/{turf_id}")

    @service_call
    async def approve_turf(self, turf_id: str) -> Turf:
        payload = await self.api.put(f"/turfs/{turf_id}/approve")
        return parse_envelope(payload, Turf).data

    # -- slots --------------------------------------------------------------

    @service_call
    async def available_slots(self, turf_id: str, day: date) -> list[TimeSlot]:
        payload = await self.api.get(
            f"/turfs/{turf_id}/available-slots", params={"date": day.isoformat()}
        )
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"]
        if isinstance(payload, dict) and "slots" in payload:
            payload = payload["slots"]
        return parse_envelope(payload, list[TimeSlot]).data or []

    @service_call
    async def allocate_slots_for_day(
        self, turf_id: str, allocation: SlotAllocation, today: date | None = None
    ) -> dict[str, Any]:
        allocation.validate(today)
        return await self.api.post(
            f"/turfs/{turf_id}/allocate-slots", json=allocation.to_payload()
        )

    @service_call
    async def book_slot(self, turf_id: str, booking: dict[str, Any]) -> Booking:
        """Owner-entered (offline) booking for a walk-in customer."""
        payload = await self.api.post(f"/turfs/{turf_id}/book", json=booking)
        return parse_envelope(payload, Booking).data

    @service_call
    async def turf_bookings(
        self, turf_id: str, day: date, status: str | None = None
    ) -> list[Booking]:
        payload = await self.api.get(
            f"/turfs/{turf_id}/bookings",
            params={"date": day.isoformat(), "status": status},
        )
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            payload = payload["data"].get("bookings", [])
        return parse_envelope(payload, list[Booking]).data or []

    @service_call
    async def owner_customers(
        self, page: int = 1, limit: int = 20, search: str | None = None
    ) -> ApiEnvelope:
        payload = await self.api.get(
            "/turfs/owner/customers",
            params={"page": page, "limit": limit, "search": search or None},
        )
        return parse_envelope(payload, list[dict[str, Any]])
