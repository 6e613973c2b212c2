"""
Addresses, coordinates and the device position.

Geocoding uses free public endpoints over plain httpx: BigDataCloud for
reverse lookups, Nominatim (OpenStreetMap) for forward lookups, and India
Post for place-name suggestions. Lookups never raise for upstream trouble;
they report ``success=False`` with a displayable ``error`` instead.

The device position comes from a ``PositionSource`` port, awaited under
``settings.GEOLOCATION_TIMEOUT_SECONDS``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol
from urllib.parse import quote

import httpx
from loguru import logger

from turfease import settings
from turfease.exceptions import LocationInvalid
from turfease.schemas import Coordinates

BIGDATACLOUD_REVERSE_URL = "https://api.bigdatacloud.net/data/reverse-geocode-client"
NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
INDIA_POST_API_BASE = "https://api.postalpincode.in"
USER_AGENT = "turfease-python"

SUGGESTION_LIMIT = 10

POPULAR_CITIES: list[dict[str, Any]] = [
    {"id": "mumbai", "name": "Mumbai", "state": "Maharashtra", "type": "metro"},
    {"id": "delhi", "name": "Delhi", "state": "Delhi", "type": "metro"},
    {"id": "bangalore", "name": "Bangalore", "state": "Karnataka", "type": "metro"},
    {"id": "hyderabad", "name": "Hyderabad", "state": "Telangana", "type": "metro"},
    {"id": "chennai", "name": "Chennai", "state": "Tamil Nadu", "type": "metro"},
    {"id": "kolkata", "name": "Kolkata", "state": "West Bengal", "type": "metro"},
    {"id": "pune", "name": "Pune", "state": "Maharashtra", "type": "city"},
    {"id": "ahmedabad", "name": "Ahmedabad", "state": "Gujarat", "type": "city"},
]


# ---------------------------------------------------------------------------
# Location payloads stored with a turf
# ---------------------------------------------------------------------------


def validate_location_data(data: dict[str, Any]) -> list[str]:
    """Return what is wrong with ``{"address", "coordinates": {"lat", "lng"}}``."""
    errors = []
    if not data.get("address"):
        errors.append("Address is required")

    coordinates = data.get("coordinates")
    if not (
        isinstance(coordinates, dict) and coordinates.get("lat") and coordinates.get("lng")
    ):
        errors.append("Valid coordinates are required")

    if isinstance(coordinates, dict):
        for axis, limit, message in (
            ("lat", 90, "Invalid latitude value"),
            ("lng", 180, "Invalid longitude value"),
        ):
            value = coordinates.get(axis)
            if value is None:
                continue
            try:
                number = float(value)
            except (TypeError, ValueError):
                errors.append(message)
                continue
            if not -limit <= number <= limit:
                errors.append(message)
    return errors


def location_payload(location: dict[str, Any] | None) -> dict[str, Any]:
    """The ``location`` object the backend stores, with blanks filled in."""
    location = location or {}
    coordinates = location.get("coordinates") or {}
    return {
        "address": location.get("address") or "",
        "coordinates": {
            "lat": coordinates.get("lat") or 0,
            "lng": coordinates.get("lng") or 0,
        },
    }


def prepare_location_for_database(data: dict[str, Any]) -> dict[str, Any]:
    errors = validate_location_data(data)
    if errors:
        raise LocationInvalid(errors)
    return location_payload(data)


def format_address(data: dict[str, Any]) -> str:
    """``locality, city, state, country`` from a BigDataCloud reply, skipping blanks."""
    parts = []
    if data.get("locality"):
        parts.append(data["locality"])
    if data.get("city") and data.get("city") != data.get("locality"):
        parts.append(data["city"])
    if data.get("principalSubdivision"):
        parts.append(data["principalSubdivision"])
    if data.get("countryName"):
        parts.append(data["countryName"])
    return ", ".join(parts)


def popular_cities() -> list[dict[str, Any]]:
    return [
        {**city, "popular": True, "display": f"{city['name']}, {city['state']}"}
        for city in POPULAR_CITIES
    ]


# ---------------------------------------------------------------------------
# Lookup results
# ---------------------------------------------------------------------------


@dataclass
class Address:
    formatted: str
    components: dict[str, Any] = field(default_factory=dict)
    source: str = ""


@dataclass
class GeocodeResult:
    success: bool = False
    coordinates: Coordinates | None = None
    address: Address | None = None
    error: str | None = None


@dataclass
class LocationResult:
    success: bool
    location: Coordinates | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Device position
# ---------------------------------------------------------------------------


class PositionErrorCode(StrEnum):
    PERMISSION_DENIED = "permission_denied"
    POSITION_UNAVAILABLE = "position_unavailable"
    TIMEOUT = "timeout"


class PositionError(Exception):
    def __init__(self, code: PositionErrorCode | None = None) -> None:
        super().__init__(code or "unknown")
        self.code = code


POSITION_ERROR_MESSAGES = {
    PositionErrorCode.PERMISSION_DENIED: "Please allow location access and try again.",
    PositionErrorCode.POSITION_UNAVAILABLE: "Location information is unavailable.",
    PositionErrorCode.TIMEOUT: "Location request timed out.",
}
GEOLOCATION_UNSUPPORTED_MESSAGE = "Geolocation is not supported on this device."


class PositionSource(Protocol):
    async def current_position(self) -> Coordinates:
        """Raise ``PositionError`` when the position cannot be read."""
        ...


def position_error_message(code: PositionErrorCode | None) -> str:
    return "Failed to get location. " + POSITION_ERROR_MESSAGES.get(code, "Please try again.")


class LocationService:
    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        position_timeout: float = settings.GEOLOCATION_TIMEOUT_SECONDS,
    ) -> None:
        # Third-party APIs are called directly, without the backend's base URL or token
        self._http_client = http_client
        self.position_timeout = position_timeout

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any | None:
        client = self._http_client or httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
        try:
            resp = await client.get(url, params=params, headers={"User-Agent": USER_AGENT})
        except httpx.TransportError:
            logger.opt(exception=True).warning("Location lookup failed: url={}", url)
            return None
        finally:
            if self._http_client is None:
                await client.aclose()
        if resp.status_code >= 400:
            logger.warning("Location lookup rejected: url={} status={}", url, resp.status_code)
            return None
        try:
            return resp.json()
        except ValueError:
            logger.warning("Location lookup returned non-JSON: url={}", url)
            return None

    async def current_location(self, source: PositionSource | None) -> LocationResult:
        if source is None:
            return LocationResult(success=False, error=GEOLOCATION_UNSUPPORTED_MESSAGE)
        try:
            async with asyncio.timeout(self.position_timeout):
                position = await source.current_position()
        except TimeoutError:
            return LocationResult(
                success=False, error=position_error_message(PositionErrorCode.TIMEOUT)
            )
        except PositionError as exc:
            logger.info("Position unavailable: code={}", exc.code)
            return LocationResult(success=False, error=position_error_message(exc.code))
        return LocationResult(success=True, location=position)

    async def reverse_geocode(self, lat: float, lng: float) -> GeocodeResult:
        result = GeocodeResult(coordinates=Coordinates(lat=lat, lng=lng))
        data = await self._get_json(
            BIGDATACLOUD_REVERSE_URL,
            params={"latitude": lat, "longitude": lng, "localityLanguage": "en"},
        )
        if not isinstance(data, dict):
            result.error = "Could not determine address from coordinates"
            return result

        result.address = Address(
            formatted=format_address(data),
            components={
                "locality": data.get("locality"),
                "city": data.get("city"),
                "state": data.get("principalSubdivision"),
                "country": data.get("countryName"),
                "pincode": data.get("postcode"),
            },
            source="bigdatacloud",
        )
        result.success = True
        return result

    async def geocode(self, address: str) -> GeocodeResult:
        result = GeocodeResult()
        data = await self._get_json(
            NOMINATIM_SEARCH_URL,
            params={"format": "json", "q": address, "countrycodes": "in", "limit": 1},
        )
        place = data[0] if isinstance(data, list) and data else None
        try:
            coordinates = Coordinates(lat=float(place["lat"]), lng=float(place["lon"]))
        except (TypeError, KeyError, ValueError):
            result.error = "Could not find coordinates for the address"
            return result

        parts = place.get("address") or {}
        result.coordinates = coordinates
        result.address = Address(
            formatted=place.get("display_name") or address,
            components={
                "locality": parts.get("suburb"),
                "city": parts.get("city") or parts.get("town"),
                "state": parts.get("state"),
                "country": parts.get("country"),
                "pincode": parts.get("postcode"),
            },
            source="nominatim",
        )
        result.success = True
        return result

    async def search_india_post(self, query: str) -> list[dict[str, Any]]:
        """Cities first, then areas, each alphabetical; at most ten."""
        if not query or len(query) < 2:
            return []
        data = await self._get_json(f"{INDIA_POST_API_BASE}/postoffice/{quote(query, safe='')}")
        if not (isinstance(data, list) and data and isinstance(data[0], dict)):
            return []
        reply = data[0]
        if reply.get("Status") != "Success" or not reply.get("PostOffice"):
            return []

        places: dict[str, dict[str, Any]] = {}
        for office in reply["PostOffice"]:
            district, state, name = office.get("District"), office.get("State"), office.get("Name")
            city_key = f"{district}-{state}"
            if district and city_key not in places:
                places[city_key] = {
                    "id": city_key,
                    "name": district,
                    "type": "city",
                    "state": state,
                    "display": f"{district}, {state}",
                    "pincode": office.get("Pincode"),
                }
            if name and name != district:
                area_key = f"{name}-{district}-{state}"
                places.setdefault(
                    area_key,
                    {
                        "id": area_key,
                        "name": name,
                        "type": "area",
                        "district": district,
                        "state": state,
                        "display": f"{name}, {district}, {state}",
                        "pincode": office.get("Pincode"),
                    },
                )

        ordered = sorted(places.values(), key=lambda p: (p["type"] != "city", p["name"]))
        return ordered[:SUGGESTION_LIMIT]

    async def search_locations(self, query: str) -> list[dict[str, Any]]:
        return [
            {**place, "source": "indiapost"} for place in await self.search_india_post(query)
        ]

    async def location_suggestions(self, query: str) -> list[dict[str, Any]]:
        places = await self.search_locations(query)
        return sorted(places, key=lambda p: p["name"])
