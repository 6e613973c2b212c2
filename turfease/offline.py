"""Offline bookings: entered by the owner for walk-in customers, no online payment."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any

from loguru import logger

from turfease.exceptions import AllocationError, OfflineBookingInvalid
from turfease.schemas import Booking, TimeSlot
from turfease.services.turfs import TurfService
from turfease.slots import ensure_in_window

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _name_error(name: str) -> str | None:
    if not name.strip():
        return "Name is required"
    if len(name.strip()) < 2:
        return "Name must be at least 2 characters"
    return None


def _phone_error(phone: str) -> str | None:
    if not phone.strip():
        return "Phone number is required"
    digits = re.sub(r"\D", "", phone)
    if len(digits) != 10:
        return "Phone number must be exactly 10 digits"
    if phone != digits:
        return "Phone number should contain only digits"
    return None


def _email_error(email: str) -> str | None:
    if email.strip() and not EMAIL_RE.match(email):
        return "Please enter a valid email address"
    return None


def _parse_price(price: str) -> float | None:
    try:
        value = float(price)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _price_error(price: str) -> str | None:
    if not price.strip():
        return None
    value = _parse_price(price)
    if value is None or value < 0:
        return "Price must be a positive number"
    return None


@dataclass
class OfflineBookingForm:
    name: str = ""
    phone: str = ""
    email: str = ""
    notes: str = ""
    price: str = ""  # overrides the slot price when set

    def errors(self) -> dict[str, str]:
        checks = {
            "name": _name_error(self.name),
            "phone": _phone_error(self.phone),
            "email": _email_error(self.email),
            "price": _price_error(self.price),
        }
        return {field: message for field, message in checks.items() if message}

    def validate(self) -> None:
        errors = self.errors()
        if errors:
            raise OfflineBookingInvalid(errors)

    def to_payload(self, day: date, slot: TimeSlot) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "date": day.isoformat(),
            "startTime": slot.start_time,
            "endTime": slot.end_time,
            "customerName": self.name.strip(),
            "customerPhone": self.phone.strip(),
            "customerEmail": self.email.strip() or None,
            "notes": self.notes.strip() or None,
            "price": _parse_price(self.price) if self.price.strip() else None,
        }
        return {k: v for k, v in payload.items() if v is not None}


class OfflineBookingService:
    def __init__(self, turfs: TurfService) -> None:
        self.turfs = turfs

    async def add(
        self,
        turf_id: str,
        day: date,
        slot: TimeSlot | None,
        form: OfflineBookingForm,
        today: date | None = None,
    ) -> Booking:
        form.validate()
        if slot is None:
            raise AllocationError("Select an allocated slot")
        ensure_in_window(day, today)
        booking = await self.turfs.book_slot(turf_id, form.to_payload(day, slot))
        logger.info(
            "Offline booking added: turf_id={} date={} slot={}", turf_id, day, slot.label
        )
        return booking
