from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from turfease.schemas import Booking, PaymentStatus, Turf
from turfease.slots import to_minutes

ALL = "all"


def _slot_end(booking: Booking) -> datetime | None:
    if booking.booking_date is None or not booking.end_time:
        return None
    end = to_minutes(booking.end_time)
    if end is None:
        return None
    return datetime.combine(booking.booking_date, time.min) + timedelta(minutes=end)


def is_slot_time_ended(booking: Booking, now: datetime | None = None) -> bool:
    slot_end = _slot_end(booking)
    if slot_end is None:
        return False
    return (now or datetime.now()) >= slot_end


def can_rate_booking(booking: Booking | None, now: datetime | None = None) -> bool:
    """Rating opens once the slot is over, whatever the status, and only once."""
    if booking is None:
        return False
    has_turf = isinstance(booking.turf_id, Turf) and bool(booking.turf_id.id)
    return has_turf and not booking.reviews and is_slot_time_ended(booking, now)


@dataclass(frozen=True)
class TimeRemaining:
    hours: int
    minutes: int
    total_minutes: int

    @property
    def formatted(self) -> str:
        if self.hours > 0:
            return f"{self.hours}h {self.minutes}m"
        return f"{self.minutes}m"


def time_until_slot_ends(
    booking: Booking, now: datetime | None = None
) -> TimeRemaining | None:
    slot_end = _slot_end(booking)
    if slot_end is None:
        return None
    remaining = slot_end - (now or datetime.now())
    if remaining.total_seconds() <= 0:
        return None
    total = int(remaining.total_seconds() // 60)
    return TimeRemaining(hours=total // 60, minutes=total % 60, total_minutes=total)


def format_booking_time(booking: Booking) -> str:
    if not booking.start_time or not booking.end_time:
        return ""
    return f"{booking.start_time} - {booking.end_time}"


def format_booking_date(booking: Booking) -> str:
    if booking.booking_date is None:
        return ""
    return booking.booking_date.strftime("%a %b %d %Y")


def booking_method(booking: Booking) -> str:
    return booking.booking_type or booking.method or "online"


def filter_bookings(
    bookings: Iterable[Booking],
    status: str | None = ALL,
    payment: str | None = ALL,
    method: str | None = ALL,
) -> list[Booking]:
    """Owner bookings table filters. ``"all"`` or None disables a filter."""

    def _match(wanted: str | None, actual: str) -> bool:
        return wanted in (None, ALL) or actual == wanted

    return [
        b
        for b in bookings
        if _match(status, b.status)
        and _match(payment, b.payment_status or PaymentStatus.PENDING)
        and _match(method, booking_method(b))
    ]


@dataclass(frozen=True)
class OwnerStats:
    total_bookings: int
    by_status: dict[str, int]
    by_method: dict[str, int]
    revenue: float


def owner_stats(bookings: Iterable[Booking]) -> OwnerStats:
    """Dashboard totals. Revenue counts paid bookings only."""
    bookings = list(bookings)
    return OwnerStats(
        total_bookings=len(bookings),
        by_status=dict(Counter(b.status.value for b in bookings)),
        by_method=dict(Counter(booking_method(b) for b in bookings)),
        revenue=sum(
            b.total_amount or 0 for b in bookings if b.payment_status == PaymentStatus.PAID
        ),
    )
