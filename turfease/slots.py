"""
Slot editing for turf owners.

Two editors share the same acceptance rules (``validate_slot``):

* ``WeeklyAvailability``: the recurring per-weekday configuration stored on
  the turf (``availableSlots``).
* ``SlotAllocation``: the concrete slots an owner opens for one calendar date,
  limited to the next ``ALLOCATION_WINDOW_DAYS`` days.

Nothing here is authoritative. The backend re-validates whatever is submitted.
Intervals are half-open, ``[start, end)``, in minutes since midnight.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Any

from turfease.exceptions import AllocationError, SlotRejected
from turfease.schemas import DaySchedule, TimeSlot, Turf
from turfease.settings import ALLOCATION_WINDOW_DAYS, CLOSING_TIME, OPENING_TIME

WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def to_minutes(value: str | None) -> int | None:
    """``"HH:MM"`` -> minutes since midnight, or None when unparseable."""
    try:
        hours, minutes = str(value or "").split(":")[:2]
        return int(hours) * 60 + int(minutes)
    except ValueError:
        return None


def overlaps(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    """True if ``[a_start, a_end)`` and ``[b_start, b_end)`` share any minute."""
    bounds = [to_minutes(t) for t in (a_start, a_end, b_start, b_end)]
    if any(b is None for b in bounds):
        return False
    s1, e1, s2, e2 = bounds
    return max(s1, s2) < min(e1, e2)  # type: ignore[type-var]


def weekday_key(day: date) -> str:
    return WEEKDAYS[day.weekday()]


def validate_slot(
    candidate: TimeSlot,
    existing: Iterable[TimeSlot],
    *,
    is_today: bool = False,
    now: datetime | None = None,
) -> None:
    """
    Raise ``SlotRejected`` if ``candidate`` cannot join ``existing``.

    Checked in order: both bounds present and parseable, end after start,
    inside operating hours, not already over (only when the day is today),
    not a duplicate, no overlap.
    """
    if not candidate.start_time or not candidate.end_time:
        raise SlotRejected("Please fill in all slot details")

    start = to_minutes(candidate.start_time)
    end = to_minutes(candidate.end_time)
    if start is None or end is None:
        raise SlotRejected("Times must be in HH:MM format")
    if start >= end:
        raise SlotRejected("End time must be after start time")

    opening = to_minutes(OPENING_TIME)
    closing = to_minutes(CLOSING_TIME)
    if start < opening or end > closing:  # type: ignore[operator]
        raise SlotRejected(
            f"Slots must fall within operating hours ({OPENING_TIME} - {CLOSING_TIME})"
        )

    if is_today:
        now = now or datetime.now()
        if end <= now.hour * 60 + now.minute:
            raise SlotRejected("Cannot add slots that already ended today")

    existing = list(existing)
    if any(
        s.start_time == candidate.start_time and s.end_time == candidate.end_time
        for s in existing
    ):
        raise SlotRejected("This slot is already added")
    if any(
        overlaps(s.start_time, s.end_time, candidate.start_time, candidate.end_time)
        for s in existing
    ):
        raise SlotRejected("This slot overlaps an existing one")


def bookable_slots(
    slots: Iterable[TimeSlot], day: date, now: datetime | None = None
) -> list[TimeSlot]:
    """Drop slots without bounds and, when ``day`` is today, slots that already ended."""
    now = now or datetime.now()
    is_today = day == now.date()
    now_minutes = now.hour * 60 + now.minute
    result = []
    for slot in slots:
        if not slot.start_time or not slot.end_time:
            continue
        if is_today:
            end = to_minutes(slot.end_time)
            if end is not None and end <= now_minutes:
                continue
        result.append(slot)
    return result


# ---------------------------------------------------------------------------
# Weekly availability editor
# ---------------------------------------------------------------------------


class WeeklyAvailability:
    """Per-weekday slot configuration, edited locally before the turf is saved."""

    def __init__(
        self,
        days: dict[str, DaySchedule] | None = None,
        slot_duration: int = 60,
        advance_booking_days: int = 30,
    ) -> None:
        self.days: dict[str, DaySchedule] = {day: DaySchedule() for day in WEEKDAYS}
        for day, schedule in (days or {}).items():
            self.days[self._key(day)] = schedule.model_copy(deep=True)
        self.slot_duration = slot_duration
        self.advance_booking_days = advance_booking_days

    @classmethod
    def from_turf(cls, turf: Turf) -> WeeklyAvailability:
        return cls(
            turf.available_slots,
            slot_duration=turf.slot_duration,
            advance_booking_days=turf.advance_booking_days,
        )

    @staticmethod
    def _key(day: str) -> str:
        key = day.lower()
        if key not in WEEKDAYS:
            raise SlotRejected(f"Unknown day '{day}'")
        return key

    def add_slot(self, day: str, slot: TimeSlot, now: datetime | None = None) -> TimeSlot:
        key = self._key(day)
        now = now or datetime.now()
        validate_slot(
            slot,
            self.days[key].slots,
            is_today=weekday_key(now.date()) == key,
            now=now,
        )
        self.days[key].slots.append(slot)
        return slot

    def remove_slot(self, day: str, index: int) -> TimeSlot:
        return self.days[self._key(day)].slots.pop(index)

    def set_open(self, day: str, is_open: bool) -> None:
        self.days[self._key(day)].is_open = is_open

    def has_open_slots(self) -> bool:
        """At least one open day with a slot; required before a new turf is submitted."""
        return any(d.is_open and d.slots for d in self.days.values())

    def to_payload(self) -> dict[str, Any]:
        return {
            "availableSlots": {day: s.to_api() for day, s in self.days.items()},
            "slotDuration": self.slot_duration,
            "advanceBookingDays": self.advance_booking_days,
        }


# ---------------------------------------------------------------------------
# Per-date allocation
# ---------------------------------------------------------------------------


def allocation_window(today: date | None = None) -> tuple[date, date]:
    today = today or date.today()
    return today, today + timedelta(days=ALLOCATION_WINDOW_DAYS)


def ensure_in_window(day: date, today: date | None = None) -> None:
    first, last = allocation_window(today)
    if not first <= day <= last:
        raise AllocationError("Selected date is outside the allowed allocation period")


class SlotAllocation:
    """Slots an owner opens for a single date."""

    def __init__(self, day: date, slots: Iterable[TimeSlot] = ()) -> None:
        self.date = day
        self.slots: list[TimeSlot] = [s for s in slots if s.start_time and s.end_time]

    def add_slot(self, slot: TimeSlot, now: datetime | None = None) -> TimeSlot:
        if slot.price is None:
            raise SlotRejected("Please fill in all slot details")
        now = now or datetime.now()
        validate_slot(slot, self.slots, is_today=self.date == now.date(), now=now)
        self.slots.append(slot)
        return slot

    def remove_slot(self, index: int) -> TimeSlot:
        return self.slots.pop(index)

    def validate(self, today: date | None = None) -> None:
        if not self.slots:
            raise AllocationError("Please add at least one slot")
        ensure_in_window(self.date, today)

    def to_payload(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "slots": [s.to_api() for s in self.slots],
        }
