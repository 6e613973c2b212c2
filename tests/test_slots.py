"""
Slot acceptance rules and the two owner-side slot editors.

All times are fixed through ``now=`` / ``today=`` so the tests do not depend
on the wall clock.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta

import pytest

from turfease.exceptions import AllocationError, SlotRejected
from turfease.slots import (
    SlotAllocation,
    WeeklyAvailability,
    allocation_window,
    bookable_slots,
    ensure_in_window,
    overlaps,
    to_minutes,
    validate_slot,
)

from .factories import NOW, TODAY, make_slot, make_turf


class TestToMinutes:
    def test_parses_hh_mm(self):
        assert to_minutes("08:30") == 510
        assert to_minutes("23:00") == 1380

    def test_ignores_seconds(self):
        assert to_minutes("18:15:00") == 1095

    @pytest.mark.parametrize("value", [None, "", "noon", "8"])
    def test_unparseable_is_none(self, value):
        assert to_minutes(value) is None


class TestOverlaps:
    def test_shared_minutes_overlap(self):
        assert overlaps("09:00", "10:00", "09:30", "10:30")

    def test_containment_overlaps(self):
        assert overlaps("09:00", "12:00", "10:00", "11:00")

    def test_touching_boundaries_do_not_overlap(self):
        """Intervals are half-open: 09:00-10:00 and 10:00-11:00 are adjacent."""
        assert not overlaps("09:00", "10:00", "10:00", "11:00")
        assert not overlaps("10:00", "11:00", "09:00", "10:00")

    def test_symmetric(self):
        assert overlaps("09:30", "10:30", "09:00", "10:00") == overlaps(
            "09:00", "10:00", "09:30", "10:30"
        )

    def test_bad_time_never_overlaps(self):
        assert not overlaps("xx", "10:00", "09:00", "10:00")


class TestValidateSlot:
    def test_accepts_valid_slot(self):
        validate_slot(make_slot("10:00", "11:00"), [make_slot("11:00", "12:00")])

    @pytest.mark.parametrize(
        ("start", "end", "message"),
        [
            ("", "11:00", "Please fill in all slot details"),
            ("10:00", "", "Please fill in all slot details"),
            ("ten", "11:00", "Times must be in HH:MM format"),
            ("11:00", "11:00", "End time must be after start time"),
            ("12:00", "11:00", "End time must be after start time"),
            ("07:00", "09:00", "Slots must fall within operating hours (08:00 - 23:00)"),
            ("07:30", "08:30", "Slots must fall within operating hours (08:00 - 23:00)"),
            ("22:30", "23:30", "Slots must fall within operating hours (08:00 - 23:00)"),
            ("22:00", "23:30", "Slots must fall within operating hours (08:00 - 23:00)"),
        ],
    )
    def test_rejects_malformed(self, start, end, message):
        with pytest.raises(SlotRejected, match=re.escape(message)):
            validate_slot(make_slot(start, end), [])

    def test_operating_hours_are_inclusive(self):
        validate_slot(make_slot("08:00", "09:00"), [])
        validate_slot(make_slot("22:00", "23:00"), [])

    def test_rejects_duplicate_before_overlap(self):
        existing = [make_slot("10:00", "11:00")]
        with pytest.raises(SlotRejected, match="already added"):
            validate_slot(make_slot("10:00", "11:00"), existing)

    def test_rejects_overlap(self):
        existing = [make_slot("10:00", "11:00")]
        with pytest.raises(SlotRejected, match="overlaps an existing one"):
            validate_slot(make_slot("10:30", "11:30"), existing)

    def test_ended_slot_rejected_only_for_today(self):
        now = datetime(2026, 6, 1, 12, 0)
        with pytest.raises(SlotRejected, match="already ended today"):
            validate_slot(make_slot("10:00", "12:00"), [], is_today=True, now=now)
        validate_slot(make_slot("10:00", "12:00"), [], is_today=False, now=now)

    def test_cutoff_at_current_minute(self):
        now = datetime(2026, 6, 1, 14, 0)
        with pytest.raises(SlotRejected, match="already ended today"):
            validate_slot(make_slot("13:00", "14:00"), [], is_today=True, now=now)
        validate_slot(make_slot("14:00", "15:00"), [], is_today=True, now=now)

    def test_running_slot_allowed_today(self):
        now = datetime(2026, 6, 1, 11, 30)
        validate_slot(make_slot("11:00", "12:00"), [], is_today=True, now=now)


class TestBookableSlots:
    def test_drops_ended_slots_today(self):
        slots = [make_slot("09:00", "10:00"), make_slot("10:00", "11:00"), make_slot("11:00", "12:00")]
        result = bookable_slots(slots, TODAY, now=NOW)  # 10:00
        assert [s.start_time for s in result] == ["10:00", "11:00"]

    def test_keeps_everything_on_other_days(self):
        slots = [make_slot("09:00", "10:00")]
        assert bookable_slots(slots, TODAY + timedelta(days=1), now=NOW) == slots


class TestWeeklyAvailability:
    def test_defaults(self):
        week = WeeklyAvailability()
        assert week.slot_duration == 60
        assert week.advance_booking_days == 30
        assert not week.has_open_slots()

    def test_add_slot_and_payload(self):
        week = WeeklyAvailability()
        week.add_slot("Tuesday", make_slot("18:00", "19:00"), now=NOW)
        payload = week.to_payload()
        assert payload["availableSlots"]["tuesday"] == {
            "isOpen": True,
            "slots": [{"startTime": "18:00", "endTime": "19:00", "price": 1200}],
        }
        assert payload["slotDuration"] == 60
        assert week.has_open_slots()

    def test_overlap_on_same_day_rejected(self):
        week = WeeklyAvailability()
        week.add_slot("tuesday", make_slot("18:00", "19:00"), now=NOW)
        with pytest.raises(SlotRejected):
            week.add_slot("tuesday", make_slot("18:30", "19:30"), now=NOW)
        # Other days are independent
        week.add_slot("wednesday", make_slot("18:30", "19:30"), now=NOW)

    def test_ended_check_applies_on_current_weekday(self):
        week = WeeklyAvailability()
        # NOW is Monday 10:00
        with pytest.raises(SlotRejected, match="already ended today"):
            week.add_slot("monday", make_slot("08:00", "09:00"), now=NOW)
        week.add_slot("tuesday", make_slot("08:00", "09:00"), now=NOW)

    def test_closed_day_does_not_count(self):
        week = WeeklyAvailability()
        week.add_slot("friday", make_slot("18:00", "19:00"), now=NOW)
        week.set_open("friday", False)
        assert not week.has_open_slots()

    def test_remove_slot(self):
        week = WeeklyAvailability()
        week.add_slot("friday", make_slot("18:00", "19:00"), now=NOW)
        removed = week.remove_slot("friday", 0)
        assert removed.start_time == "18:00"
        assert week.days["friday"].slots == []

    def test_unknown_day(self):
        with pytest.raises(SlotRejected, match="Unknown day"):
            WeeklyAvailability().add_slot("someday", make_slot(), now=NOW)

    def test_from_turf_copies_schedule(self):
        turf = make_turf()
        week = WeeklyAvailability.from_turf(turf)
        week.add_slot("monday", make_slot("20:00", "21:00"), now=NOW)
        assert len(week.days["monday"].slots) == 2
        assert len(turf.available_slots["monday"].slots) == 1


class TestAllocationWindow:
    def test_window_is_today_plus_five(self):
        assert allocation_window(TODAY) == (TODAY, date(2026, 6, 6))

    def test_edges_inclusive(self):
        ensure_in_window(TODAY, TODAY)
        ensure_in_window(date(2026, 6, 6), TODAY)

    @pytest.mark.parametrize("day", [date(2026, 5, 31), date(2026, 6, 7)])
    def test_outside_rejected(self, day):
        with pytest.raises(AllocationError, match="outside the allowed allocation period"):
            ensure_in_window(day, TODAY)


class TestSlotAllocation:
    def test_requires_price(self):
        allocation = SlotAllocation(TODAY)
        with pytest.raises(SlotRejected, match="Please fill in all slot details"):
            allocation.add_slot(make_slot("18:00", "19:00", price=None), now=NOW)

    def test_same_rules_as_weekly_editor(self):
        allocation = SlotAllocation(TODAY)
        allocation.add_slot(make_slot("18:00", "19:00"), now=NOW)
        with pytest.raises(SlotRejected, match="overlaps"):
            allocation.add_slot(make_slot("18:30", "19:30"), now=NOW)
        with pytest.raises(SlotRejected, match="already ended today"):
            allocation.add_slot(make_slot("08:00", "09:00"), now=NOW)

    def test_empty_allocation_invalid(self):
        with pytest.raises(AllocationError, match="at least one slot"):
            SlotAllocation(TODAY).validate(TODAY)

    def test_out_of_window_invalid(self):
        allocation = SlotAllocation(date(2026, 6, 10), [make_slot()])
        with pytest.raises(AllocationError):
            allocation.validate(TODAY)

    def test_payload(self):
        allocation = SlotAllocation(TODAY, [make_slot("18:00", "19:00", 900)])
        assert allocation.to_payload() == {
            "date": "2026-06-01",
            "slots": [{"startTime": "18:00", "endTime": "19:00", "price": 900}],
        }
