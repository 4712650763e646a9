"""
Tests for the slot generator.
"""

import pendulum

from slotbook.domain.models import Booking, Service, Window
from slotbook.domain.slot_generator import first_grid_start, generate_slots

TZ = "Europe/Berlin"
MONDAY = pendulum.parse("2024-11-25", tz=TZ)
DAY_BEFORE = pendulum.parse("2024-11-24 12:00", tz=TZ)


def _service(duration: int = 45, grid: int = 15, lead: int = 60) -> Service:
    return Service(
        id="pt_private",
        name="PT @ Private Gym",
        duration_minutes=duration,
        slot_grid_minutes=grid,
        lead_time_minutes=lead,
        windows={1: (Window.from_clock("07:00", "13:00"),)}
    )


def _starts(slots):
    return [slot.start.format("HH:mm") for slot in slots]


class TestSlotGenerator:
    """Tests for generate_slots."""

    def test_full_window_no_bookings(self):
        """Every grid start whose slot fits the window is offered."""
        service = _service()

        slots = generate_slots(MONDAY, service, [Window.from_clock("07:00", "13:00")], [], DAY_BEFORE)

        # 07:00 .. 12:15 every 15 minutes
        assert len(slots) == 22
        assert _starts(slots)[0] == "07:00"
        assert _starts(slots)[-1] == "12:15"
        for slot in slots:
            assert slot.duration_minutes() == 45
            assert slot.start_minute % 15 == 0
            assert slot.date_key == "2024-11-25"

    def test_lead_time_excludes_short_notice(self):
        """With now at 06:30, 07:00 has only 30 minutes notice."""
        now = pendulum.parse("2024-11-25 06:30", tz=TZ)

        slots = generate_slots(MONDAY, _service(), [Window.from_clock("07:00", "13:00")], [], now)
        starts = _starts(slots)

        assert "07:00" not in starts
        assert "07:15" not in starts
        assert starts[0] == "07:30"
        assert "08:00" in starts

    def test_lead_time_met_exactly(self):
        now = pendulum.parse("2024-11-25 06:00", tz=TZ)

        slots = generate_slots(MONDAY, _service(), [Window.from_clock("07:00", "13:00")], [], now)

        assert _starts(slots)[0] == "07:00"

    def test_past_day_has_no_slots(self):
        now = pendulum.parse("2024-11-26 08:00", tz=TZ)

        assert generate_slots(MONDAY, _service(), [Window.from_clock("07:00", "13:00")], [], now) == []

    def test_slot_ending_on_window_end_is_included(self):
        """09:15 + 45 ends exactly at 10:00 and still fits."""
        slots = generate_slots(MONDAY, _service(), [Window.from_clock("09:00", "10:00")], [], DAY_BEFORE)

        assert _starts(slots) == ["09:00", "09:15"]

    def test_booking_overlap_and_touching_boundary(self):
        """09:45 overlaps a 10:00 booking; 10:45 only touches it."""
        booking = Booking(service_id="pt_private", date="2024-11-25", start=600, end=645)

        slots = generate_slots(
            MONDAY, _service(), [Window.from_clock("09:00", "13:00")], [booking], DAY_BEFORE
        )
        starts = _starts(slots)

        assert "09:45" not in starts
        assert "09:30" not in starts
        assert "10:00" not in starts
        assert "10:30" not in starts
        assert "09:15" in starts
        assert "10:45" in starts

    def test_no_slot_overlaps_any_booking(self):
        bookings = [
            Booking(service_id="pt_private", date="2024-11-25", start=480, end=525),
            Booking(service_id="pt_private", date="2024-11-25", start=660, end=705),
        ]

        slots = generate_slots(
            MONDAY, _service(), [Window.from_clock("07:00", "13:00")], bookings, DAY_BEFORE
        )

        assert slots
        for slot in slots:
            for booking in bookings:
                assert not (slot.start_minute < booking.end and booking.start < slot.end_minute)

    def test_bookings_of_other_services_are_ignored(self):
        booking = Booking(service_id="pt_local", date="2024-11-25", start=540, end=585)

        slots = generate_slots(
            MONDAY, _service(), [Window.from_clock("09:00", "10:00")], [booking], DAY_BEFORE
        )

        assert _starts(slots) == ["09:00", "09:15"]

    def test_first_start_aligned_to_grid(self):
        """A window opening off-grid starts at the next grid point."""
        window = Window.from_clock("07:10", "09:00")

        slots = generate_slots(MONDAY, _service(), [window], [], DAY_BEFORE)

        assert first_grid_start(window, 15) == 435
        assert _starts(slots)[0] == "07:15"

    def test_duration_longer_than_window(self):
        slots = generate_slots(
            MONDAY, _service(duration=90), [Window.from_clock("09:00", "10:00")], [], DAY_BEFORE
        )

        assert slots == []

    def test_no_windows(self):
        assert generate_slots(MONDAY, _service(), [], [], DAY_BEFORE) == []

    def test_overlapping_windows_are_deduplicated(self):
        windows = [Window.from_clock("09:30", "11:00"), Window.from_clock("09:00", "10:00")]

        slots = generate_slots(MONDAY, _service(duration=30), windows, [], DAY_BEFORE)

        assert _starts(slots) == ["09:00", "09:15", "09:30", "09:45", "10:00", "10:15", "10:30"]

    def test_multiple_windows_sorted(self):
        windows = [Window.from_clock("14:00", "15:00"), Window.from_clock("08:00", "09:00")]

        slots = generate_slots(MONDAY, _service(duration=60, grid=30), windows, [], DAY_BEFORE)

        assert _starts(slots) == ["08:00", "14:00"]
