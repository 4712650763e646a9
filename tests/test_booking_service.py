"""
Tests for the BookingService orchestration layer.
"""

import pendulum
import pytest

from slotbook.adapters.memory_repository import InMemoryBookingRepository
from slotbook.domain.exceptions import (
    BookingNotFoundError,
    FormatError,
    SlotUnavailableError,
    UnknownServiceError,
)
from slotbook.domain.models import Booking, Override, Service, Window
from slotbook.services.booking_service import BookingService

TZ = "Europe/Berlin"
MONDAY = pendulum.parse("2024-11-25", tz=TZ)
SATURDAY = pendulum.parse("2024-11-30", tz=TZ)


def _catalog():
    return {
        "pt_private": Service(
            id="pt_private",
            name="PT @ Private Gym",
            duration_minutes=45,
            slot_grid_minutes=15,
            lead_time_minutes=60,
            windows={day: (Window.from_clock("07:00", "13:00"),) for day in range(1, 6)},
        ),
        "pt_local": Service(
            id="pt_local",
            name="PT @ Local Gym",
            duration_minutes=45,
            slot_grid_minutes=15,
            lead_time_minutes=60,
            windows={day: (Window.from_clock("13:30", "16:30"),) for day in range(1, 5)},
        ),
    }


def _build_service(repository=None, now="2024-11-24 12:00") -> BookingService:
    return BookingService(
        catalog=_catalog(),
        repository=repository or InMemoryBookingRepository(),
        timezone=TZ,
        clock=lambda: pendulum.parse(now, tz=TZ),
    )


def test_slots_for_day_uses_default_windows():
    service = _build_service()

    slots = service.slots_for_day("pt_private", MONDAY)

    assert len(slots) == 22
    assert service.available_count("pt_private", SATURDAY) == 0
    assert service.available_count("pt_local", MONDAY) == 10  # 13:30 .. 15:45


def test_slots_for_day_reads_overrides_and_blackouts():
    repository = InMemoryBookingRepository()
    service = _build_service(repository)

    repository.set_override(Override(service_id="pt_private", weekday=1))
    assert service.slots_for_day("pt_private", MONDAY) == []

    repository.set_override(
        Override(service_id="pt_private", weekday=1, window=Window.from_clock("08:00", "09:00"))
    )
    starts = [slot.start.format("HH:mm") for slot in service.slots_for_day("pt_private", MONDAY)]
    assert starts == ["08:00", "08:15"]

    repository.add_blackout("2024-11-25")
    assert service.slots_for_day("pt_private", MONDAY) == []
    assert service.slots_for_day("pt_local", MONDAY) == []


def test_unknown_service():
    service = _build_service()

    with pytest.raises(UnknownServiceError, match="Unknown service 'boxing'"):
        service.slots_for_day("boxing", MONDAY)


def test_day_availability_splits_suggested_and_other():
    repository = InMemoryBookingRepository(
        bookings=[Booking(service_id="pt_private", date="2024-11-25", start=600, end=645)]
    )
    service = _build_service(repository)

    availability = service.day_availability("pt_private", MONDAY)

    assert availability.suggested[0].start.format("HH:mm") == "10:45"
    assert len(availability.suggested) == 4
    suggested_starts = {slot.start for slot in availability.suggested}
    assert not any(slot.start in suggested_starts for slot in availability.others)
    assert availability.slots == service.slots_for_day("pt_private", MONDAY)
    assert availability.bookings == repository.list_bookings()
    assert not availability.is_closed


def test_day_availability_without_bookings_has_no_suggestions():
    service = _build_service()

    availability = service.day_availability("pt_private", MONDAY)

    assert availability.suggested == []
    assert len(availability.others) == 22


def test_day_availability_ignores_other_service_bookings():
    repository = InMemoryBookingRepository(
        bookings=[Booking(service_id="pt_local", date="2024-11-25", start=810, end=855)]
    )
    service = _build_service(repository)

    availability = service.day_availability("pt_private", MONDAY)

    assert availability.suggested == []
    assert availability.bookings == []


def test_calendar_days_monday_to_saturday():
    service = _build_service()
    wednesday = pendulum.parse("2024-11-27 15:00", tz=TZ)

    days = service.calendar_days(start=wednesday, weeks=4)

    assert len(days) == 24
    assert days[0] == pendulum.parse("2024-11-25 00:00", tz=TZ)
    assert days[-1].format("YYYY-MM-DD") == "2024-12-21"
    assert all(day.isoweekday() != 7 for day in days)


def test_calendar_days_defaults_to_current_week():
    service = _build_service(now="2024-11-28 10:00")

    days = service.calendar_days(weeks=1, days_per_week=7)

    assert [day.format("YYYY-MM-DD") for day in days][0] == "2024-11-25"
    assert len(days) == 7


def test_calendar_overview_counts():
    service = _build_service()

    overview = dict(
        (day.format("YYYY-MM-DD"), count)
        for day, count in service.calendar_overview("pt_private", start=MONDAY, weeks=1)
    )

    assert overview["2024-11-25"] == 22
    assert overview["2024-11-30"] == 0


def test_book_commits_and_rejects_taken_slot():
    repository = InMemoryBookingRepository()
    service = _build_service(repository)

    booking = service.book("pt_private", MONDAY, "09:00")

    assert booking == Booking(service_id="pt_private", date="2024-11-25", start=540, end=585)
    assert repository.list_bookings() == [booking]

    with pytest.raises(SlotUnavailableError):
        service.book("pt_private", MONDAY, "09:00")
    with pytest.raises(SlotUnavailableError):
        service.book("pt_private", MONDAY, "09:30")

    # touching the end of the first booking is fine
    service.book("pt_private", MONDAY, "09:45")
    # other services are independent
    service.book("pt_local", MONDAY, "13:30")
    assert len(repository.list_bookings()) == 3


def test_book_respects_lead_time():
    service = _build_service(now="2024-11-25 06:30")

    with pytest.raises(SlotUnavailableError):
        service.book("pt_private", MONDAY, "07:00")

    assert service.book("pt_private", MONDAY, "08:00").start == 480


def test_book_off_grid_or_outside_window():
    service = _build_service()

    with pytest.raises(SlotUnavailableError):
        service.book("pt_private", MONDAY, "09:05")
    with pytest.raises(SlotUnavailableError):
        service.book("pt_private", MONDAY, "12:30")
    with pytest.raises(FormatError):
        service.book("pt_private", MONDAY, "9 o'clock")


def test_recurring_two_phase_flow():
    """Candidates are computed without writing, then committed on confirmation."""
    repository = InMemoryBookingRepository(blackouts=["2024-12-09"])
    service = _build_service(repository)
    booking = service.book("pt_private", MONDAY, "09:00")

    candidates = service.recurring_candidates("pt_private", booking, weeks=4)

    assert [slot.date_key for slot in candidates] == ["2024-12-02", "2024-12-16"]
    assert len(repository.list_bookings()) == 1

    committed = service.book_recurring("pt_private", candidates)

    assert [b.date for b in committed] == ["2024-12-02", "2024-12-16"]
    assert all(b.start == 540 and b.end == 585 for b in committed)
    assert len(repository.list_bookings()) == 3


def test_book_recurring_skips_slots_taken_in_between():
    repository = InMemoryBookingRepository()
    service = _build_service(repository)
    booking = service.book("pt_private", MONDAY, "09:00")
    candidates = service.recurring_candidates("pt_private", booking, weeks=3)

    repository.add_booking(Booking(service_id="pt_private", date="2024-12-02", start=540, end=585))
    committed = service.book_recurring("pt_private", candidates)

    assert [b.date for b in committed] == ["2024-12-09"]


def test_cancel():
    repository = InMemoryBookingRepository()
    service = _build_service(repository)
    booking = service.book("pt_private", MONDAY, "09:00")

    service.cancel(booking)

    assert repository.list_bookings() == []
    assert service.book("pt_private", MONDAY, "09:00") == booking

    with pytest.raises(BookingNotFoundError):
        service.cancel(Booking(service_id="pt_private", date="2024-11-25", start=600, end=645))
