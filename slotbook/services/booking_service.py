"""
Application service for browsing availability and committing bookings.

The service reads a snapshot from a booking repository adapter (bookings,
admin overrides, blackout dates) and delegates the scheduling rules to the
pure domain functions. This keeps the CLI thin and allows the storage
dependency to be swapped via a simple protocol.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Set, Tuple

import pendulum
from pendulum import DateTime

from ..domain.availability import effective_windows
from ..domain.calendar_utils import (
    add_days,
    at_minutes,
    clock_to_minutes,
    date_key,
    minutes_to_clock,
    monday_of_week,
    parse_date_key,
)
from ..domain.exceptions import SlotUnavailableError, UnknownServiceError
from ..domain.models import Booking, Override, Service, Slot, Window
from ..domain.recommendation import DEFAULT_RECOMMENDATION_LIMIT, recommend
from ..domain.recurrence import DEFAULT_RECURRING_WEEKS, expand_recurring
from ..domain.slot_generator import generate_slots

logger = logging.getLogger(__name__)


class BookingRepositoryProtocol(Protocol):
    """Protocol describing the storage behaviour needed by the service."""

    def list_bookings(
        self,
        service_id: Optional[str] = None,
        date: Optional[str] = None
    ) -> List[Booking]:
        """Return bookings, optionally filtered by service and date key."""

    def add_booking(self, booking: Booking) -> None:
        """Persist a new booking."""

    def remove_booking(self, booking: Booking) -> None:
        """Remove an existing booking."""

    def get_overrides(self) -> Dict[Tuple[str, int], Override]:
        """Return admin overrides keyed by (service id, weekday)."""

    def get_blackouts(self) -> Set[str]:
        """Return blackout date keys."""


@dataclass
class DayAvailability:
    """Everything needed to present one day of one service."""
    day: DateTime
    service: Service
    windows: List[Window] = field(default_factory=list)
    bookings: List[Booking] = field(default_factory=list)
    suggested: List[Slot] = field(default_factory=list)
    others: List[Slot] = field(default_factory=list)

    @property
    def slots(self) -> List[Slot]:
        return sorted(self.suggested + self.others, key=lambda slot: slot.start)

    @property
    def is_closed(self) -> bool:
        return not self.windows


class BookingService:
    """
    Orchestrates availability lookup, recommendations and booking commits.

    There is no reservation step: a slot shown as free is re-validated
    against the latest repository snapshot when it is booked.
    """

    def __init__(
        self,
        catalog: Mapping[str, Service],
        repository: BookingRepositoryProtocol,
        timezone: str = "Europe/Berlin",
        clock: Optional[Callable[[], DateTime]] = None,
        recommendation_limit: int = DEFAULT_RECOMMENDATION_LIMIT,
    ) -> None:
        self._catalog = dict(catalog)
        self._repository = repository
        self.timezone = timezone
        self._clock = clock or (lambda: pendulum.now(timezone))
        self.recommendation_limit = recommendation_limit

    @property
    def services(self) -> List[Service]:
        return list(self._catalog.values())

    def now(self) -> DateTime:
        return self._clock()

    def get_service(self, service_id: str) -> Service:
        try:
            return self._catalog[service_id]
        except KeyError:
            known = ", ".join(sorted(self._catalog)) or "none"
            raise UnknownServiceError(
                f"Unknown service '{service_id}'. Known services: {known}"
            ) from None

    def effective_windows_for(self, service_id: str, day: DateTime) -> List[Window]:
        service = self.get_service(service_id)
        return effective_windows(
            day,
            service,
            self._repository.get_overrides(),
            self._repository.get_blackouts()
        )

    def slots_for_day(self, service_id: str, day: DateTime) -> List[Slot]:
        """Generate the free slots of a service on one day from a fresh snapshot."""
        service = self.get_service(service_id)
        day = day.start_of("day")
        return generate_slots(
            day,
            service,
            self.effective_windows_for(service_id, day),
            self._repository.list_bookings(service_id=service.id, date=date_key(day)),
            self.now()
        )

    def available_count(self, service_id: str, day: DateTime) -> int:
        return len(self.slots_for_day(service_id, day))

    def day_availability(self, service_id: str, day: DateTime) -> DayAvailability:
        """
        Split a day's free slots into suggested and other times.

        Suggestions are only made when the day already has bookings.
        """
        service = self.get_service(service_id)
        day = day.start_of("day")
        bookings = self._repository.list_bookings(service_id=service.id, date=date_key(day))
        slots = self.slots_for_day(service_id, day)
        suggested = recommend(slots, bookings, limit=self.recommendation_limit)
        suggested_starts = {slot.start_minute for slot in suggested}

        return DayAvailability(
            day=day,
            service=service,
            windows=self.effective_windows_for(service_id, day),
            bookings=sorted(bookings, key=lambda booking: booking.start),
            suggested=suggested,
            others=[slot for slot in slots if slot.start_minute not in suggested_starts],
        )

    def calendar_days(
        self,
        start: Optional[DateTime] = None,
        weeks: int = 4,
        days_per_week: int = 6
    ) -> List[DateTime]:
        """
        Days of the booking calendar: ``weeks`` weeks starting on the Monday
        of the week containing ``start`` (default: now), Monday first.
        """
        if not 1 <= days_per_week <= 7:
            raise ValueError(f"days_per_week must be between 1 and 7, got {days_per_week}")

        monday = monday_of_week(start or self.now())
        return [
            add_days(monday, week * 7 + offset)
            for week in range(weeks)
            for offset in range(days_per_week)
        ]

    def calendar_overview(
        self,
        service_id: str,
        start: Optional[DateTime] = None,
        weeks: int = 4,
        days_per_week: int = 6
    ) -> List[Tuple[DateTime, int]]:
        """Return (day, free slot count) for every calendar day."""
        return [
            (day, self.available_count(service_id, day))
            for day in self.calendar_days(start=start, weeks=weeks, days_per_week=days_per_week)
        ]

    def book(self, service_id: str, day: DateTime, start_clock: str) -> Booking:
        """
        Commit a booking for the slot starting at ``start_clock`` on ``day``.

        Raises:
            FormatError: If ``start_clock`` is not HH:MM
            SlotUnavailableError: If the slot is not free in the latest snapshot
        """
        service = self.get_service(service_id)
        start_minute = clock_to_minutes(start_clock)
        slot = next(
            (slot for slot in self.slots_for_day(service_id, day) if slot.start_minute == start_minute),
            None
        )
        if slot is None:
            raise SlotUnavailableError(
                f"{service.name} is not available on {date_key(day)} at {start_clock}"
            )

        booking = slot.to_booking(service.id)
        self._repository.add_booking(booking)
        logger.info("Booked %s for %s", booking, service.id)
        return booking

    def slot_for_booking(self, booking: Booking) -> Slot:
        day = parse_date_key(booking.date, self.timezone)
        return Slot(start=at_minutes(day, booking.start), end=at_minutes(day, booking.end))

    def recurring_candidates(
        self,
        service_id: str,
        booking: Booking,
        weeks: int = DEFAULT_RECURRING_WEEKS
    ) -> List[Slot]:
        """
        First phase of a weekly repeat: the later weeks where the booked
        clock time is still free. Nothing is written.
        """
        self.get_service(service_id)
        expanded = expand_recurring(
            self.slot_for_booking(booking),
            weeks,
            lambda day: self.slots_for_day(service_id, day)
        )
        return expanded[1:]

    def book_recurring(self, service_id: str, slots: Sequence[Slot]) -> List[Booking]:
        """
        Second phase of a weekly repeat: commit the confirmed candidates.

        Candidates taken in the meantime are skipped.
        """
        bookings: List[Booking] = []
        for slot in slots:
            try:
                bookings.append(
                    self.book(service_id, slot.start, minutes_to_clock(slot.start_minute))
                )
            except SlotUnavailableError as exc:
                logger.warning("Skipping recurring slot: %s", exc)
        return bookings

    def cancel(self, booking: Booking) -> None:
        """
        Raises:
            BookingNotFoundError: If the booking does not exist
        """
        self._repository.remove_booking(booking)
        logger.info("Cancelled %s for %s", booking, booking.service_id)
