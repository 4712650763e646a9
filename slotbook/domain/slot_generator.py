"""
Core business logic for generating bookable slots of a service on one day.

Slot starts sit on multiples of the service grid counted from midnight, not
from the window start. A window opening off the grid, such as an override of
07:10 on a 15 minute grid, offers its first slot at 07:15.

Pure domain logic without any external dependencies (no database, no I/O).
"""

import logging
from typing import Dict, List, Sequence

from pendulum import DateTime

from .calendar_utils import at_minutes, minutes_between
from .models import Booking, Service, Slot, Window

logger = logging.getLogger(__name__)


def first_grid_start(window: Window, grid_minutes: int) -> int:
    """Smallest multiple of ``grid_minutes`` at or after the window start."""
    return -(-window.start // grid_minutes) * grid_minutes


def generate_slots(
    day: DateTime,
    service: Service,
    windows: Sequence[Window],
    bookings: Sequence[Booking],
    now: DateTime
) -> List[Slot]:
    """
    Generate the bookable slots of ``service`` on ``day``.

    Algorithm:
    1. Walk each window on the service grid, starting at the first grid
       point inside the window
    2. Emit a candidate of the service duration while it still fits
    3. Drop candidates starting sooner than the lead time after ``now``
    4. Drop candidates overlapping an existing booking of the service
    5. Return candidates sorted by start, one per start time

    Args:
        day: Calendar day to generate slots for
        service: Service definition (duration, grid, lead time)
        windows: Effective windows of the day
        bookings: Existing bookings of the day; other services are ignored
        now: Current instant for the lead-time check

    Returns:
        List of Slot objects ordered by start time
    """
    booked = [booking for booking in bookings if booking.service_id == service.id]
    slots_by_start: Dict[int, Slot] = {}

    for window in windows:
        cursor = first_grid_start(window, service.slot_grid_minutes)

        while cursor + service.duration_minutes <= window.end:
            start_minute = cursor
            end_minute = cursor + service.duration_minutes
            cursor += service.slot_grid_minutes

            if start_minute in slots_by_start:
                continue

            slot_start = at_minutes(day, start_minute)

            if minutes_between(now, slot_start) < service.lead_time_minutes:
                continue

            if any(booking.overlaps(start_minute, end_minute) for booking in booked):
                continue

            slots_by_start[start_minute] = Slot(
                start=slot_start,
                end=at_minutes(day, end_minute)
            )

    logger.debug(
        "Generated %d slot(s) for %s on %s",
        len(slots_by_start),
        service.id,
        day.format("YYYY-MM-DD")
    )

    return [slots_by_start[start] for start in sorted(slots_by_start)]
