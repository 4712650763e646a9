"""
Project a chosen slot onto the same weekday of the following weeks.
"""

from typing import Callable, List, Sequence

from pendulum import DateTime

from .calendar_utils import add_days
from .models import Slot

DEFAULT_RECURRING_WEEKS = 4

RegenerateFn = Callable[[DateTime], Sequence[Slot]]


def expand_recurring(
    slot: Slot,
    weeks: int,
    regenerate: RegenerateFn
) -> List[Slot]:
    """
    Return the chosen slot plus every later week where the same clock time is free.

    Availability is regenerated for each target day, so overrides, blackouts
    and bookings of that week apply. Weeks without a matching slot are
    skipped; the result always starts with ``slot``.

    Args:
        slot: The slot chosen by the user
        weeks: Total number of weeks including the first one
        regenerate: Returns the available slots of a given day

    Returns:
        List of Slot objects, between 1 and ``weeks`` long
    """
    if weeks < 1:
        raise ValueError(f"weeks must be at least 1, got {weeks}")

    result = [slot]
    for week in range(1, weeks):
        target_day = add_days(slot.start, 7 * week).start_of("day")
        match = next(
            (candidate for candidate in regenerate(target_day) if candidate.same_clock_time(slot)),
            None
        )
        if match is not None:
            result.append(match)

    return result
