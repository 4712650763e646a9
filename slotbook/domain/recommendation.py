"""
Suggest slots that pack new appointments tightly against existing bookings.

Strategy: nearest booking boundary. Each slot is scored by the distance in
minutes from its start to the closest booking start or end of the same day;
lower scores come first, ties go to the earlier slot. Days without bookings
get no suggestions.
"""

from typing import List, Sequence

from .models import Booking, Slot

DEFAULT_RECOMMENDATION_LIMIT = 4


def boundary_distance(slot: Slot, boundaries: Sequence[int]) -> int:
    """Minutes between the slot start and the nearest boundary."""
    return min(abs(slot.start_minute - boundary) for boundary in boundaries)


def recommend(
    day_slots: Sequence[Slot],
    day_bookings: Sequence[Booking],
    limit: int = DEFAULT_RECOMMENDATION_LIMIT
) -> List[Slot]:
    """
    Pick up to ``limit`` slots closest to the day's booking boundaries.

    Args:
        day_slots: Available slots of one day, for one service
        day_bookings: Existing bookings of that day

    Returns:
        Subsequence of ``day_slots`` ordered by closeness, possibly empty
    """
    if not day_slots or not day_bookings or limit <= 0:
        return []

    boundaries: List[int] = []
    for booking in day_bookings:
        boundaries.append(booking.start)
        boundaries.append(booking.end)

    ranked = sorted(
        day_slots,
        key=lambda slot: (boundary_distance(slot, boundaries), slot.start)
    )

    suggestions: List[Slot] = []
    seen_starts = set()
    for slot in ranked:
        if slot.start_minute in seen_starts:
            continue
        seen_starts.add(slot.start_minute)
        suggestions.append(slot)
        if len(suggestions) >= limit:
            break

    return suggestions
