"""
In-memory booking repository for tests and embedding.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Tuple

from ..domain.exceptions import BookingNotFoundError, RepositoryError
from ..domain.models import Booking, Override


class InMemoryBookingRepository:
    """
    Keeps bookings, admin overrides and blackout dates in plain containers.

    Reads return copies so callers always work on a snapshot.
    """

    def __init__(
        self,
        bookings: Iterable[Booking] = (),
        overrides: Iterable[Override] = (),
        blackouts: Iterable[str] = ()
    ):
        self._bookings: List[Booking] = list(bookings)
        self._overrides: Dict[Tuple[str, int], Override] = {
            override.key: override for override in overrides
        }
        self._blackouts: Set[str] = set(blackouts)

    def list_bookings(
        self,
        service_id: Optional[str] = None,
        date: Optional[str] = None
    ) -> List[Booking]:
        return [
            booking for booking in self._bookings
            if (service_id is None or booking.service_id == service_id)
            and (date is None or booking.date == date)
        ]

    def add_booking(self, booking: Booking) -> None:
        self._bookings.append(booking)
        self._commit(undo=self._bookings.pop)

    def remove_booking(self, booking: Booking) -> None:
        try:
            index = self._bookings.index(booking)
        except ValueError:
            raise BookingNotFoundError(
                f"No booking {booking} for service '{booking.service_id}'"
            ) from None
        del self._bookings[index]
        self._commit(undo=lambda: self._bookings.insert(index, booking))

    def get_overrides(self) -> Dict[Tuple[str, int], Override]:
        return dict(self._overrides)

    def set_override(self, override: Override) -> None:
        previous = self._overrides.get(override.key)
        self._overrides[override.key] = override

        def undo() -> None:
            if previous is None:
                del self._overrides[override.key]
            else:
                self._overrides[override.key] = previous

        self._commit(undo=undo)

    def clear_override(self, service_id: str, weekday: int) -> None:
        removed = self._overrides.pop((service_id, weekday), None)
        if removed is not None:
            self._commit(undo=lambda: self._overrides.update({removed.key: removed}))

    def get_blackouts(self) -> Set[str]:
        return set(self._blackouts)

    def add_blackout(self, key: str) -> None:
        if key not in self._blackouts:
            self._blackouts.add(key)
            self._commit(undo=lambda: self._blackouts.discard(key))

    def remove_blackout(self, key: str) -> None:
        if key in self._blackouts:
            self._blackouts.discard(key)
            self._commit(undo=lambda: self._blackouts.add(key))

    def _commit(self, undo: Callable[[], Any]) -> None:
        """Run the change hook, rolling the mutation back if it fails."""
        try:
            self._changed()
        except RepositoryError:
            undo()
            raise

    def _changed(self) -> None:
        """Hook called after every mutation."""
