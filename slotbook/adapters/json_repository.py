"""
JSON file booking repository.

The whole store is loaded once when the repository is created and written
back after every mutation. Dates are kept as local ``YYYY-MM-DD`` keys and
times as ``HH:MM`` strings, so nothing drifts across timezones.

File layout::

    {
      "bookings": [{"service_id": "...", "date": "2025-01-06", "start": "09:00", "end": "09:45"}],
      "overrides": {"pt_private": {"1": {"start": "08:00", "end": "12:00"}, "2": null}},
      "blackouts": ["2025-01-01"]
    }

An override of ``null`` closes that weekday; a missing weekday uses the
service defaults. A section of the wrong type rejects the whole file, while
single malformed records are skipped with a warning. If a save fails, the
in-memory change is rolled back.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

from ..domain.calendar_utils import date_key, parse_date_key
from ..domain.exceptions import FormatError, RepositoryError
from ..domain.models import Booking, Override, Window
from .memory_repository import InMemoryBookingRepository

logger = logging.getLogger(__name__)


class JsonBookingRepository(InMemoryBookingRepository):
    """
    Booking repository persisted to a single JSON document.
    """

    def __init__(self, path: Path):
        """
        Load the store from ``path``.

        Args:
            path: JSON file; a missing file is an empty store

        Raises:
            RepositoryError: If the file exists but cannot be read, parsed,
                or does not have the expected layout
        """
        self.path = Path(path)
        data = self._load()
        super().__init__(
            bookings=self._parse_bookings(self._section(data, "bookings", list)),
            overrides=self._parse_overrides(self._section(data, "overrides", dict)),
            blackouts=self._parse_blackouts(self._section(data, "blackouts", list))
        )

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            logger.info("Booking store %s not found, starting empty", self.path)
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as file_handle:
                data = json.load(file_handle)
        except OSError as exc:
            raise RepositoryError(f"Could not read booking store {self.path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise RepositoryError(f"Invalid JSON in booking store {self.path}: {exc}") from exc

        if not isinstance(data, dict):
            raise RepositoryError("Booking store must contain a mapping at the root level.")

        return data

    def _section(self, data: Dict[str, Any], name: str, expected: type) -> Any:
        value = data.get(name, expected())
        if not isinstance(value, expected):
            raise RepositoryError(
                f"Invalid booking store {self.path}: '{name}' must be a {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        return value

    @staticmethod
    def _parse_bookings(records: List[Dict[str, str]]) -> List[Booking]:
        bookings: List[Booking] = []
        for record in records:
            try:
                bookings.append(Booking.from_dict(record))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping invalid booking record %r: %s", record, exc)
        return bookings

    def _parse_overrides(self, records: Dict[str, Dict[str, Any]]) -> List[Override]:
        overrides: List[Override] = []
        for service_id, weekdays in records.items():
            if not isinstance(weekdays, dict):
                raise RepositoryError(
                    f"Invalid booking store {self.path}: overrides of '{service_id}' "
                    f"must map weekdays to windows"
                )
            for day, window in weekdays.items():
                try:
                    parsed_window = (
                        Window.from_clock(window["start"], window["end"])
                        if window is not None else None
                    )
                    overrides.append(
                        Override(service_id=service_id, weekday=int(day), window=parsed_window)
                    )
                except (KeyError, TypeError, ValueError) as exc:
                    logger.warning(
                        "Skipping invalid override %s/%s: %s", service_id, day, exc
                    )
        return overrides

    @staticmethod
    def _parse_blackouts(records: List[str]) -> List[str]:
        blackouts: List[str] = []
        for record in records:
            try:
                # Only the calendar date matters, the zone is irrelevant here
                blackouts.append(date_key(parse_date_key(record, "UTC")))
            except FormatError as exc:
                logger.warning("Skipping invalid blackout %r: %s", record, exc)
        return blackouts

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the store into its JSON document."""
        overrides: Dict[str, Dict[str, Any]] = {}
        for (service_id, day), override in sorted(self._overrides.items()):
            overrides.setdefault(service_id, {})[str(day)] = (
                override.window.to_dict() if override.window is not None else None
            )

        return {
            "bookings": [booking.to_dict() for booking in self._bookings],
            "overrides": overrides,
            "blackouts": sorted(self._blackouts),
        }

    def _changed(self) -> None:
        self._save()

    def _save(self) -> None:
        # Write next to the store and swap, so a failed write keeps the old file
        temp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as file_handle:
                json.dump(self.to_dict(), file_handle, indent=2)
            temp_path.replace(self.path)
        except OSError as exc:
            raise RepositoryError(f"Could not save booking store to {self.path}: {exc}") from exc

        logger.debug("Saved booking store to %s", self.path)
