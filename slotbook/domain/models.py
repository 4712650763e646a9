"""
Domain models for services, availability windows, bookings and slots.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Tuple

from pendulum import DateTime

from .calendar_utils import (
    MINUTES_PER_DAY,
    clock_to_minutes,
    date_key,
    minute_of_day,
    minutes_to_clock,
    weekday,
)
from .exceptions import ConfigurationError

WEEKDAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")


@dataclass(frozen=True)
class Window:
    """
    A contiguous open interval within one day, in minutes since midnight.

    Invariant: start must be before end.
    """
    start: int
    end: int

    def __post_init__(self):
        if not 0 <= self.start < MINUTES_PER_DAY or not 0 < self.end < MINUTES_PER_DAY:
            raise ConfigurationError(
                f"Window {self.start}-{self.end} lies outside of a day"
            )
        if self.start >= self.end:
            raise ConfigurationError(
                f"Window start {minutes_to_clock(self.start)} must be before "
                f"end {minutes_to_clock(self.end)}"
            )

    @classmethod
    def from_clock(cls, start: str, end: str) -> "Window":
        """Build a window from ``HH:MM`` strings."""
        return cls(start=clock_to_minutes(start), end=clock_to_minutes(end))

    def duration_minutes(self) -> int:
        return self.end - self.start

    def to_dict(self) -> Dict[str, str]:
        return {"start": minutes_to_clock(self.start), "end": minutes_to_clock(self.end)}

    def __str__(self) -> str:
        return f"{minutes_to_clock(self.start)}-{minutes_to_clock(self.end)}"


@dataclass(frozen=True)
class Service:
    """
    A bookable recurring weekly service.

    ``windows`` maps weekday (0=Sunday..6=Saturday) to the default open
    windows of that day.
    """
    id: str
    name: str
    duration_minutes: int
    slot_grid_minutes: int
    lead_time_minutes: int = 0
    windows: Mapping[int, Tuple[Window, ...]] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise ConfigurationError("Service id must not be empty")
        if self.duration_minutes <= 0:
            raise ConfigurationError(
                f"Service '{self.id}': duration must be positive, got {self.duration_minutes}"
            )
        if self.slot_grid_minutes <= 0:
            raise ConfigurationError(
                f"Service '{self.id}': slot grid must be positive, got {self.slot_grid_minutes}"
            )
        if self.lead_time_minutes < 0:
            raise ConfigurationError(
                f"Service '{self.id}': lead time must not be negative, got {self.lead_time_minutes}"
            )

        normalized: Dict[int, Tuple[Window, ...]] = {}
        for day, day_windows in self.windows.items():
            if day not in range(7):
                raise ConfigurationError(
                    f"Service '{self.id}': weekday must be between 0 and 6, got {day}"
                )
            normalized[day] = tuple(sorted(day_windows, key=lambda w: w.start))
        # Frozen dataclass; store the normalized copy
        object.__setattr__(self, "windows", normalized)

    def windows_for_weekday(self, day: int) -> Tuple[Window, ...]:
        return self.windows.get(day, ())


@dataclass(frozen=True)
class Override:
    """
    Administrator override of one service's hours on one weekday.

    A window replaces every default window of that weekday; ``window=None``
    closes the weekday entirely.
    """
    service_id: str
    weekday: int
    window: Window | None = None

    def __post_init__(self):
        if self.weekday not in range(7):
            raise ConfigurationError(
                f"Override weekday must be between 0 and 6, got {self.weekday}"
            )

    @property
    def is_closed(self) -> bool:
        return self.window is None

    @property
    def key(self) -> Tuple[str, int]:
        return (self.service_id, self.weekday)


@dataclass(frozen=True)
class Booking:
    """
    A confirmed commitment for a service on a calendar date.

    ``date`` is the local ``YYYY-MM-DD`` key; ``start`` and ``end`` are
    minutes since midnight.
    """
    service_id: str
    date: str
    start: int
    end: int

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(
                f"Booking start {self.start} must be before end {self.end}"
            )

    def overlaps(self, start: int, end: int) -> bool:
        """Check if ``[start, end)`` intersects this booking (touching is not overlap)."""
        return start < self.end and self.start < end

    def to_dict(self) -> Dict[str, str]:
        return {
            "service_id": self.service_id,
            "date": self.date,
            "start": minutes_to_clock(self.start),
            "end": minutes_to_clock(self.end),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, str]) -> "Booking":
        return cls(
            service_id=data["service_id"],
            date=data["date"],
            start=clock_to_minutes(data["start"]),
            end=clock_to_minutes(data["end"]),
        )

    def __str__(self) -> str:
        return f"{self.date} {minutes_to_clock(self.start)}-{minutes_to_clock(self.end)}"


@dataclass(frozen=True)
class Slot:
    """
    A candidate bookable interval. Computed per query, never persisted.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    @property
    def start_minute(self) -> int:
        return minute_of_day(self.start)

    @property
    def end_minute(self) -> int:
        return minute_of_day(self.end)

    @property
    def date_key(self) -> str:
        return date_key(self.start)

    def same_clock_time(self, other: "Slot") -> bool:
        return self.start_minute == other.start_minute

    def to_booking(self, service_id: str) -> Booking:
        return Booking(
            service_id=service_id,
            date=self.date_key,
            start=self.start_minute,
            end=self.end_minute,
        )

    def format_display(self) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM - HH:MM
        """
        day_name = WEEKDAY_NAMES[weekday(self.start)]
        return (
            f"{day_name}, {self.start.format('DD.MM.YYYY')} | "
            f"{self.start.format('HH:mm')} - {self.end.format('HH:mm')}"
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"
