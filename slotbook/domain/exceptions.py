"""
Domain-specific exception hierarchy for the slotbook application.
"""


class SlotbookError(Exception):
    """Base class for all application-level errors."""


class FormatError(SlotbookError, ValueError):
    """Raised when a clock time or date key string is malformed."""


class ConfigurationError(SlotbookError, ValueError):
    """Raised when service or window configuration is invalid."""


class UnknownServiceError(SlotbookError, KeyError):
    """Raised when a service id is not part of the catalog."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class SlotUnavailableError(SlotbookError):
    """Raised when a slot is no longer free at commit time."""


class BookingNotFoundError(SlotbookError):
    """Raised when removing a booking that does not exist."""


class RepositoryError(SlotbookError):
    """Raised when the booking store cannot be read or written."""
