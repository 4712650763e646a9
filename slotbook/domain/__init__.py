"""
Domain layer - Pure business logic without external dependencies.
"""

from .availability import effective_windows
from .models import Booking, Override, Service, Slot, Window
from .recommendation import recommend
from .recurrence import expand_recurring
from .slot_generator import generate_slots

__all__ = [
    "Booking",
    "Override",
    "Service",
    "Slot",
    "Window",
    "effective_windows",
    "expand_recurring",
    "generate_slots",
    "recommend",
]
