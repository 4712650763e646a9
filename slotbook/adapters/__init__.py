"""
Adapters layer - Booking storage backends.
"""

from .json_repository import JsonBookingRepository
from .memory_repository import InMemoryBookingRepository

__all__ = ["InMemoryBookingRepository", "JsonBookingRepository"]
