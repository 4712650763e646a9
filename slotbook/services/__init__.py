"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import BookingRepositoryProtocol, BookingService, DayAvailability

__all__ = ["BookingRepositoryProtocol", "BookingService", "DayAvailability"]
