"""
slotbook - bookable slots for recurring weekly services.
"""

__version__ = "0.1.0"
