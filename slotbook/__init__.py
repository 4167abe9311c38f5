"""
slotbook - availability slot generation for appointment booking.
"""

__version__ = "0.1.0"
