"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    ConfigurationError,
    InternalError,
    NotFoundError,
    SlotbookError,
    SlotUnavailableError,
    ValidationError,
)
from .models import (
    Booking,
    BookingStatus,
    BreakInterval,
    CandidateSlot,
    DaySchedule,
    ProviderSettings,
    Service,
    SyncStatus,
    TimeOfDay,
    TimeRange,
    Weekday,
    WeeklySchedule,
)
from .slot_calculator import SlotCalculator, generate_slots, merge_ranges

__all__ = [
    "Booking",
    "BookingStatus",
    "BreakInterval",
    "CandidateSlot",
    "ConfigurationError",
    "DaySchedule",
    "InternalError",
    "NotFoundError",
    "ProviderSettings",
    "Service",
    "SlotCalculator",
    "SlotUnavailableError",
    "SlotbookError",
    "SyncStatus",
    "TimeOfDay",
    "TimeRange",
    "ValidationError",
    "Weekday",
    "WeeklySchedule",
    "generate_slots",
    "merge_ranges",
]
