"""
Service layer helpers that orchestrate stores and domain logic.
"""

from .availability import (
    AvailabilityService,
    BookingStore,
    CalendarSync,
    ProviderSettingsStore,
    ServiceCatalog,
    SlotSearchResult,
    parse_date,
)

__all__ = [
    "AvailabilityService",
    "BookingStore",
    "CalendarSync",
    "ProviderSettingsStore",
    "ServiceCatalog",
    "SlotSearchResult",
    "parse_date",
]
