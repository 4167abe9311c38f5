"""
Shared builders for tests.
"""

from typing import Dict, Iterable, Tuple

import pendulum

from slotbook.domain.models import (
    Booking,
    BookingStatus,
    BreakInterval,
    DaySchedule,
    TimeOfDay,
    Weekday,
    WeeklySchedule,
)

MONDAY = pendulum.date(2030, 1, 7)


def at(clock: str, day: str = "2030-01-07", tz: str = "UTC") -> pendulum.DateTime:
    """Aware instant for ``clock`` (HH:MM) on ``day`` in ``tz``."""
    return pendulum.parse(f"{day}T{clock}:00", tz=tz)


def day_schedule(
    start: str = "09:00",
    end: str = "17:00",
    breaks: Iterable[Tuple[str, str]] = (),
    enabled: bool = True,
) -> DaySchedule:
    return DaySchedule(
        enabled=enabled,
        work_start=TimeOfDay.parse(start),
        work_end=TimeOfDay.parse(end),
        breaks=tuple(
            BreakInterval(start=TimeOfDay.parse(s), end=TimeOfDay.parse(e)) for s, e in breaks
        ),
    )


def weekly_schedule(**days: DaySchedule) -> WeeklySchedule:
    """Every day disabled except the ones passed by weekday key (``monday=...``)."""
    mapping: Dict[Weekday, DaySchedule] = {day: DaySchedule.disabled() for day in Weekday}
    for key, schedule in days.items():
        mapping[Weekday.from_key(key)] = schedule
    return WeeklySchedule.from_mapping(mapping)


def booking(
    start: pendulum.DateTime,
    end: pendulum.DateTime,
    status: BookingStatus = BookingStatus.CONFIRMED,
    booking_id: str = "b1",
    provider_id: str = "provider-1",
) -> Booking:
    return Booking(
        id=booking_id,
        provider_id=provider_id,
        service_id="haircut",
        client_id="client-1",
        start=start,
        end=end,
        status=status,
    )


def availability_blob(timezone: str = "UTC", **overrides) -> dict:
    """Raw availability settings as stored on a provider profile."""
    day = {"isEnabled": True, "workingHours": {"start": "09:00", "end": "17:00"}, "breaks": []}
    off = {"isEnabled": False, "workingHours": {"start": "09:00", "end": "17:00"}, "breaks": []}
    blob = {
        "weekSchedule": {
            "monday": dict(day),
            "tuesday": dict(day),
            "wednesday": dict(day),
            "thursday": dict(day),
            "friday": dict(day),
            "saturday": dict(off),
            "sunday": dict(off),
        },
        "bufferTime": 0,
        "advanceBookingDays": 365,
        "minimumNoticeHours": 0,
        "timezone": timezone,
    }
    blob.update(overrides)
    return blob
