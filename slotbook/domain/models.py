"""
Domain models for schedules, bookings and slot calculations.

All wall-clock values (working hours, breaks) are interpreted in the
provider's IANA timezone; instants are timezone-aware pendulum DateTimes.
"""

import re
from dataclasses import dataclass, field
from datetime import date as Date
from enum import Enum, IntEnum
from typing import Dict, List, Mapping, Tuple

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError

_TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$", re.ASCII)


class Weekday(IntEnum):
    """Day of the week, Monday = 0 (same as ``date.weekday()``)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def key(self) -> str:
        """Lowercase name used in stored schedules ("monday", ...)."""
        return self.name.lower()

    @classmethod
    def from_key(cls, key: str) -> "Weekday":
        try:
            return cls[key.upper()]
        except KeyError:
            raise ValidationError(f"Unknown weekday: '{key}'") from None

    @classmethod
    def of(cls, day: Date) -> "Weekday":
        return cls(day.weekday())


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def blocks_availability(self) -> bool:
        """Only confirmed and pending bookings hold their time."""
        return self in (BookingStatus.CONFIRMED, BookingStatus.PENDING)


class SyncStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    PENDING = "pending"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

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

    def overlaps(self, other: "TimeRange") -> bool:
        """
        Check if this range overlaps with another.

        Ranges that only touch (``self.end == other.start``) do not overlap.
        """
        return self.start < other.end and self.end > other.start

    def intersect(self, other: "TimeRange") -> "TimeRange | None":
        """
        Calculate the intersection of two time ranges.
        Returns None if there is no overlap.
        """
        if not self.overlaps(other):
            return None

        start = max(self.start, other.start)
        end = min(self.end, other.end)

        return TimeRange(start=start, end=end)

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies entirely within this range."""
        return self.start <= other.start and other.end <= self.end

    def padded(self, minutes: int) -> "TimeRange":
        """Return the range widened by ``minutes`` on both sides."""
        if minutes <= 0:
            return self
        return TimeRange(
            start=self.start.subtract(minutes=minutes),
            end=self.end.add(minutes=minutes),
        )

    def __str__(self) -> str:
        return f"{self.start.format('DD.MM.YYYY HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Wall-clock time of day with minute precision."""
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.hour <= 23:
            raise ValidationError(f"Hour must be between 0 and 23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValidationError(f"Minute must be between 0 and 59, got {self.minute}")

    @classmethod
    def parse(cls, value: str) -> "TimeOfDay":
        """
        Parse an ``"HH:MM"`` string.

        Raises:
            ValidationError: If the string is not a valid time of day
        """
        if not isinstance(value, str):
            raise ValidationError(f"Time of day must be a 'HH:MM' string, got {value!r}")

        match = _TIME_OF_DAY_PATTERN.fullmatch(value)
        if not match:
            raise ValidationError(f"Invalid time of day '{value}', expected HH:MM")

        return cls(hour=int(match.group(1)), minute=int(match.group(2)))

    def on(self, day: Date, timezone: str) -> DateTime:
        """Anchor this wall-clock time on ``day`` in ``timezone``."""
        return pendulum.datetime(
            day.year, day.month, day.day, self.hour, self.minute, tz=timezone
        )

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


@dataclass(frozen=True)
class BreakInterval:
    """A same-day pause inside working hours, ``[start, end)``."""
    start: TimeOfDay
    end: TimeOfDay

    def __post_init__(self):
        if self.end <= self.start:
            raise ValidationError(f"Break end {self.end} must be after break start {self.start}")

    def to_range(self, day: Date, timezone: str) -> TimeRange:
        return TimeRange(start=self.start.on(day, timezone), end=self.end.on(day, timezone))


@dataclass(frozen=True)
class DaySchedule:
    """
    Working hours and breaks for one weekday.

    Breaks may overlap and come in any order; consumers must union them.
    """
    enabled: bool
    work_start: TimeOfDay
    work_end: TimeOfDay
    breaks: Tuple[BreakInterval, ...] = ()

    def __post_init__(self):
        if self.enabled and self.work_end <= self.work_start:
            raise ValidationError(
                f"Working hours end {self.work_end} must be after start {self.work_start}"
            )
        # Accept any iterable of breaks but keep the stored value hashable.
        object.__setattr__(self, "breaks", tuple(self.breaks))

    @classmethod
    def disabled(cls) -> "DaySchedule":
        return cls(enabled=False, work_start=TimeOfDay(9), work_end=TimeOfDay(17))

    def work_range(self, day: Date, timezone: str) -> TimeRange | None:
        """
        Get the working hours range for a specific date.
        Returns None if the day is not enabled.
        """
        if not self.enabled:
            return None

        return TimeRange(
            start=self.work_start.on(day, timezone),
            end=self.work_end.on(day, timezone),
        )

    def break_ranges(self, day: Date, timezone: str) -> List[TimeRange]:
        return [b.to_range(day, timezone) for b in self.breaks]


@dataclass(frozen=True)
class WeeklySchedule:
    """
    Provider schedule for all seven weekdays, indexed by ``Weekday``.

    Invariant: exactly seven day schedules are present.
    """
    days: Tuple[DaySchedule, ...]

    def __post_init__(self):
        object.__setattr__(self, "days", tuple(self.days))
        if len(self.days) != 7:
            raise ValidationError(
                f"Weekly schedule must define all 7 days, got {len(self.days)}"
            )

    @classmethod
    def from_mapping(cls, days: Mapping[Weekday, DaySchedule]) -> "WeeklySchedule":
        missing = [day.key for day in Weekday if day not in days]
        if missing:
            raise ValidationError(f"Weekly schedule is missing days: {', '.join(missing)}")
        return cls(days=tuple(days[day] for day in Weekday))

    def for_weekday(self, weekday: Weekday) -> DaySchedule:
        return self.days[weekday]

    def for_date(self, day: Date) -> DaySchedule:
        """Resolve the day schedule that applies to a calendar date."""
        return self.days[Weekday.of(day)]


@dataclass(frozen=True)
class ProviderSettings:
    """Availability settings of a single provider."""
    provider_id: str
    schedule: WeeklySchedule
    timezone: str = "Europe/Belgrade"
    buffer_minutes: int = 0
    minimum_notice_hours: int = 0
    advance_booking_days: int = 365


@dataclass(frozen=True)
class Service:
    """A bookable service offered by a provider."""
    id: str
    provider_id: str
    name: str
    duration_minutes: int
    is_active: bool = True

    def __post_init__(self):
        if self.duration_minutes <= 0:
            raise ValidationError(
                f"Service duration must be positive, got {self.duration_minutes}"
            )


@dataclass(frozen=True)
class Booking:
    """
    A reservation held by a client.

    Existing bookings are read-only input to slot generation; only those
    whose status blocks availability are considered.
    """
    id: str
    provider_id: str
    service_id: str
    client_id: str
    start: DateTime
    end: DateTime
    status: BookingStatus = BookingStatus.CONFIRMED
    note: str | None = None
    sync_status: SyncStatus = SyncStatus.PENDING
    calendar_event_id: str | None = None

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValidationError("Booking times must be timezone-aware")
        if self.end <= self.start:
            raise ValidationError("End time must be after start time")
        object.__setattr__(self, "start", pendulum.instance(self.start))
        object.__setattr__(self, "end", pendulum.instance(self.end))
        object.__setattr__(self, "status", BookingStatus(self.status))
        object.__setattr__(self, "sync_status", SyncStatus(self.sync_status))

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    @property
    def blocks_availability(self) -> bool:
        return self.status.blocks_availability

    def to_payload(self) -> Dict[str, str | None]:
        return {
            "id": self.id,
            "providerId": self.provider_id,
            "serviceId": self.service_id,
            "clientId": self.client_id,
            "start": self.start.in_timezone("UTC").to_iso8601_string(),
            "end": self.end.in_timezone("UTC").to_iso8601_string(),
            "status": self.status.value,
            "note": self.note,
            "syncStatus": self.sync_status.value,
        }


@dataclass(frozen=True)
class CandidateSlot:
    """
    A bookable window produced by slot generation. Never persisted.
    """
    start: DateTime
    end: DateTime
    available: bool = field(default=True, compare=False)

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    def to_payload(self, timezone: str) -> Dict[str, str | bool]:
        """
        Shape the slot for API responses.

        ``start``/``end`` are UTC ISO 8601 instants; ``startTime``/``endTime``
        are provider-local ``HH:mm``.
        """
        local_start = self.start.in_timezone(timezone)
        local_end = self.end.in_timezone(timezone)
        return {
            "start": self.start.in_timezone("UTC").to_iso8601_string(),
            "end": self.end.in_timezone("UTC").to_iso8601_string(),
            "startTime": local_start.format("HH:mm"),
            "endTime": local_end.format("HH:mm"),
            "available": self.available,
        }

    def format_display(self, timezone: str) -> str:
        """
        Format the slot for display.
        Format: Weekday, DD.MM.YYYY | HH:MM - HH:MM (N min)
        """
        start = self.start.in_timezone(timezone)
        end = self.end.in_timezone(timezone)

        weekday = Weekday.of(start.date()).name.capitalize()
        date_str = start.format("DD.MM.YYYY")
        time_str = f"{start.format('HH:mm')} - {end.format('HH:mm')}"
        duration = self.time_range.duration_minutes()

        return f"{weekday}, {date_str} | {time_str} ({duration} min)"
