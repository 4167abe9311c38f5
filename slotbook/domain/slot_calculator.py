"""
Core business logic for calculating bookable time slots.

This is the heart of the application - pure domain logic without any
external dependencies (no API calls, no database, no I/O).
"""

import logging
from datetime import date as Date
from datetime import datetime
from typing import Iterable, Iterator, List

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError
from .models import Booking, CandidateSlot, TimeRange, WeeklySchedule

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 30


def merge_ranges(ranges: Iterable[TimeRange]) -> List[TimeRange]:
    """
    Merge overlapping or adjacent time ranges into their union.

    Example: [12:30-13:00, 12:00-12:45, 13:00-13:15] -> [12:00-13:15]
    """
    sorted_ranges = sorted(ranges, key=lambda r: r.start)
    if not sorted_ranges:
        return []

    merged: List[TimeRange] = [sorted_ranges[0]]

    for current in sorted_ranges[1:]:
        last = merged[-1]

        # Check if ranges overlap or are adjacent (no gap)
        if current.start <= last.end:
            merged[-1] = TimeRange(start=last.start, end=max(last.end, current.end))
        else:
            merged.append(current)

    return merged


def _require_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive number of minutes, got {value!r}")


def _require_non_negative(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{name} must not be negative, got {value!r}")


def _as_instant(value: datetime) -> DateTime:
    if value.tzinfo is None:
        raise ValidationError("'now' must be a timezone-aware datetime")
    return pendulum.instance(value)


class SlotCalculator:
    """
    Calculates bookable slots for one provider on one calendar date.

    Algorithm:
    1. Resolve the day schedule for the date (disabled -> no slots)
    2. Anchor working hours and breaks in the provider's timezone
    3. Enumerate candidate starts every ``step_minutes`` from work start
    4. Keep candidates that fit inside working hours, miss every blocking
       booking and every break, and start after ``now`` (plus notice)

    The step is a generation granularity and is independent of the
    service duration.
    """

    def __init__(self, step_minutes: int = DEFAULT_STEP_MINUTES):
        _require_positive("step_minutes", step_minutes)
        self.step_minutes = step_minutes

    def generate_slots(
        self,
        schedule: WeeklySchedule,
        date: Date,
        service_duration: int,
        existing_bookings: Iterable[Booking],
        *,
        now: datetime | None = None,
        timezone: str = "UTC",
        step_minutes: int | None = None,
        buffer_minutes: int = 0,
        minimum_notice_minutes: int = 0,
    ) -> List[CandidateSlot]:
        """
        Generate the ordered list of bookable slots for ``date``.

        Args:
            schedule: Provider weekly schedule
            date: Target calendar date (provider-local)
            service_duration: Length of the service in minutes
            existing_bookings: Bookings of the provider around that date
            now: Current instant; slots starting at or before it are dropped
            timezone: IANA timezone the schedule is expressed in
            step_minutes: Override of the calculator's step
            buffer_minutes: Gap kept free on both sides of every booking
            minimum_notice_minutes: Lead time required before a slot starts

        Returns:
            List of CandidateSlot objects in ascending start order

        Raises:
            ValidationError: If a duration, step or policy value is invalid
        """
        step = self.step_minutes if step_minutes is None else step_minutes
        _require_positive("service_duration", service_duration)
        _require_positive("step_minutes", step)
        _require_non_negative("buffer_minutes", buffer_minutes)
        _require_non_negative("minimum_notice_minutes", minimum_notice_minutes)

        current = _as_instant(now) if now is not None else pendulum.now("UTC")
        cutoff = current.add(minutes=minimum_notice_minutes)

        # Step 1: Resolve the working day
        day_schedule = schedule.for_date(date)
        work = day_schedule.work_range(date, timezone)
        if work is None:
            logger.debug("No working hours on %s (%s)", date, timezone)
            return []

        # Step 2: Collect everything a slot must not touch
        breaks = merge_ranges(day_schedule.break_ranges(date, timezone))
        busy = self._blocking_ranges(existing_bookings, buffer_minutes)

        logger.debug(
            "Generating slots for %s: work %s, %d break(s), %d busy range(s)",
            date, work, len(breaks), len(busy),
        )

        # Step 3: Enumerate and filter candidates
        slots: List[CandidateSlot] = []

        for start in self._candidate_starts(work, step):
            end = start.add(minutes=service_duration)

            # Service must end within working hours; later starts only end later
            if end > work.end:
                break

            candidate = TimeRange(start=start, end=end)

            if any(candidate.overlaps(b) for b in busy):
                continue

            if any(candidate.overlaps(b) for b in breaks):
                continue

            if start <= cutoff:
                continue

            slots.append(CandidateSlot(start=start, end=end))

        logger.debug("Generated %d slot(s) for %s", len(slots), date)
        return slots

    @staticmethod
    def _candidate_starts(work: TimeRange, step_minutes: int) -> Iterator[DateTime]:
        """Yield start instants from work start, every step, while before work end."""
        index = 0
        start = work.start
        while start < work.end:
            yield start
            index += 1
            start = work.start.add(minutes=index * step_minutes)

    @staticmethod
    def _blocking_ranges(
        bookings: Iterable[Booking],
        buffer_minutes: int,
    ) -> List[TimeRange]:
        """Time held by confirmed/pending bookings, widened by the buffer."""
        return [
            booking.time_range.padded(buffer_minutes)
            for booking in bookings
            if booking.blocks_availability
        ]


def generate_slots(
    schedule: WeeklySchedule,
    date: Date,
    service_duration: int,
    existing_bookings: Iterable[Booking],
    step_minutes: int = DEFAULT_STEP_MINUTES,
    now: datetime | None = None,
    **policy,
) -> List[CandidateSlot]:
    """Convenience wrapper around ``SlotCalculator.generate_slots``."""
    return SlotCalculator(step_minutes=step_minutes).generate_slots(
        schedule,
        date,
        service_duration,
        existing_bookings,
        now=now,
        **policy,
    )
