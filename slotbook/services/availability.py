"""
Application services for finding bookable slots and managing bookings.

The service coordinates fetching provider settings, the service catalog and
existing bookings through small collaborator protocols, and delegates the
actual slot math to the domain-level ``SlotCalculator``. Keeping the stores
behind protocols lets the HTTP layer and the CLI share one code path and
lets tests plug in simple stubs.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import date as Date
from datetime import datetime
from typing import Any, Callable, Dict, List, Protocol, TypeVar

import pendulum
from pendulum import DateTime

from ..domain.exceptions import (
    ConfigurationError,
    InternalError,
    NotFoundError,
    SlotbookError,
    SlotUnavailableError,
    ValidationError,
)
from ..domain.models import (
    Booking,
    BookingStatus,
    CandidateSlot,
    ProviderSettings,
    Service,
    SyncStatus,
)
from ..domain.slot_calculator import SlotCalculator

logger = logging.getLogger(__name__)

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$", re.ASCII)

T = TypeVar("T")


class ProviderSettingsStore(Protocol):
    """Source of provider availability settings."""

    def get_settings(self, provider_id: str) -> ProviderSettings | None:
        """Return the provider's settings, or None if none are configured."""


class ServiceCatalog(Protocol):
    """Source of bookable services."""

    def get_service(self, service_id: str) -> Service | None:
        """Return the service, or None if it does not exist."""


class BookingStore(Protocol):
    """Storage of bookings. Reads must return a consistent snapshot."""

    def list_bookings(self, provider_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        """Return the provider's bookings overlapping ``[start, end)``."""

    def get_booking(self, booking_id: str) -> Booking | None:
        """Return the booking, or None if it does not exist."""

    def find_bookings(
        self, provider_id: str | None = None, client_id: str | None = None
    ) -> List[Booking]:
        """Return bookings matching the given owner filters, oldest first."""

    def add_booking(self, booking: Booking, buffer_minutes: int = 0) -> Booking:
        """
        Persist a new booking, refusing it if its time is already held.

        Existing blocking bookings count as held for ``buffer_minutes``
        on both sides.
        """

    def update_booking(self, booking: Booking) -> Booking:
        """Replace a stored booking with an updated copy."""

    def delete_booking(self, booking_id: str) -> None:
        """Remove a booking for good."""


class CalendarSync(Protocol):
    """Best-effort push of bookings to an external calendar."""

    def push_booking(self, booking: Booking, service: Service) -> str | None:
        """Return the external event id, or None if the push did not happen."""

    def remove_booking(self, booking: Booking) -> bool:
        """Delete the booking's external event; False if it was not removed."""


def parse_date(value: str) -> Date:
    """
    Parse a strict ``YYYY-MM-DD`` calendar date.

    Raises:
        ValidationError: If the value is missing or not a valid date
    """
    if not value or not _DATE_PATTERN.fullmatch(value):
        raise ValidationError("Invalid date format. Use YYYY-MM-DD")

    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{value}': {exc}") from exc


def _require_id(name: str, value: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Missing required parameter: {name}")
    return value.strip()


@dataclass
class SlotSearchResult:
    """Slots found for one provider, service and date."""
    provider_id: str
    service_id: str
    date: Date
    timezone: str
    slots: List[CandidateSlot] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        return {"slots": [slot.to_payload(self.timezone) for slot in self.slots]}


class AvailabilityService:
    """
    Orchestrates collaborator lookups, slot calculation and booking checks.

    Validation happens before any fetch; unexpected collaborator failures are
    logged and surfaced as ``InternalError`` without internal detail.
    """

    def __init__(
        self,
        settings_store: ProviderSettingsStore,
        service_catalog: ServiceCatalog,
        booking_store: BookingStore,
        slot_calculator: SlotCalculator | None = None,
        calendar_sync: CalendarSync | None = None,
        clock: Callable[[], DateTime] | None = None,
    ) -> None:
        self._settings_store = settings_store
        self._service_catalog = service_catalog
        self._booking_store = booking_store
        self._slot_calculator = slot_calculator or SlotCalculator()
        self._calendar_sync = calendar_sync
        self._clock = clock or (lambda: pendulum.now("UTC"))

    def find_slots(
        self,
        provider_id: str,
        service_id: str,
        date: str,
        now: datetime | None = None,
    ) -> SlotSearchResult:
        """
        Compute the bookable slots of a provider's service on a date.

        Args:
            provider_id: Provider identifier
            service_id: Service identifier
            date: Target date as ``YYYY-MM-DD`` (provider-local)
            now: Current instant, defaults to the service clock

        Returns:
            SlotSearchResult; empty when the provider has no availability

        Raises:
            ValidationError: If a parameter is missing or malformed
            NotFoundError: If the service does not exist
            InternalError: If a collaborator fails unexpectedly
        """
        provider_id = _require_id("providerId", provider_id)
        service_id = _require_id("serviceId", service_id)
        target_date = parse_date(date)
        current = now or self._clock()

        logger.debug(
            "Slot search: provider=%s service=%s date=%s", provider_id, service_id, target_date
        )

        service = self._load_service(provider_id, service_id)

        try:
            settings = self._load_settings(provider_id)
        except ConfigurationError as exc:
            logger.info("No availability for provider %s: %s", provider_id, exc)
            return SlotSearchResult(provider_id, service_id, target_date, "UTC")

        slots = self._compute_slots(settings, service, target_date, current)

        logger.info(
            "Found %d slot(s) for provider %s, service %s on %s",
            len(slots), provider_id, service_id, target_date,
        )
        return SlotSearchResult(provider_id, service_id, target_date, settings.timezone, slots)

    def create_booking(
        self,
        provider_id: str,
        service_id: str,
        client_id: str,
        start: datetime,
        note: str | None = None,
        now: datetime | None = None,
    ) -> Booking:
        """
        Book ``start`` for a client if it is still an offered slot.

        Raises:
            ValidationError: If a parameter is missing or malformed
            NotFoundError: If the service does not exist
            SlotUnavailableError: If the slot is taken or not offered
            InternalError: If a collaborator fails unexpectedly
        """
        provider_id = _require_id("providerId", provider_id)
        service_id = _require_id("serviceId", service_id)
        client_id = _require_id("clientId", client_id)
        if start.tzinfo is None:
            raise ValidationError("Booking start must include a timezone offset")
        current = now or self._clock()

        service = self._load_service(provider_id, service_id)

        try:
            settings = self._load_settings(provider_id)
        except ConfigurationError as exc:
            raise SlotUnavailableError("This time slot is no longer available") from exc

        start = pendulum.instance(start)
        local_date = start.in_timezone(settings.timezone).date()
        offered = {
            slot.start for slot in self._compute_slots(settings, service, local_date, current)
        }
        if start not in offered:
            logger.info(
                "Rejected booking for provider %s at %s: slot not offered",
                provider_id, start.to_iso8601_string(),
            )
            raise SlotUnavailableError("This time slot is no longer available")

        booking = Booking(
            id=uuid.uuid4().hex,
            provider_id=provider_id,
            service_id=service_id,
            client_id=client_id,
            start=start,
            end=start.add(minutes=service.duration_minutes),
            status=BookingStatus.CONFIRMED,
            note=note,
        )
        booking = self._call(
            "store booking",
            self._booking_store.add_booking,
            booking,
            settings.buffer_minutes,
        )
        logger.info("Created booking %s for provider %s", booking.id, provider_id)

        return self._sync_booking(booking, service)

    def cancel_booking(self, booking_id: str) -> Booking:
        """
        Mark a booking as cancelled so its time becomes bookable again.

        The external calendar event, if any, is removed best-effort; the
        outcome only changes ``sync_status``.

        Raises:
            ValidationError: If the id is missing
            NotFoundError: If the booking does not exist
            InternalError: If a collaborator fails unexpectedly
        """
        booking = self._get_booking(booking_id)

        cancelled = replace(booking, status=BookingStatus.CANCELLED)
        cancelled = self._call("update booking", self._booking_store.update_booking, cancelled)
        logger.info("Cancelled booking %s for provider %s", cancelled.id, cancelled.provider_id)

        removed = self._remove_calendar_event(cancelled)
        if removed is None:
            return cancelled

        synced = replace(cancelled, sync_status=SyncStatus.OK if removed else SyncStatus.FAILED)
        return self._call("update booking", self._booking_store.update_booking, synced)

    def delete_booking(self, booking_id: str) -> None:
        """
        Remove a booking and, best-effort, its external calendar event.

        Raises:
            ValidationError: If the id is missing
            NotFoundError: If the booking does not exist
        """
        booking = self._get_booking(booking_id)
        self._remove_calendar_event(booking)
        self._call("delete booking", self._booking_store.delete_booking, booking.id)
        logger.info("Deleted booking %s for provider %s", booking.id, booking.provider_id)

    def list_bookings(
        self, provider_id: str | None = None, client_id: str | None = None
    ) -> List[Booking]:
        """Bookings of a provider and/or client, oldest first."""
        return self._call(
            "list bookings", self._booking_store.find_bookings, provider_id, client_id
        )

    def _get_booking(self, booking_id: str) -> Booking:
        booking_id = _require_id("bookingId", booking_id)
        booking = self._call("fetch booking", self._booking_store.get_booking, booking_id)
        if booking is None:
            raise NotFoundError("Booking not found")
        return booking

    def _remove_calendar_event(self, booking: Booking) -> bool | None:
        """Delete the booking's external event; None when there is nothing to do."""
        if self._calendar_sync is None or not booking.calendar_event_id:
            return None

        try:
            return bool(self._calendar_sync.remove_booking(booking))
        except Exception:
            logger.warning(
                "Calendar event removal failed for booking %s", booking.id, exc_info=True
            )
            return False

    def _compute_slots(
        self,
        settings: ProviderSettings,
        service: Service,
        target_date: Date,
        now: datetime,
    ) -> List[CandidateSlot]:
        tz = settings.timezone
        today = pendulum.instance(now).in_timezone(tz).date()
        if target_date.toordinal() - today.toordinal() > settings.advance_booking_days:
            logger.info(
                "Date %s is beyond the %d-day booking window of provider %s",
                target_date, settings.advance_booking_days, settings.provider_id,
            )
            return []

        # Widen the fetch so buffered bookings just outside the day still count
        day_start = pendulum.datetime(
            target_date.year, target_date.month, target_date.day, tz=tz
        ).subtract(minutes=settings.buffer_minutes)
        day_end = day_start.add(days=1, minutes=2 * settings.buffer_minutes)

        bookings = self._call(
            "fetch bookings",
            self._booking_store.list_bookings,
            settings.provider_id,
            day_start,
            day_end,
        )
        blocking = [b for b in bookings if b.blocks_availability]

        return self._slot_calculator.generate_slots(
            settings.schedule,
            target_date,
            service.duration_minutes,
            blocking,
            now=now,
            timezone=tz,
            buffer_minutes=settings.buffer_minutes,
            minimum_notice_minutes=settings.minimum_notice_hours * 60,
        )

    def _load_service(self, provider_id: str, service_id: str) -> Service:
        service = self._call("fetch service", self._service_catalog.get_service, service_id)
        if service is None or not service.is_active or service.provider_id != provider_id:
            raise NotFoundError("Service not found")
        return service

    def _load_settings(self, provider_id: str) -> ProviderSettings:
        settings = self._call("fetch provider settings", self._settings_store.get_settings, provider_id)
        if settings is None:
            raise ConfigurationError(f"Provider '{provider_id}' has no availability settings")
        return settings

    def _sync_booking(self, booking: Booking, service: Service) -> Booking:
        """Push to the external calendar; failures only mark the sync status."""
        if self._calendar_sync is None:
            return booking

        try:
            event_id = self._calendar_sync.push_booking(booking, service)
        except Exception:
            logger.warning("Calendar sync failed for booking %s", booking.id, exc_info=True)
            event_id = None

        if event_id:
            updated = replace(booking, sync_status=SyncStatus.OK, calendar_event_id=event_id)
        else:
            updated = replace(booking, sync_status=SyncStatus.FAILED)

        return self._call("update booking", self._booking_store.update_booking, updated)

    @staticmethod
    def _call(description: str, func: Callable[..., T], *args: Any) -> T:
        """Invoke a collaborator, mapping unexpected failures to InternalError."""
        try:
            return func(*args)
        except SlotbookError:
            raise
        except Exception as exc:
            logger.exception("Failed to %s", description)
            raise InternalError("Internal server error") from exc
