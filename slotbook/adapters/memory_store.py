"""
In-memory store backing providers, services and bookings.

Used by the CLI, the API server and the tests. Data can be seeded from a
YAML (or JSON) data file; provider availability blobs go through the same
schemas as HTTP input.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml
from pendulum import DateTime

from ..domain.exceptions import NotFoundError, SlotUnavailableError, ValidationError
from ..domain.models import Booking, ProviderSettings, Service
from ..schemas import BookingRecord, ProviderRecord, ServiceRecord, parse_record

logger = logging.getLogger(__name__)


class InMemoryStore:
    """
    Thread-safe store implementing the settings, catalog and booking protocols.

    Every read returns a snapshot taken under the lock, so a booking being
    added concurrently is either fully visible or not visible at all.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._providers: Dict[str, ProviderSettings | None] = {}
        self._services: Dict[str, Service] = {}
        self._bookings: Dict[str, Booking] = {}

    @classmethod
    def load_from_file(cls, data_path: Path) -> "InMemoryStore":
        """
        Load a store from a YAML/JSON data file.

        Args:
            data_path: Path to the data file

        Returns:
            Populated InMemoryStore

        Raises:
            FileNotFoundError: If the data file doesn't exist
            ValidationError: If the file content is invalid
        """
        if not data_path.exists():
            raise FileNotFoundError(f"Data file not found: {data_path}")

        try:
            with open(data_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ValidationError(f"Invalid YAML in {data_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ValidationError("Data file must contain a mapping at the root level.")

        store = cls.from_mapping(data)
        logger.info(
            "Loaded %d provider(s), %d service(s), %d booking(s) from %s",
            len(store._providers), len(store._services), len(store._bookings), data_path,
        )
        return store

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "InMemoryStore":
        store = cls()

        for raw in data.get("providers") or []:
            record = parse_record(ProviderRecord, raw)
            settings = record.availability.to_domain(record.id) if record.availability else None
            store.put_provider(record.id, settings)

        for raw in data.get("services") or []:
            store.put_service(parse_record(ServiceRecord, raw).to_domain())

        for raw in data.get("bookings") or []:
            booking = parse_record(BookingRecord, raw).to_domain()
            with store._lock:
                store._bookings[booking.id] = booking

        return store

    def put_provider(self, provider_id: str, settings: ProviderSettings | None) -> None:
        """Register a provider; ``settings=None`` means nothing configured yet."""
        with self._lock:
            self._providers[provider_id] = settings

    def put_service(self, service: Service) -> None:
        with self._lock:
            self._services[service.id] = service

    def get_settings(self, provider_id: str) -> ProviderSettings | None:
        with self._lock:
            return self._providers.get(provider_id)

    def get_service(self, service_id: str) -> Service | None:
        with self._lock:
            return self._services.get(service_id)

    def list_bookings(self, provider_id: str, start: DateTime, end: DateTime) -> List[Booking]:
        with self._lock:
            bookings = list(self._bookings.values())
        return sorted(
            (
                b for b in bookings
                if b.provider_id == provider_id and b.start < end and b.end > start
            ),
            key=lambda b: b.start,
        )

    def find_bookings(
        self, provider_id: str | None = None, client_id: str | None = None
    ) -> List[Booking]:
        with self._lock:
            bookings = list(self._bookings.values())
        return sorted(
            (
                b for b in bookings
                if (provider_id is None or b.provider_id == provider_id)
                and (client_id is None or b.client_id == client_id)
            ),
            key=lambda b: b.start,
        )

    def add_booking(self, booking: Booking, buffer_minutes: int = 0) -> Booking:
        """
        Store a new booking.

        Args:
            booking: Booking to store
            buffer_minutes: Free time kept on both sides of existing bookings

        Raises:
            SlotUnavailableError: If a blocking booking already holds the time
        """
        with self._lock:
            if booking.id in self._bookings:
                raise ValidationError(f"Booking '{booking.id}' already exists")

            if booking.blocks_availability:
                for existing in self._bookings.values():
                    if (
                        existing.provider_id == booking.provider_id
                        and existing.blocks_availability
                        and existing.time_range.padded(buffer_minutes).overlaps(booking.time_range)
                    ):
                        raise SlotUnavailableError("This time slot is no longer available")

            self._bookings[booking.id] = booking
            return booking

    def update_booking(self, booking: Booking) -> Booking:
        with self._lock:
            if booking.id not in self._bookings:
                raise NotFoundError(f"Booking '{booking.id}' not found")
            self._bookings[booking.id] = booking
            return booking

    def delete_booking(self, booking_id: str) -> None:
        with self._lock:
            if self._bookings.pop(booking_id, None) is None:
                raise NotFoundError(f"Booking '{booking_id}' not found")

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._lock:
            return self._bookings.get(booking_id)
