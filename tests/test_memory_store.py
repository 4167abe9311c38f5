"""
Tests for the in-memory store adapter.
"""

import threading

import pytest
import yaml

from slotbook.adapters.memory_store import InMemoryStore
from slotbook.domain.exceptions import NotFoundError, SlotUnavailableError, ValidationError
from slotbook.domain.models import BookingStatus

from helpers import at, availability_blob, booking


def _data() -> dict:
    return {
        "providers": [
            {"id": "provider-1", "availability": availability_blob()},
            {"id": "provider-2"},
        ],
        "services": [
            {"id": "haircut", "providerId": "provider-1", "name": "Haircut", "durationMinutes": 60},
        ],
        "bookings": [
            {
                "id": "b1",
                "providerId": "provider-1",
                "serviceId": "haircut",
                "clientId": "client-1",
                "start": "2030-01-07T10:00:00Z",
                "end": "2030-01-07T11:00:00Z",
            },
        ],
    }


class TestLoading:
    """Tests for seeding the store from files."""

    def test_load_from_yaml(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text(yaml.safe_dump(_data()), encoding="utf-8")

        store = InMemoryStore.load_from_file(path)

        assert store.get_settings("provider-1") is not None
        assert store.get_settings("provider-2") is None
        assert store.get_service("haircut").duration_minutes == 60
        assert store.get_booking("b1").status is BookingStatus.CONFIRMED

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            InMemoryStore.load_from_file(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text("providers: [unclosed", encoding="utf-8")

        with pytest.raises(ValidationError, match="Invalid YAML"):
            InMemoryStore.load_from_file(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "data.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ValidationError, match="mapping"):
            InMemoryStore.load_from_file(path)

    def test_invalid_service_record(self):
        data = _data()
        data["services"][0]["durationMinutes"] = 0

        with pytest.raises(ValidationError, match="ServiceRecord"):
            InMemoryStore.from_mapping(data)


class TestBookings:
    """Tests for booking reads and writes."""

    def test_list_bookings_filters_provider_and_window(self):
        store = InMemoryStore.from_mapping(_data())
        store.add_booking(booking(at("09:00", day="2030-01-08"), at("10:00", day="2030-01-08"), booking_id="b2"))
        store.add_booking(booking(at("12:00"), at("13:00"), booking_id="b3", provider_id="provider-2"))

        found = store.list_bookings("provider-1", at("00:00"), at("00:00", day="2030-01-08"))

        assert [b.id for b in found] == ["b1"]

    def test_add_overlapping_booking_is_refused(self):
        store = InMemoryStore.from_mapping(_data())

        with pytest.raises(SlotUnavailableError):
            store.add_booking(booking(at("10:30"), at("11:30"), booking_id="b2"))

    def test_cancelled_booking_does_not_hold_time(self):
        store = InMemoryStore()
        store.add_booking(booking(at("10:00"), at("11:00"), status=BookingStatus.CANCELLED))

        stored = store.add_booking(booking(at("10:00"), at("11:00"), booking_id="b2"))

        assert stored.id == "b2"

    def test_buffer_keeps_neighbouring_bookings_apart(self):
        store = InMemoryStore.from_mapping(_data())

        with pytest.raises(SlotUnavailableError):
            store.add_booking(booking(at("11:00"), at("12:00"), booking_id="b2"), buffer_minutes=30)

        stored = store.add_booking(booking(at("11:30"), at("12:30"), booking_id="b3"), buffer_minutes=30)
        assert stored.id == "b3"

    def test_adjacent_booking_allowed_without_buffer(self):
        store = InMemoryStore.from_mapping(_data())

        stored = store.add_booking(booking(at("11:00"), at("12:00"), booking_id="b2"))

        assert stored.id == "b2"

    def test_find_bookings_filters_owner(self):
        store = InMemoryStore.from_mapping(_data())
        store.add_booking(booking(at("14:00"), at("15:00"), booking_id="b2", provider_id="provider-2"))

        assert [b.id for b in store.find_bookings(provider_id="provider-2")] == ["b2"]
        assert [b.id for b in store.find_bookings(client_id="client-1")] == ["b1", "b2"]
        assert store.find_bookings(client_id="nobody") == []

    def test_delete_booking(self):
        store = InMemoryStore.from_mapping(_data())

        store.delete_booking("b1")

        assert store.get_booking("b1") is None
        with pytest.raises(NotFoundError):
            store.delete_booking("b1")

    def test_duplicate_id_rejected(self):
        store = InMemoryStore.from_mapping(_data())

        with pytest.raises(ValidationError):
            store.add_booking(booking(at("14:00"), at("15:00"), booking_id="b1"))

    def test_update_unknown_booking(self):
        with pytest.raises(NotFoundError):
            InMemoryStore().update_booking(booking(at("14:00"), at("15:00")))

    def test_concurrent_adds_keep_one_winner(self):
        store = InMemoryStore()
        results = []

        def claim(index):
            try:
                store.add_booking(booking(at("10:00"), at("11:00"), booking_id=f"b{index}"))
                results.append("ok")
            except SlotUnavailableError:
                results.append("taken")

        threads = [threading.Thread(target=claim, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count("ok") == 1
        assert results.count("taken") == 7
