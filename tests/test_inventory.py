from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from backend.repository.data_repository import DataRepository
from backend.services.booking_service import (
    AllocationInput,
    BookingForm,
    BookingService,
    PersonInput,
)
from backend.services.inventory_service import (
    EventInput,
    InventoryConflictError,
    InventoryService,
    InventoryValidationError,
    ResourceNotFoundError,
)
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename)


def _build_services(tmp_path, filename: str):
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    inventory = InventoryService(repository=repository, settings=settings)
    bookings = BookingService(repository=repository, settings=settings)
    return repository, inventory, bookings


def _event_input(**overrides) -> EventInput:
    values = {
        "name": "Winter Retreat",
        "description": "Five day retreat",
        "start_date": date(2030, 1, 10),
        "end_date": date(2030, 1, 15),
        "booking_start_date": date(2029, 12, 1),
        "booking_end_date": date(2030, 1, 5),
        "location": "Hill Campus",
    }
    values.update(overrides)
    return EventInput(**values)


def _approved_guest(inventory: InventoryService, bookings: BookingService, event_id: str):
    building = inventory.create_building("North Wing", "male")
    room = inventory.create_room(building.id, "N-1", [("N-1-A", "single"), ("N-1-B", "floor_bed")])
    booking = bookings.submit_booking(
        BookingForm(
            event_id=event_id,
            user_id="user-1",
            stay_from=date(2030, 1, 10),
            stay_to=date(2030, 1, 15),
            people=[PersonInput(name="Ravi", age=40, gender="male")],
        )
    )
    bookings.change_status(
        booking.id,
        "approved",
        [AllocationInput(bed_id=room.beds[0].id, room_id=room.id, building_id=building.id)],
    )
    return building, room, booking


def test_room_creation_keeps_bed_order(tmp_path):
    _, inventory, _ = _build_services(tmp_path, "rooms.db")
    building = inventory.create_building("Family Block", "Unisex")

    room = inventory.create_room(
        building.id,
        "F-2",
        [("F-2-A", "single"), ("F-2-B", "single"), ("F-2-C", "floor_bed")],
    )
    extra = inventory.create_bed(room.id, "F-2-D", "floor_bed")

    assert building.gender == "unisex"
    assert [bed.name for bed in inventory.get_room(room.id).beds] == [
        "F-2-A",
        "F-2-B",
        "F-2-C",
        "F-2-D",
    ]
    assert extra.type == "floor_bed"


def test_invalid_inventory_input_is_rejected(tmp_path):
    _, inventory, _ = _build_services(tmp_path, "invalid.db")

    with pytest.raises(InventoryValidationError):
        inventory.create_building("Annex", "staff")
    building = inventory.create_building("Annex", "female")
    with pytest.raises(InventoryValidationError):
        inventory.create_room(building.id, "A-1", [("A-1-A", "bunk")])
    with pytest.raises(ResourceNotFoundError):
        inventory.create_room("missing", "A-1", [])
    with pytest.raises(InventoryValidationError):
        inventory.create_event(_event_input(end_date=date(2030, 1, 9)))


def test_occupied_inventory_cannot_be_deleted(tmp_path):
    _, inventory, bookings = _build_services(tmp_path, "guards.db")
    event = inventory.create_event(_event_input())
    building, room, _ = _approved_guest(inventory, bookings, event.id)

    with pytest.raises(InventoryConflictError, match="Ravi"):
        inventory.delete_building(building.id)
    with pytest.raises(InventoryConflictError, match="Ravi"):
        inventory.delete_room(room.id)
    with pytest.raises(InventoryConflictError):
        inventory.delete_bed(room.beds[0].id)

    inventory.delete_bed(room.beds[1].id)
    assert [bed.id for bed in inventory.get_room(room.id).beds] == [room.beds[0].id]


def test_reopened_booking_releases_inventory_for_deletion(tmp_path):
    _, inventory, bookings = _build_services(tmp_path, "release.db")
    event = inventory.create_event(_event_input())
    building, room, booking = _approved_guest(inventory, bookings, event.id)
    bookings.change_status(booking.id, "pending")

    inventory.delete_building(building.id)

    with pytest.raises(ResourceNotFoundError):
        inventory.get_room(room.id)


def test_event_with_active_bookings_cannot_be_deleted(tmp_path):
    _, inventory, bookings = _build_services(tmp_path, "event_guard.db")
    event = inventory.create_event(_event_input())
    _, _, booking = _approved_guest(inventory, bookings, event.id)

    with pytest.raises(InventoryConflictError, match="Please delete after event"):
        inventory.delete_event(event.id)

    bookings.change_status(booking.id, "pending")
    bookings.change_status(booking.id, "declined")
    inventory.delete_event(event.id)

    assert inventory.list_events() == []
    with pytest.raises(ResourceNotFoundError):
        inventory.get_event(event.id)


def test_event_update_round_trips_dates(tmp_path):
    _, inventory, _ = _build_services(tmp_path, "event_update.db")
    event = inventory.create_event(_event_input())

    updated = inventory.update_event(event.id, _event_input(name="Spring Retreat", location=None))

    assert updated.name == "Spring Retreat"
    assert updated.start_date == date(2030, 1, 10)
    assert updated.location is None
    with pytest.raises(ResourceNotFoundError):
        inventory.update_event("missing", _event_input())


def test_building_gender_change_keeps_occupants_eligible(tmp_path):
    _, inventory, bookings = _build_services(tmp_path, "gender_change.db")
    event = inventory.create_event(_event_input())
    building, _, booking = _approved_guest(inventory, bookings, event.id)

    with pytest.raises(InventoryConflictError, match="Ravi"):
        inventory.update_building(building.id, "North Wing", "female")
    assert inventory.get_building(building.id).gender == "male"

    assert inventory.update_building(building.id, "North Wing", "unisex").gender == "unisex"
    bookings.change_status(booking.id, "pending")
    assert inventory.update_building(building.id, "North Wing", "female").gender == "female"
