"""Business logic for events and the building/room/bed inventory."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, Sequence

from backend.domain.availability import is_gender_eligible, iter_occupants, normalize_id
from backend.domain.constraints import (
    validate_bed_type,
    validate_building_gender,
    validate_event_dates,
)
from backend.domain.models import Bed, Building, Event, Room
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class InventoryError(Exception):
    """Base exception for inventory operations."""


class InventoryValidationError(InventoryError):
    """Raised when inventory input is invalid."""


class ResourceNotFoundError(InventoryError):
    """Raised when an event, building, room or bed does not exist."""


class InventoryConflictError(InventoryError):
    """Raised when a change would orphan allocated guests or active bookings."""


@dataclass(frozen=True)
class EventInput:
    name: str
    description: str
    start_date: date
    end_date: date
    booking_start_date: date
    booking_end_date: date
    location: Optional[str] = None


def _require_text(value: str, field_name: str) -> str:
    if value is None or not str(value).strip():
        raise InventoryValidationError(f"{field_name} is required")
    return str(value).strip()


class InventoryService:
    """CRUD over events and accommodation inventory with occupancy guards."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    # --- events ---

    def _validated_event(self, payload: EventInput) -> dict:
        try:
            validate_event_dates(
                payload.start_date,
                payload.end_date,
                payload.booking_start_date,
                payload.booking_end_date,
            )
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        return {
            "name": _require_text(payload.name, "name"),
            "description": _require_text(payload.description, "description"),
            "start_date": payload.start_date,
            "end_date": payload.end_date,
            "booking_start_date": payload.booking_start_date,
            "booking_end_date": payload.booking_end_date,
            "location": payload.location,
        }

    def create_event(self, payload: EventInput) -> Event:
        event = self._repository.create_event(**self._validated_event(payload))
        logger.info("Event created | event_id=%s | name=%s", event.id, event.name)
        return event

    def list_events(self) -> list[Event]:
        return self._repository.list_events()

    def get_event(self, event_id: str) -> Event:
        event = self._repository.get_event(event_id)
        if event is None:
            raise ResourceNotFoundError(f"Event {event_id} not found")
        return event

    def update_event(self, event_id: str, payload: EventInput) -> Event:
        event = self._repository.update_event(event_id, **self._validated_event(payload))
        if event is None:
            raise ResourceNotFoundError(f"Event {event_id} not found")
        return event

    def delete_event(self, event_id: str) -> None:
        self.get_event(event_id)
        if self._repository.count_active_bookings_for_event(event_id) > 0:
            raise InventoryConflictError(
                "Bookings are assigned to this event. Please delete after event."
            )
        self._repository.delete_bookings_for_event(event_id)
        self._repository.delete_event(event_id)
        logger.info("Event deleted | event_id=%s", event_id)

    # --- buildings ---

    def create_building(self, name: str, gender: str) -> Building:
        try:
            normalized_gender = validate_building_gender(gender)
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        building = self._repository.create_building(_require_text(name, "name"), normalized_gender)
        logger.info("Building created | building_id=%s | gender=%s", building.id, building.gender)
        return building

    def list_buildings(self) -> list[Building]:
        return self._repository.list_buildings()

    def get_building(self, building_id: str) -> Building:
        building = self._repository.get_building(building_id)
        if building is None:
            raise ResourceNotFoundError(f"Building {building_id} not found")
        return building

    def _ineligible_occupant(self, building: Building, gender: str) -> Optional[str]:
        """Name of a current occupant the building could not house as ``gender``."""
        bed_ids = {
            normalize_id(bed)
            for room in self._repository.list_rooms(building_id=building.id)
            for bed in room.beds
        }
        candidate = replace(building, gender=gender)
        for occupant in iter_occupants(self._repository.list_bookings()):
            if normalize_id(occupant.bed_id) in bed_ids and not is_gender_eligible(
                candidate, occupant.gender
            ):
                return occupant.name or occupant.booking_id
        return None

    def update_building(self, building_id: str, name: str, gender: str) -> Building:
        try:
            normalized_gender = validate_building_gender(gender)
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        current = self.get_building(building_id)
        if normalized_gender != current.gender:
            occupant = self._ineligible_occupant(current, normalized_gender)
            if occupant is not None:
                raise InventoryConflictError(
                    f"Cannot change building to {normalized_gender}. {occupant} is allocated there."
                )
        building = self._repository.update_building(
            building_id,
            _require_text(name, "name"),
            normalized_gender,
        )
        if building is None:
            raise ResourceNotFoundError(f"Building {building_id} not found")
        return building

    def delete_building(self, building_id: str) -> None:
        self.get_building(building_id)
        bed_ids = [
            bed.id
            for room in self._repository.list_rooms(building_id=building_id)
            for bed in room.beds
        ]
        occupant = self._repository.find_occupant_name(bed_ids)
        if occupant is not None:
            raise InventoryConflictError(
                f"Cannot delete building. It has occupants, including {occupant}."
            )
        self._repository.delete_building(building_id)
        logger.info("Building deleted | building_id=%s | beds_removed=%s", building_id, len(bed_ids))

    # --- rooms ---

    def create_room(
        self,
        building_id: str,
        room_number: str,
        beds: Sequence[tuple[str, str]],
    ) -> Room:
        self.get_building(building_id)
        try:
            validated_beds = [
                (_require_text(bed_name, "bed name"), validate_bed_type(bed_type))
                for bed_name, bed_type in beds
            ]
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        room = self._repository.create_room(
            building_id,
            _require_text(room_number, "room_number"),
            validated_beds,
        )
        logger.info("Room created | room_id=%s | beds=%s", room.id, len(room.beds))
        return room

    def list_rooms(self, building_id: Optional[str] = None) -> list[Room]:
        return self._repository.list_rooms(building_id=building_id)

    def get_room(self, room_id: str) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise ResourceNotFoundError(f"Room {room_id} not found")
        return room

    def update_room(self, room_id: str, room_number: str) -> Room:
        room = self._repository.update_room(room_id, _require_text(room_number, "room_number"))
        if room is None:
            raise ResourceNotFoundError(f"Room {room_id} not found")
        return room

    def delete_room(self, room_id: str) -> None:
        room = self.get_room(room_id)
        occupant = self._repository.find_occupant_name(bed.id for bed in room.beds)
        if occupant is not None:
            raise InventoryConflictError(
                "This room cannot be deleted as it has occupants. "
                f"Please re-allocate people like {occupant} first."
            )
        self._repository.delete_room(room_id)
        logger.info("Room deleted | room_id=%s", room_id)

    # --- beds ---

    def create_bed(self, room_id: str, name: str, bed_type: str = "single") -> Bed:
        self.get_room(room_id)
        try:
            normalized_type = validate_bed_type(bed_type)
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        return self._repository.create_bed(room_id, _require_text(name, "name"), normalized_type)

    def get_bed(self, bed_id: str) -> Bed:
        bed = self._repository.get_bed(bed_id)
        if bed is None:
            raise ResourceNotFoundError(f"Bed {bed_id} not found")
        return bed

    def update_bed(self, bed_id: str, name: str, bed_type: str) -> Bed:
        try:
            normalized_type = validate_bed_type(bed_type)
        except ValueError as exc:
            raise InventoryValidationError(str(exc)) from exc
        bed = self._repository.update_bed(bed_id, _require_text(name, "name"), normalized_type)
        if bed is None:
            raise ResourceNotFoundError(f"Bed {bed_id} not found")
        return bed

    def delete_bed(self, bed_id: str) -> None:
        self.get_bed(bed_id)
        if self._repository.find_occupant_name([bed_id]) is not None:
            raise InventoryConflictError(
                "This bed cannot be deleted as it is part of an active booking."
            )
        self._repository.delete_bed(bed_id)
        logger.info("Bed deleted | bed_id=%s", bed_id)
