"""Availability queries backing the admin allocation form."""

from __future__ import annotations

from typing import Optional

from backend.domain.availability import (
    TentativeSelection,
    dates_overlap,
    eligible_buildings,
    get_available_beds,
    get_room_occupancy,
    iter_occupants,
    normalize_id,
)
from backend.domain.models import Bed, Booking, Building, Occupant, Room, RoomOccupancy, StayPeriod
from backend.repository.data_repository import DataRepository
from backend.services.booking_service import BookingNotFoundError, BookingValidationError
from backend.services.inventory_service import ResourceNotFoundError
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class AllocationService:
    """Runs the availability engine over a fresh snapshot per request."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def _booking(self, booking_id: str) -> Booking:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def _room(self, room_id: str) -> Room:
        room = self._repository.get_room(room_id)
        if room is None:
            raise ResourceNotFoundError(f"Room {room_id} not found")
        return room

    @staticmethod
    def _stay_for(booking: Booking, person_index: Optional[int]) -> StayPeriod:
        """A person's own stay when one is named, otherwise the whole booking's."""
        if person_index is None:
            stay = booking.stay_period
        elif not 0 <= person_index < len(booking.people):
            raise BookingValidationError(
                f"person_index {person_index} is out of range for booking {booking.id}"
            )
        else:
            stay = booking.stay_period_for(person_index)
        if stay is None:
            raise BookingValidationError(f"Booking {booking.id} has no valid stay period")
        return stay

    def available_beds(
        self,
        booking_id: str,
        room_id: str,
        person_index: Optional[int] = None,
        tentative_allocations: TentativeSelection = None,
    ) -> list[Bed]:
        booking = self._booking(booking_id)
        room = self._room(room_id)
        stay = self._stay_for(booking, person_index)
        beds = get_available_beds(
            room,
            self._repository.list_bookings(),
            booking.id,
            stay,
            tentative_allocations,
            person_index,
        )
        logger.debug(
            "Available beds computed | booking_id=%s | room_id=%s | available=%s/%s",
            booking_id,
            room_id,
            len(beds),
            len(room.beds),
        )
        return beds

    def room_occupancy(self, booking_id: str, room_id: str) -> RoomOccupancy:
        booking = self._booking(booking_id)
        room = self._room(room_id)
        return get_room_occupancy(
            room,
            self._repository.list_bookings(),
            booking.id,
            self._stay_for(booking, None),
        )

    def room_occupants(self, booking_id: str, room_id: str) -> list[Occupant]:
        """Everyone sleeping in the room at some point of the booking's stay."""
        booking = self._booking(booking_id)
        room = self._room(room_id)
        stay = self._stay_for(booking, None)
        bed_ids = {normalize_id(bed) for bed in room.beds}
        return [
            occupant
            for occupant in iter_occupants(self._repository.list_bookings())
            if normalize_id(occupant.bed_id) in bed_ids
            and dates_overlap(stay.stay_from, stay.stay_to, occupant.stay_from, occupant.stay_to)
        ]

    def eligible_buildings(self, booking_id: str, person_index: int) -> list[Building]:
        booking = self._booking(booking_id)
        if not 0 <= person_index < len(booking.people):
            raise BookingValidationError(
                f"person_index {person_index} is out of range for booking {booking.id}"
            )
        return eligible_buildings(self._repository.list_buildings(), booking.people[person_index])

