"""Occupancy reporting: live structure view, summaries and CSV export."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

import pandas as pd

from backend.domain.availability import iter_occupants, normalize_id, occupancy_on_date
from backend.domain.models import Booking, Building, Room
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

REPORT_COLUMNS = [
    "booking_number",
    "name",
    "age",
    "gender",
    "building",
    "room",
    "bed",
    "stay_from",
    "stay_to",
    "city",
    "contact_number",
    "status",
]


class ReportService:
    """Read-only projections over the inventory and allocation snapshot."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def _snapshot(self) -> tuple[list[Building], list[Room], list[Booking]]:
        return (
            self._repository.list_buildings(),
            self._repository.list_rooms(),
            self._repository.list_bookings(),
        )

    def structure(self, on_date: date) -> dict[str, Any]:
        """Buildings -> rooms -> beds with whoever sleeps there on ``on_date``."""
        buildings, rooms, bookings = self._snapshot()
        occupied = occupancy_on_date(bookings, on_date)
        booking_numbers = {booking.id: booking.booking_number for booking in bookings}

        rooms_by_building: dict[str, list[Room]] = {}
        for room in rooms:
            rooms_by_building.setdefault(normalize_id(room.building_id), []).append(room)

        building_payloads = []
        for building in buildings:
            room_payloads = []
            for room in rooms_by_building.get(building.id, []):
                bed_payloads = []
                for bed in room.beds:
                    occupant = occupied.get(normalize_id(bed))
                    bed_payloads.append(
                        {
                            "bed_id": bed.id,
                            "name": bed.name,
                            "type": bed.type,
                            "occupant": None
                            if occupant is None
                            else {
                                "name": occupant.name,
                                "gender": occupant.gender,
                                "booking_number": booking_numbers.get(occupant.booking_id),
                                "stay_from": occupant.stay_from,
                                "stay_to": occupant.stay_to,
                            },
                        }
                    )
                room_payloads.append(
                    {
                        "room_id": room.id,
                        "room_number": room.room_number,
                        "capacity": len(room.beds),
                        "occupancy": sum(1 for bed in bed_payloads if bed["occupant"]),
                        "beds": bed_payloads,
                    }
                )
            building_payloads.append(
                {
                    "building_id": building.id,
                    "name": building.name,
                    "gender": building.gender,
                    "capacity": sum(room["capacity"] for room in room_payloads),
                    "occupancy": sum(room["occupancy"] for room in room_payloads),
                    "rooms": room_payloads,
                }
            )

        total_capacity = sum(building["capacity"] for building in building_payloads)
        total_occupancy = sum(building["occupancy"] for building in building_payloads)
        return {
            "on_date": on_date,
            "total_capacity": total_capacity,
            "total_occupancy": total_occupancy,
            "total_vacancy": max(total_capacity - total_occupancy, 0),
            "buildings": building_payloads,
        }

    def occupancy_frame(self, event_id: Optional[str] = None) -> pd.DataFrame:
        """One row per allocated person, ordered by arrival then name."""
        buildings, rooms, bookings = self._snapshot()
        if event_id is not None:
            bookings = [booking for booking in bookings if booking.event_id == event_id]

        building_names = {building.id: building.name for building in buildings}
        bed_locations: dict[str, tuple[str, str, str]] = {}
        for room in rooms:
            for bed in room.beds:
                bed_locations[bed.id] = (
                    building_names.get(room.building_id, ""),
                    room.room_number,
                    bed.name,
                )
        bookings_by_id = {booking.id: booking for booking in bookings}

        records = []
        for occupant in iter_occupants(bookings):
            booking = bookings_by_id[occupant.booking_id]
            person = (
                booking.people[occupant.person_index]
                if 0 <= occupant.person_index < len(booking.people)
                else None
            )
            building_name, room_number, bed_name = bed_locations.get(occupant.bed_id, ("", "", ""))
            records.append(
                {
                    "booking_number": booking.booking_number,
                    "name": occupant.name,
                    "age": person.age if person else None,
                    "gender": occupant.gender,
                    "building": building_name,
                    "room": room_number,
                    "bed": bed_name,
                    "stay_from": occupant.stay_from,
                    "stay_to": occupant.stay_to,
                    "city": booking.city,
                    "contact_number": booking.contact_number,
                    "status": booking.status,
                }
            )

        frame = pd.DataFrame.from_records(records, columns=REPORT_COLUMNS)
        if frame.empty:
            return frame
        return frame.sort_values(["stay_from", "name"], kind="stable").reset_index(drop=True)

    def occupancy_report(self, event_id: Optional[str] = None) -> list[dict[str, Any]]:
        frame = self.occupancy_frame(event_id)
        frame = frame.astype(object).where(frame.notna(), None)
        return frame.to_dict(orient="records")

    def export_occupancy_csv(self, event_id: Optional[str] = None) -> str:
        frame = self.occupancy_frame(event_id)
        logger.info("Occupancy export generated | rows=%s | event_id=%s", len(frame), event_id)
        return frame.to_csv(index=False)

    def building_summary(self, on_date: Optional[date] = None) -> list[dict[str, Any]]:
        """Capacity and occupancy per building, optionally for a single day."""
        buildings, rooms, bookings = self._snapshot()
        if on_date is not None:
            occupied_beds = set(occupancy_on_date(bookings, on_date))
        else:
            occupied_beds = {normalize_id(occupant.bed_id) for occupant in iter_occupants(bookings)}

        beds = pd.DataFrame.from_records(
            [
                {
                    "building_id": room.building_id,
                    "room_id": room.id,
                    "occupied": bed.id in occupied_beds,
                }
                for room in rooms
                for bed in room.beds
            ],
            columns=["building_id", "room_id", "occupied"],
        )
        grouped = beds.groupby("building_id").agg(
            capacity=("room_id", "size"),
            occupancy=("occupied", "sum"),
        )
        room_counts = pd.Series(
            [room.building_id for room in rooms], dtype=object
        ).value_counts()

        summary = []
        for building in buildings:
            capacity = int(grouped["capacity"].get(building.id, 0))
            occupancy = int(grouped["occupancy"].get(building.id, 0))
            summary.append(
                {
                    "building_id": building.id,
                    "name": building.name,
                    "gender": building.gender,
                    "room_count": int(room_counts.get(building.id, 0)),
                    "capacity": capacity,
                    "occupancy": occupancy,
                    "vacancy": max(capacity - occupancy, 0),
                }
            )
        return summary
