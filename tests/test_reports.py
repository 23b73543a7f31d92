from __future__ import annotations

from dataclasses import replace
from datetime import date

from backend.repository.data_repository import DataRepository
from backend.services.booking_service import (
    AllocationInput,
    BookingForm,
    BookingService,
    PersonInput,
)
from backend.services.report_service import REPORT_COLUMNS, ReportService
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename)


def _seeded(tmp_path, filename: str) -> tuple[DataRepository, BookingService, ReportService]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    repository.seed_demo_inventory()
    return (
        repository,
        BookingService(repository=repository, settings=settings),
        ReportService(repository=repository, settings=settings),
    )


def _approve_guest(
    repository: DataRepository,
    bookings: BookingService,
    room_number: str,
    person: PersonInput,
    stay_from: date,
    stay_to: date,
    city: str,
):
    room = next(room for room in repository.list_rooms() if room.room_number == room_number)
    booking = bookings.submit_booking(
        BookingForm(
            event_id=repository.list_events()[0].id,
            user_id=f"user-{person.name.lower()}",
            stay_from=stay_from,
            stay_to=stay_to,
            people=[person],
            city=city,
        )
    )
    return bookings.change_status(
        booking.id,
        "approved",
        [AllocationInput(bed_id=room.beds[0].id, room_id=room.id, building_id=room.building_id)],
    )


def _with_two_guests(tmp_path, filename: str):
    repository, bookings, reports = _seeded(tmp_path, filename)
    ravi = _approve_guest(
        repository,
        bookings,
        "M-101",
        PersonInput(name="Ravi", age=40, gender="male"),
        date(2030, 1, 10),
        date(2030, 1, 15),
        "Pune",
    )
    meera = _approve_guest(
        repository,
        bookings,
        "W-101",
        PersonInput(name="Meera", age=35, gender="female"),
        date(2030, 1, 12),
        date(2030, 1, 14),
        "Nashik",
    )
    return repository, reports, ravi, meera


def test_demo_seed_creates_sixteen_beds(tmp_path):
    settings = _build_test_settings(tmp_path, "seed.db")
    repository = DataRepository(settings)
    repository.initialize_database()

    assert repository.seed_demo_inventory() == 16
    assert sum(len(room.beds) for room in repository.list_rooms()) == 16
    assert repository.seed_demo_inventory() == 0


def test_structure_shows_occupants_for_the_day(tmp_path):
    _, reports, ravi, _ = _with_two_guests(tmp_path, "structure.db")

    view = reports.structure(date(2030, 1, 13))

    assert (view["total_capacity"], view["total_occupancy"], view["total_vacancy"]) == (16, 2, 14)
    mens_hall = next(item for item in view["buildings"] if item["name"] == "Men's Hall")
    first_bed = mens_hall["rooms"][0]["beds"][0]
    assert first_bed["occupant"]["name"] == "Ravi"
    assert first_bed["occupant"]["booking_number"] == ravi.booking_number
    assert mens_hall["occupancy"] == 1


def test_structure_is_empty_outside_every_stay(tmp_path):
    _, reports, _, _ = _with_two_guests(tmp_path, "structure_empty.db")

    view = reports.structure(date(2030, 1, 16))

    assert view["total_occupancy"] == 0
    assert view["total_vacancy"] == view["total_capacity"]


def test_occupancy_frame_orders_by_arrival(tmp_path):
    _, reports, _, _ = _with_two_guests(tmp_path, "frame.db")

    frame = reports.occupancy_frame()

    assert list(frame.columns) == REPORT_COLUMNS
    assert frame["name"].tolist() == ["Ravi", "Meera"]
    assert frame.loc[0, "building"] == "Men's Hall"
    assert frame.loc[1, "city"] == "Nashik"


def test_occupancy_report_filters_by_event(tmp_path):
    repository, reports, _, _ = _with_two_guests(tmp_path, "by_event.db")
    event_id = repository.list_events()[0].id

    rows = reports.occupancy_report(event_id)

    assert [row["name"] for row in rows] == ["Ravi", "Meera"]
    assert rows[0]["stay_from"] == date(2030, 1, 10)
    assert reports.occupancy_report("another-event") == []


def test_csv_export_has_header_and_rows(tmp_path):
    _, reports, _, _ = _with_two_guests(tmp_path, "export.db")

    lines = reports.export_occupancy_csv().strip().splitlines()

    assert lines[0] == ",".join(REPORT_COLUMNS)
    assert len(lines) == 3
    assert "Ravi" in lines[1]


def test_building_summary_counts_capacity_and_occupancy(tmp_path):
    _, reports, _, _ = _with_two_guests(tmp_path, "summary.db")

    summary = {row["name"]: row for row in reports.building_summary()}
    later = {row["name"]: row for row in reports.building_summary(date(2030, 1, 15))}

    assert summary["Men's Hall"]["room_count"] == 2
    assert summary["Men's Hall"]["capacity"] == 6
    assert summary["Men's Hall"]["occupancy"] == 1
    assert summary["Family Block"]["vacancy"] == 4
    assert later["Women's Hall"]["occupancy"] == 0
    assert later["Men's Hall"]["occupancy"] == 1
