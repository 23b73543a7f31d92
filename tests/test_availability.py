"""Tests for the pure bed availability engine."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from backend.domain.availability import (
    dates_overlap,
    eligible_buildings,
    find_allocation_conflicts,
    get_available_beds,
    get_room_occupancy,
    is_fully_allocated,
    is_gender_eligible,
    normalize_id,
    occupancy_on_date,
)
from backend.domain.models import (
    APPROVED,
    DECLINED,
    PENDING,
    Allocation,
    Bed,
    Booking,
    Building,
    Person,
    Room,
    StayPeriod,
)


MENS_HALL = Building(id="bld-m", name="Men's Hall", gender="male")
WOMENS_HALL = Building(id="bld-w", name="Women's Hall", gender="female")
FAMILY_BLOCK = Building(id="bld-u", name="Family Block", gender="unisex")

ROOM_R = Room(
    id="room-r",
    room_number="R",
    building_id="bld-m",
    beds=(Bed(id="B1", name="B1"), Bed(id="B2", name="B2")),
)


def _stay(start: str, end: str) -> StayPeriod:
    return StayPeriod(date.fromisoformat(start), date.fromisoformat(end))


def _booking(
    booking_id: str,
    stay: StayPeriod,
    beds: tuple[str, ...] = (),
    status: str = APPROVED,
    people: tuple[Person, ...] | None = None,
) -> Booking:
    if people is None:
        people = tuple(Person(name=f"P{i}", age=30, gender="male") for i in range(max(len(beds), 1)))
    return Booking(
        id=booking_id,
        status=status,
        people=people,
        allocations=tuple(
            Allocation(person_index=i, building_id="bld-m", room_id="room-r", bed_id=bed_id)
            for i, bed_id in enumerate(beds)
        ),
        stay_period=stay,
    )


# --- dates_overlap ---


def test_overlap_is_inclusive_on_shared_boundary_day() -> None:
    assert dates_overlap("2024-01-10", "2024-01-15", "2024-01-15", "2024-01-20")


def test_overlap_false_for_adjacent_days() -> None:
    assert not dates_overlap("2024-01-10", "2024-01-15", "2024-01-16", "2024-01-20")


def test_overlap_is_symmetric() -> None:
    pairs = [
        ("2024-01-10", "2024-01-15", "2024-01-12", "2024-01-20"),
        ("2024-01-10", "2024-01-15", "2024-01-16", "2024-01-20"),
        ("2024-01-01", "2024-01-31", "2024-01-05", "2024-01-06"),
    ]
    for a_start, a_end, b_start, b_end in pairs:
        assert dates_overlap(a_start, a_end, b_start, b_end) == dates_overlap(
            b_start, b_end, a_start, a_end
        )


def test_overlap_is_reflexive_for_valid_ranges() -> None:
    assert dates_overlap(date(2024, 3, 1), date(2024, 3, 1), date(2024, 3, 1), date(2024, 3, 1))


def test_overlap_compares_calendar_days_not_times() -> None:
    assert dates_overlap(
        datetime(2024, 1, 15, 23, 0),
        datetime(2024, 1, 15, 23, 30),
        "2024-01-15T01:00:00",
        "2024-01-15T02:00:00",
    )


@pytest.mark.parametrize("bad", [None, "", "not-a-date", 42])
def test_overlap_false_for_unparseable_input(bad) -> None:
    assert not dates_overlap(bad, "2024-01-15", "2024-01-10", "2024-01-20")
    assert not dates_overlap("2024-01-10", "2024-01-15", "2024-01-10", bad)


# --- gender eligibility ---


def test_unisex_accepts_every_gender() -> None:
    for gender in ("male", "female", "boy", "girl"):
        assert is_gender_eligible(FAMILY_BLOCK, Person(name="x", age=20, gender=gender))


def test_adults_match_building_gender() -> None:
    assert is_gender_eligible(MENS_HALL, Person(name="a", age=30, gender="male"))
    assert not is_gender_eligible(MENS_HALL, Person(name="b", age=30, gender="female"))
    assert is_gender_eligible(WOMENS_HALL, "Female")
    assert not is_gender_eligible(WOMENS_HALL, "male")


def test_girl_in_mens_hall_is_eligible_regardless_of_age() -> None:
    # Re-classifying children over the age limit happens when the form is validated.
    assert is_gender_eligible(MENS_HALL, Person(name="Asha", age=10, gender="girl"))
    assert is_gender_eligible(MENS_HALL, Person(name="Asha", age=17, gender="girl"))


def test_missing_or_unknown_building_is_ineligible() -> None:
    assert not is_gender_eligible(None, "male")
    assert not is_gender_eligible(Building(id="x", name="Odd", gender="staff"), "male")


def test_eligible_buildings_filters_in_order() -> None:
    buildings = [MENS_HALL, WOMENS_HALL, FAMILY_BLOCK]
    result = eligible_buildings(buildings, Person(name="w", age=40, gender="female"))
    assert [building.id for building in result] == ["bld-w", "bld-u"]


# --- available beds ---


def test_overlapping_booking_holds_its_bed() -> None:
    booking_x = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))
    stay_y = _stay("2024-01-12", "2024-01-20")

    available = get_available_beds(ROOM_R, [booking_x], None, stay_y, {}, 0)

    assert [bed.id for bed in available] == ["B2"]


def test_non_overlapping_booking_frees_its_bed() -> None:
    booking_x = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))
    stay_y = _stay("2024-01-16", "2024-01-20")

    available = get_available_beds(ROOM_R, [booking_x], None, stay_y, {}, 0)

    assert [bed.id for bed in available] == ["B1", "B2"]


def test_tentative_pick_of_another_person_hides_bed() -> None:
    room = Room(
        id="room-3",
        room_number="3",
        building_id="bld-m",
        beds=(Bed(id="B3", name="B3"), Bed(id="B4", name="B4")),
    )
    stay = _stay("2024-02-01", "2024-02-03")

    available = get_available_beds(room, [], "Y", stay, {0: "B3", 1: "B3"}, 1)

    assert [bed.id for bed in available] == ["B4"]


def test_own_tentative_pick_stays_available() -> None:
    stay = _stay("2024-02-01", "2024-02-03")
    available = get_available_beds(ROOM_R, [], "Y", stay, [{"bed_id": "B1"}], 0)
    assert [bed.id for bed in available] == ["B1", "B2"]


@pytest.mark.parametrize("selection", ["B1", b"B1", " B1 "])
def test_lone_bed_id_selection_is_not_split_into_characters(selection) -> None:
    stay = _stay("2024-02-01", "2024-02-03")
    room = Room(
        id="room-c",
        room_number="C",
        building_id="bld-m",
        beds=(Bed(id="B", name="B"), Bed(id="1", name="1"), Bed(id="B1", name="B1")),
    )

    available = get_available_beds(room, [], "Y", stay, selection, 0)

    assert [bed.id for bed in available] == ["B", "1"]


def test_booking_does_not_conflict_with_itself() -> None:
    booking = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))

    available = get_available_beds(ROOM_R, [booking], "X", booking.stay_period, {}, 0)

    assert [bed.id for bed in available] == ["B1", "B2"]


def test_saved_allocations_stand_in_for_missing_form_selection() -> None:
    booking = _booking(
        "X",
        _stay("2024-01-10", "2024-01-15"),
        beds=("B1", "B2"),
    )

    available = get_available_beds(ROOM_R, [booking], "X", booking.stay_period, None, 1)

    assert [bed.id for bed in available] == ["B2"]


def test_declined_bookings_hold_no_beds() -> None:
    declined = _booking("D", _stay("2024-01-10", "2024-01-15"), beds=("B1",), status=DECLINED)
    available = get_available_beds(ROOM_R, [declined], None, _stay("2024-01-10", "2024-01-15"))
    assert len(available) == 2


def test_pending_allocations_still_count_as_occupied() -> None:
    pending = _booking("P", _stay("2024-01-10", "2024-01-15"), beds=("B2",), status=PENDING)
    available = get_available_beds(ROOM_R, [pending], None, _stay("2024-01-14", "2024-01-14"))
    assert [bed.id for bed in available] == ["B1"]


def test_missing_room_has_no_available_beds() -> None:
    assert get_available_beds(None, [], None, _stay("2024-01-10", "2024-01-15")) == []


# --- room occupancy ---


def test_room_occupancy_counts_overlapping_occupants() -> None:
    booking_x = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))

    occupancy = get_room_occupancy(ROOM_R, [booking_x], None, _stay("2024-01-12", "2024-01-13"))

    assert (occupancy.capacity, occupancy.occupied, occupancy.vacant) == (2, 1, 1)


def test_vacancy_is_never_negative() -> None:
    crowded = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1", "B2"))
    double = _booking("Z", _stay("2024-01-10", "2024-01-15"), beds=("B1", "B2"))

    occupancy = get_room_occupancy(ROOM_R, [crowded, double], None, _stay("2024-01-11", "2024-01-11"))

    assert occupancy.occupied == 4
    assert occupancy.vacant == 0


def test_room_without_beds_is_empty() -> None:
    empty_room = Room(id="empty", room_number="0", building_id="bld-m", beds=())
    occupancy = get_room_occupancy(empty_room, [], None, _stay("2024-01-10", "2024-01-15"))
    assert (occupancy.capacity, occupancy.occupied, occupancy.vacant) == (0, 0, 0)
    assert get_available_beds(empty_room, [], None, _stay("2024-01-10", "2024-01-15")) == []


# --- full allocation ---


def test_fully_allocated_requires_a_bed_for_every_person() -> None:
    stay = _stay("2024-01-10", "2024-01-15")
    people = (Person(name="a", age=30, gender="male"), Person(name="b", age=30, gender="male"))

    assert is_fully_allocated(_booking("X", stay, beds=("B1", "B2"), people=people))
    assert not is_fully_allocated(_booking("X", stay, beds=("B1",), people=people))

    missing_bed = Booking(
        id="X",
        status=PENDING,
        people=people,
        allocations=(
            Allocation(0, None, None, "B1"),
            Allocation(1, None, None, None),
        ),
        stay_period=stay,
    )
    assert not is_fully_allocated(missing_bed)


def test_booking_without_people_is_not_fully_allocated() -> None:
    assert not is_fully_allocated(Booking(id="X", status=PENDING))
    assert not is_fully_allocated(None)


# --- identity and day view ---


def test_normalize_id_accepts_strings_entities_and_documents() -> None:
    assert normalize_id(" B1 ") == "B1"
    assert normalize_id(Bed(id="B1", name="x")) == "B1"
    assert normalize_id({"_id": "B1"}) == "B1"
    assert normalize_id({"id": 7}) == "7"
    assert normalize_id("") is None
    assert normalize_id(None) is None


def test_occupancy_on_date_uses_single_day_period() -> None:
    booking = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))

    assert "B1" in occupancy_on_date([booking], "2024-01-15")
    assert occupancy_on_date([booking], date(2024, 1, 16)) == {}
    assert occupancy_on_date([booking], "garbage") == {}


# --- write-time conflict check ---


def test_conflict_check_reports_taken_bed_and_wrong_building() -> None:
    holder = _booking("X", _stay("2024-01-10", "2024-01-15"), beds=("B1",))
    request = Booking(
        id="Y",
        status=PENDING,
        people=(
            Person(name="Ravi", age=30, gender="male"),
            Person(name="Meera", age=28, gender="female"),
        ),
        stay_period=_stay("2024-01-14", "2024-01-18"),
    )
    proposed = [
        Allocation(0, "bld-m", "room-r", "B1"),
        Allocation(1, "bld-m", "room-r", "B2"),
    ]

    conflicts = find_allocation_conflicts(request, proposed, [ROOM_R], [MENS_HALL], [holder])

    reasons = {conflict.person_index: conflict.reason for conflict in conflicts}
    assert "occupied by booking X" in reasons[0]
    assert reasons[1] == "building does not accept this gender"


def test_conflict_check_rejects_duplicate_bed_within_booking() -> None:
    request = _booking(
        "Y",
        _stay("2024-01-14", "2024-01-18"),
        people=(Person(name="a", age=30, gender="male"), Person(name="b", age=30, gender="male")),
    )
    proposed = [Allocation(0, None, None, "B1"), Allocation(1, None, None, "B1")]

    conflicts = find_allocation_conflicts(request, proposed, [ROOM_R], [MENS_HALL], [])

    assert [(c.person_index, c.reason) for c in conflicts] == [
        (1, "bed already selected for person 0")
    ]
