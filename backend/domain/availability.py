"""Bed availability engine.

Pure functions over in-memory snapshots of rooms, buildings and bookings.
Nothing here performs I/O or raises on malformed input: unparseable dates
never overlap, unknown references are ineligible, and vacancy is clamped
at zero. Callers must reject a missing stay period before asking.

Overlap is evaluated on calendar days with inclusive bounds, so a stay
ending on the 15th conflicts with one starting on the 15th. "Occupied on
day X" is the same test with the single-day period ``(X, X)``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime
from typing import Any, Optional, Union

from backend.domain.models import (
    BUILDING_GENDERS,
    CHILD_GENDERS,
    DECLINED,
    Allocation,
    AllocationConflict,
    Bed,
    Booking,
    Building,
    Occupant,
    Person,
    Room,
    RoomOccupancy,
    StayPeriod,
)


DateLike = Union[date, datetime, str, None]
TentativeSelection = Union[Mapping[Any, Any], Sequence[Any], None]


def normalize_id(value: Any) -> Optional[str]:
    """Collapse ids given as strings, entities or raw documents to one string form."""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, Mapping):
        return normalize_id(value.get("_id", value.get("id")))
    if hasattr(value, "id"):
        return normalize_id(value.id)
    return normalize_id(str(value))


def normalize_gender(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def to_date(value: DateLike) -> Optional[date]:
    """Parse a date-like value to a calendar day, or ``None`` if impossible."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            return None
    return None


def dates_overlap(
    start_a: DateLike,
    end_a: DateLike,
    start_b: DateLike,
    end_b: DateLike,
) -> bool:
    a_start, a_end = to_date(start_a), to_date(end_a)
    b_start, b_end = to_date(start_b), to_date(end_b)
    if a_start is None or a_end is None or b_start is None or b_end is None:
        return False
    return a_start <= b_end and a_end >= b_start


def _period_bounds(stay_period: Optional[StayPeriod]) -> tuple[Optional[date], Optional[date]]:
    if stay_period is None:
        return None, None
    return stay_period.stay_from, stay_period.stay_to


def is_gender_eligible(building: Optional[Building], person: Union[Person, str, None]) -> bool:
    """Whether a building's gender category may house the given person.

    Boys and girls accompany adults and may be placed in any building; the
    rule that children older than the age limit must be re-classified is
    enforced when the booking form is validated, not here.
    """
    if building is None:
        return False
    building_gender = normalize_gender(getattr(building, "gender", None))
    if building_gender == "unisex":
        return True
    if building_gender not in BUILDING_GENDERS:
        return False

    raw_gender = person if isinstance(person, str) else getattr(person, "gender", None)
    person_gender = normalize_gender(raw_gender)
    if person_gender in CHILD_GENDERS:
        return True
    return person_gender == building_gender


def eligible_buildings(
    buildings: Iterable[Building],
    person: Union[Person, str, None],
) -> list[Building]:
    return [building for building in buildings or () if is_gender_eligible(building, person)]


def iter_occupants(bookings: Iterable[Union[Booking, Occupant]]) -> Iterable[Occupant]:
    """Flatten bookings into one occupant per allocated bed.

    Declined bookings hold no beds. Pre-flattened occupants pass through.
    """
    for item in bookings or ():
        if isinstance(item, Occupant):
            if normalize_id(item.bed_id) is not None:
                yield item
            continue
        if not isinstance(item, Booking) or item.status == DECLINED:
            continue
        booking_id = normalize_id(item.id)
        for position, allocation in enumerate(item.allocations or ()):
            bed_id = normalize_id(getattr(allocation, "bed_id", None))
            if bed_id is None or booking_id is None:
                continue
            person_index = _coerce_index(getattr(allocation, "person_index", None), position)
            stay_from, stay_to = _period_bounds(item.stay_period_for(person_index))
            person = item.people[person_index] if 0 <= person_index < len(item.people) else None
            yield Occupant(
                booking_id=booking_id,
                bed_id=bed_id,
                stay_from=stay_from,
                stay_to=stay_to,
                person_index=person_index,
                name=person.name if person else None,
                gender=person.gender if person else None,
            )


def _coerce_index(value: Any, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _room_bed_ids(room: Optional[Room]) -> set[str]:
    if room is None:
        return set()
    return {bed_id for bed_id in (normalize_id(bed) for bed in room.beds or ()) if bed_id}


def _overlapping_occupants(
    bookings: Iterable[Union[Booking, Occupant]],
    exclude_booking_id: Any,
    stay_period: Optional[StayPeriod],
) -> Iterable[Occupant]:
    excluded = normalize_id(exclude_booking_id)
    stay_from, stay_to = _period_bounds(stay_period)
    for occupant in iter_occupants(bookings):
        if excluded is not None and normalize_id(occupant.booking_id) == excluded:
            continue
        if dates_overlap(stay_from, stay_to, occupant.stay_from, occupant.stay_to):
            yield occupant


def get_room_occupancy(
    room: Optional[Room],
    bookings: Iterable[Union[Booking, Occupant]],
    exclude_booking_id: Any,
    stay_period: Optional[StayPeriod],
) -> RoomOccupancy:
    bed_ids = _room_bed_ids(room)
    capacity = len(room.beds or ()) if room is not None else 0
    occupied = sum(
        1
        for occupant in _overlapping_occupants(bookings, exclude_booking_id, stay_period)
        if normalize_id(occupant.bed_id) in bed_ids
    )
    return RoomOccupancy(
        capacity=capacity,
        occupied=occupied,
        vacant=max(capacity - occupied, 0),
    )


def _selection_bed_id(value: Any) -> Optional[str]:
    if isinstance(value, Allocation):
        return normalize_id(value.bed_id)
    if isinstance(value, Mapping):
        return normalize_id(value.get("bed_id", value.get("bedId")))
    return normalize_id(value)


def _tentative_bed_ids(selection: TentativeSelection, exclude_person_index: Optional[int]) -> set[str]:
    if selection is None:
        return set()
    if isinstance(selection, Mapping):
        pairs = selection.items()
    elif isinstance(selection, (str, bytes)):
        # A lone bed id, not attributed to any person.
        pairs = [(None, selection.decode() if isinstance(selection, bytes) else selection)]
    else:
        pairs = enumerate(selection)

    bed_ids: set[str] = set()
    for key, value in pairs:
        index = _coerce_index(key, -1)
        if exclude_person_index is not None and index == exclude_person_index:
            continue
        bed_id = _selection_bed_id(value)
        if bed_id:
            bed_ids.add(bed_id)
    return bed_ids


def _saved_selection(
    bookings: Iterable[Union[Booking, Occupant]],
    booking_id: Any,
) -> dict[int, Allocation]:
    wanted = normalize_id(booking_id)
    if wanted is None:
        return {}
    for item in bookings or ():
        if isinstance(item, Booking) and normalize_id(item.id) == wanted:
            return {
                _coerce_index(allocation.person_index, position): allocation
                for position, allocation in enumerate(item.allocations or ())
            }
    return {}


def get_available_beds(
    room: Optional[Room],
    bookings: Iterable[Union[Booking, Occupant]],
    exclude_booking_id: Any,
    stay_period: Optional[StayPeriod],
    tentative_allocations: TentativeSelection = None,
    exclude_person_index: Optional[int] = None,
) -> list[Bed]:
    """Beds in ``room`` free for ``stay_period``, in room order.

    Two layers are removed: beds held by other bookings with an overlapping
    stay, and beds picked in the same booking's form for other people. When
    no form selection is given, the booking's saved allocations stand in.
    """
    if room is None:
        return []
    snapshot = list(bookings or ())

    globally_occupied = {
        normalize_id(occupant.bed_id)
        for occupant in _overlapping_occupants(snapshot, exclude_booking_id, stay_period)
    }
    if tentative_allocations is None:
        tentative_allocations = _saved_selection(snapshot, exclude_booking_id)
    tentatively_occupied = _tentative_bed_ids(tentative_allocations, exclude_person_index)

    available: list[Bed] = []
    for bed in room.beds or ():
        bed_id = normalize_id(bed)
        if bed_id is None:
            continue
        if bed_id in globally_occupied or bed_id in tentatively_occupied:
            continue
        available.append(bed)
    return available


def is_fully_allocated(booking: Optional[Booking]) -> bool:
    if booking is None:
        return False
    people = booking.people or ()
    allocations = booking.allocations or ()
    if not people or len(allocations) != len(people):
        return False

    allocated_indexes = {
        _coerce_index(allocation.person_index, position)
        for position, allocation in enumerate(allocations)
        if normalize_id(allocation.bed_id)
    }
    return all(index in allocated_indexes for index in range(len(people)))


def occupancy_on_date(
    bookings: Iterable[Union[Booking, Occupant]],
    on_date: DateLike,
) -> dict[str, Occupant]:
    """Map bed id to the occupant sleeping there on ``on_date``."""
    day = to_date(on_date)
    occupied: dict[str, Occupant] = {}
    if day is None:
        return occupied
    for occupant in iter_occupants(bookings):
        if dates_overlap(day, day, occupant.stay_from, occupant.stay_to):
            occupied.setdefault(normalize_id(occupant.bed_id), occupant)
    return occupied


def find_allocation_conflicts(
    booking: Booking,
    allocations: Sequence[Allocation],
    rooms: Iterable[Room],
    buildings: Iterable[Building],
    bookings: Iterable[Union[Booking, Occupant]],
) -> list[AllocationConflict]:
    """Check proposed allocations for ``booking`` against a fresh snapshot."""
    rooms_by_id = {normalize_id(room): room for room in rooms or ()}
    buildings_by_id = {normalize_id(building): building for building in buildings or ()}
    bed_lookup: dict[str, Room] = {}
    for room in rooms_by_id.values():
        for bed in room.beds or ():
            bed_lookup[normalize_id(bed)] = room

    others = [
        occupant
        for occupant in iter_occupants(bookings)
        if normalize_id(occupant.booking_id) != normalize_id(booking.id)
    ]

    conflicts: list[AllocationConflict] = []
    claimed: dict[str, int] = {}
    for position, allocation in enumerate(allocations):
        person_index = _coerce_index(allocation.person_index, position)
        bed_id = normalize_id(allocation.bed_id)
        if bed_id is None:
            conflicts.append(AllocationConflict(person_index, None, "no bed selected"))
            continue

        room = bed_lookup.get(bed_id)
        if room is None:
            conflicts.append(AllocationConflict(person_index, bed_id, "bed does not exist"))
            continue
        requested_room = normalize_id(allocation.room_id)
        if requested_room is not None and requested_room != normalize_id(room):
            conflicts.append(
                AllocationConflict(person_index, bed_id, "bed is not in the selected room")
            )
            continue

        building = buildings_by_id.get(normalize_id(room.building_id))
        requested_building = normalize_id(allocation.building_id)
        if requested_building is not None and requested_building != normalize_id(building):
            conflicts.append(
                AllocationConflict(person_index, bed_id, "room is not in the selected building")
            )
            continue

        person = booking.people[person_index] if 0 <= person_index < len(booking.people) else None
        if not is_gender_eligible(building, person):
            conflicts.append(
                AllocationConflict(person_index, bed_id, "building does not accept this gender")
            )
            continue

        if bed_id in claimed:
            conflicts.append(
                AllocationConflict(
                    person_index,
                    bed_id,
                    f"bed already selected for person {claimed[bed_id]}",
                )
            )
            continue
        claimed[bed_id] = person_index

        stay_from, stay_to = _period_bounds(booking.stay_period_for(person_index))
        holder = next(
            (
                occupant
                for occupant in others
                if normalize_id(occupant.bed_id) == bed_id
                and dates_overlap(stay_from, stay_to, occupant.stay_from, occupant.stay_to)
            ),
            None,
        )
        if holder is not None:
            conflicts.append(
                AllocationConflict(
                    person_index,
                    bed_id,
                    f"bed is occupied by booking {holder.booking_id} for an overlapping stay",
                )
            )
    return conflicts
