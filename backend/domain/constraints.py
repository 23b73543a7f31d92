"""Domain-level validation rules for bookings, people, inventory and comments."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Optional

from backend.domain.models import (
    APPROVED,
    BED_TYPES,
    BOOKING_STATUSES,
    BUILDING_GENDERS,
    CHILD_GENDERS,
    COMMENT_STATUSES,
    DECLINED,
    PENDING,
    PERSON_GENDERS,
    REJECTED,
    Person,
)


ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({APPROVED, DECLINED}),
    APPROVED: frozenset({PENDING}),
    DECLINED: frozenset({PENDING}),
}

# Transitions into these states drop any bed allocations held by the booking.
CLEARS_ALLOCATIONS = frozenset({PENDING, DECLINED})

COMMENT_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({APPROVED, REJECTED}),
    APPROVED: frozenset({PENDING}),
    REJECTED: frozenset({PENDING}),
}


class InvalidStatusTransitionError(ValueError):
    """Raised when a booking or comment status change is not permitted."""


def validate_status_transition(current: str, target: str) -> None:
    if target not in BOOKING_STATUSES:
        raise InvalidStatusTransitionError(f"Unknown booking status: {target!r}")
    allowed = ALLOWED_TRANSITIONS.get(current, frozenset())
    if target not in allowed:
        raise InvalidStatusTransitionError(
            f"Booking cannot move from {current} to {target}"
        )


def validate_comment_transition(current: str, target: str) -> None:
    if target not in COMMENT_STATUSES:
        raise InvalidStatusTransitionError(f"Unknown comment status: {target!r}")
    if target not in COMMENT_TRANSITIONS.get(current, frozenset()):
        raise InvalidStatusTransitionError(
            f"Comment cannot move from {current} to {target}"
        )


def validate_comment_content(content: Optional[str], max_length: int) -> str:
    text = (content or "").strip()
    if not text:
        raise ValueError("Comment content is required.")
    if len(text) > max_length:
        raise ValueError(f"Comment cannot be more than {max_length} characters.")
    return text


def validate_stay_period(stay_from: Optional[date], stay_to: Optional[date]) -> None:
    if stay_from is None or stay_to is None:
        raise ValueError("stay_from and stay_to are required")
    if stay_from > stay_to:
        raise ValueError("stay_from must be on or before stay_to")


def validate_people(people: Sequence[Person], child_max_age: int) -> None:
    """Booking-form rules applied before a booking is stored."""
    if not people:
        raise ValueError("A booking must include at least one person")
    for person in people:
        if not person.name or not person.name.strip():
            raise ValueError("Every person must have a name")
        if person.age is not None and person.age < 0:
            raise ValueError(f"Age for {person.name} must be >= 0")
        gender = (person.gender or "").strip().lower()
        if gender not in PERSON_GENDERS:
            raise ValueError(f"Gender for {person.name} must be one of {', '.join(PERSON_GENDERS)}")
        if gender in CHILD_GENDERS and person.age is not None and person.age > child_max_age:
            raise ValueError(
                f"Age for {person.name} ({gender}) is over {child_max_age}. "
                "Please classify as male or female."
            )
        if person.stay_period is not None:
            validate_stay_period(person.stay_period.stay_from, person.stay_period.stay_to)


def validate_event_dates(
    start_date: date,
    end_date: date,
    booking_start_date: date,
    booking_end_date: date,
) -> None:
    if start_date > end_date:
        raise ValueError("start_date must be on or before end_date")
    if booking_start_date > booking_end_date:
        raise ValueError("booking_start_date must be on or before booking_end_date")


def validate_building_gender(gender: str) -> str:
    normalized = (gender or "").strip().lower()
    if normalized not in BUILDING_GENDERS:
        raise ValueError(f"gender must be one of {', '.join(BUILDING_GENDERS)}")
    return normalized


def validate_bed_type(bed_type: str) -> str:
    normalized = (bed_type or "").strip().lower()
    if normalized not in BED_TYPES:
        raise ValueError(f"bed type must be one of {', '.join(BED_TYPES)}")
    return normalized


def validate_live_window(live_from: Optional[datetime], live_to: Optional[datetime]) -> None:
    if live_from is None or live_to is None:
        raise ValueError("live_from and live_to are required")
    if live_from > live_to:
        raise ValueError("live_from must be on or before live_to")
