"""Domain models for dormitory inventory, bookings and bed allocation."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


PENDING = "pending"
APPROVED = "approved"
DECLINED = "declined"
BOOKING_STATUSES = (PENDING, APPROVED, DECLINED)

PERSON_GENDERS = ("male", "female", "boy", "girl")
CHILD_GENDERS = ("boy", "girl")
BUILDING_GENDERS = ("male", "female", "unisex")
BED_TYPES = ("single", "floor_bed")

REJECTED = "rejected"
COMMENT_STATUSES = (PENDING, APPROVED, REJECTED)


@dataclass(frozen=True)
class StayPeriod:
    """Inclusive calendar-day range a person occupies a bed."""

    stay_from: date
    stay_to: date

    def __post_init__(self) -> None:
        if self.stay_from > self.stay_to:
            raise ValueError("stay_from must be on or before stay_to")


@dataclass(frozen=True)
class Person:
    name: str
    age: Optional[int]
    gender: str
    stay_period: Optional[StayPeriod] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Bed:
    id: str
    name: str
    type: str = "single"
    room_id: Optional[str] = None


@dataclass(frozen=True)
class Room:
    id: str
    room_number: str
    building_id: Optional[str]
    beds: tuple[Bed, ...] = ()


@dataclass(frozen=True)
class Building:
    id: str
    name: str
    gender: str


@dataclass(frozen=True)
class Allocation:
    person_index: int
    building_id: Optional[str]
    room_id: Optional[str]
    bed_id: Optional[str]


@dataclass(frozen=True)
class Booking:
    id: str
    status: str
    people: tuple[Person, ...] = ()
    allocations: tuple[Allocation, ...] = ()
    stay_period: Optional[StayPeriod] = None
    booking_number: Optional[str] = None
    user_id: Optional[str] = None
    event_id: Optional[str] = None
    email: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    ashram_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def stay_period_for(self, person_index: int) -> Optional[StayPeriod]:
        """A person's own stay period, falling back to the booking's."""
        if 0 <= person_index < len(self.people):
            own = self.people[person_index].stay_period
            if own is not None:
                return own
        return self.stay_period


@dataclass(frozen=True)
class Occupant:
    """Flattened view of one allocated person used for overlap scans."""

    booking_id: str
    bed_id: str
    stay_from: Optional[date]
    stay_to: Optional[date]
    person_index: int = 0
    name: Optional[str] = None
    gender: Optional[str] = None


@dataclass(frozen=True)
class RoomOccupancy:
    capacity: int
    occupied: int
    vacant: int


@dataclass(frozen=True)
class AllocationConflict:
    person_index: int
    bed_id: Optional[str]
    reason: str


@dataclass(frozen=True)
class Event:
    id: str
    name: str
    description: str
    start_date: date
    end_date: date
    booking_start_date: date
    booking_end_date: date
    location: Optional[str] = None


@dataclass(frozen=True)
class Notification:
    id: str
    message: str
    target: str
    expires_at: datetime
    user_id: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class BookingDraft:
    """User-submitted booking form before persistence."""

    event_id: str
    user_id: str
    stay_period: StayPeriod
    people: tuple[Person, ...]
    email: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    ashram_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class Comment:
    """User feedback shown publicly once a moderator approves it."""

    id: str
    user_id: str
    content: str
    status: str = PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class LiveLink:
    """A stream URL advertised while ``live_from <= now <= live_to``."""

    id: str
    name: str
    url: str
    live_from: datetime
    live_to: datetime
    youtube_embed_url: Optional[str] = None
    created_at: Optional[datetime] = None

    def is_live(self, now: datetime) -> bool:
        return self.live_from <= now <= self.live_to
