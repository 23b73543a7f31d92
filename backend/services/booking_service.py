"""Booking lifecycle: submission, edits and the admin approval workflow."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from backend.domain.availability import find_allocation_conflicts, is_fully_allocated
from backend.domain.constraints import (
    CLEARS_ALLOCATIONS,
    InvalidStatusTransitionError,
    validate_people,
    validate_stay_period,
    validate_status_transition,
)
from backend.domain.models import (
    APPROVED,
    DECLINED,
    Allocation,
    AllocationConflict,
    Booking,
    BookingDraft,
    Building,
    Person,
    Room,
    StayPeriod,
)
from backend.repository.data_repository import DataRepository, DuplicateBookingNumberError
from backend.services.notification_service import NotificationService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

_BOOKING_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class BookingError(Exception):
    """Base exception for booking workflow failures."""


class BookingValidationError(BookingError):
    """Raised when booking input is invalid."""


class BookingNotFoundError(BookingError):
    """Raised when a booking id does not exist."""


class BookingStatusError(BookingError):
    """Raised when a status change is not allowed from the current state."""


class AllocationIncompleteError(BookingValidationError):
    """Raised when approval is attempted without a bed for every person."""


class BedConflictError(BookingError):
    """Raised when proposed beds are unavailable at the moment of saving."""

    def __init__(self, conflicts: Sequence[AllocationConflict]) -> None:
        self.conflicts = list(conflicts)
        details = "; ".join(
            f"person {conflict.person_index}: {conflict.reason}" for conflict in self.conflicts
        )
        super().__init__(f"Allocation rejected: {details}")


@dataclass(frozen=True)
class PersonInput:
    name: str
    age: Optional[int]
    gender: str
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None


@dataclass(frozen=True)
class BookingForm:
    event_id: str
    user_id: str
    stay_from: date
    stay_to: date
    people: Sequence[PersonInput]
    email: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    ashram_name: Optional[str] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class AllocationInput:
    bed_id: Optional[str]
    room_id: Optional[str] = None
    building_id: Optional[str] = None
    person_index: Optional[int] = None


def generate_booking_number(prefix: str, today: Optional[date] = None) -> str:
    """Human-readable booking reference, e.g. ``BK240110-7QX2``."""
    day = today or datetime.now(timezone.utc).date()
    suffix = "".join(secrets.choice(_BOOKING_NUMBER_ALPHABET) for _ in range(4))
    return f"{prefix}{day.strftime('%y%m%d')}-{suffix}"


class BookingService:
    """Coordinates booking persistence, status transitions and user notices."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        notification_service: Optional[NotificationService] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)
        self._notification_service = notification_service or NotificationService(
            repository=self._repository,
            settings=self._settings,
        )

    def _build_draft(self, form: BookingForm) -> BookingDraft:
        if self._repository.get_event(form.event_id) is None:
            raise BookingValidationError(f"Event {form.event_id} not found")
        if not form.user_id or not form.user_id.strip():
            raise BookingValidationError("user_id is required")
        try:
            validate_stay_period(form.stay_from, form.stay_to)
            people = tuple(
                Person(
                    name=(person.name or "").strip(),
                    age=person.age,
                    gender=(person.gender or "").strip().lower(),
                    stay_period=(
                        StayPeriod(person.stay_from, person.stay_to)
                        if person.stay_from is not None and person.stay_to is not None
                        else None
                    ),
                )
                for person in form.people
            )
            validate_people(people, self._settings.child_max_age)
        except ValueError as exc:
            raise BookingValidationError(str(exc)) from exc

        return BookingDraft(
            event_id=form.event_id,
            user_id=form.user_id.strip(),
            stay_period=StayPeriod(form.stay_from, form.stay_to),
            people=people,
            email=form.email,
            contact_number=form.contact_number,
            address=form.address,
            city=form.city,
            ashram_name=form.ashram_name,
            notes=form.notes,
        )

    def submit_booking(self, form: BookingForm) -> Booking:
        draft = self._build_draft(form)
        for _ in range(self._settings.booking_number_max_attempts):
            booking_number = generate_booking_number(self._settings.booking_number_prefix)
            try:
                booking = self._repository.create_booking(draft, booking_number)
            except DuplicateBookingNumberError:
                logger.warning("Booking number collision | booking_number=%s", booking_number)
                continue
            logger.info(
                "Booking submitted | booking_id=%s | booking_number=%s | people=%s",
                booking.id,
                booking.booking_number,
                len(booking.people),
            )
            return booking
        raise BookingError("Failed to generate a unique booking number. Please try again.")

    def get_booking(self, booking_id: str) -> Booking:
        booking = self._repository.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def list_bookings(
        self,
        *,
        status: Optional[str] = None,
        user_id: Optional[str] = None,
        event_id: Optional[str] = None,
    ) -> list[Booking]:
        return self._repository.list_bookings(status=status, user_id=user_id, event_id=event_id)

    def update_booking(self, booking_id: str, form: BookingForm) -> Booking:
        """Apply a user edit; the booking always returns to pending."""
        existing = self.get_booking(booking_id)
        draft = self._build_draft(form)
        updated = self._repository.update_booking_form(booking_id, draft)
        if updated is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        if existing.status == APPROVED:
            self._notification_service.notify_admins(
                f"Booking #{existing.booking_number} was edited by the user "
                "and now requires re-approval."
            )
        logger.info(
            "Booking updated | booking_id=%s | previous_status=%s",
            booking_id,
            existing.status,
        )
        return updated

    def delete_booking(self, booking_id: str) -> None:
        if not self._repository.delete_booking(booking_id):
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        logger.info("Booking deleted | booking_id=%s", booking_id)

    def _build_allocations(
        self,
        booking: Booking,
        allocations: Optional[Sequence[AllocationInput]],
    ) -> list[Allocation]:
        if not allocations:
            raise AllocationIncompleteError("Missing allocation details")
        proposed = [
            Allocation(
                person_index=item.person_index if item.person_index is not None else position,
                building_id=item.building_id,
                room_id=item.room_id,
                bed_id=(item.bed_id or "").strip() or None,
            )
            for position, item in enumerate(allocations)
        ]
        if not is_fully_allocated(replace(booking, allocations=tuple(proposed))):
            raise AllocationIncompleteError(
                "Every person in the booking needs a bed before approval"
            )
        return proposed

    def change_status(
        self,
        booking_id: str,
        status: str,
        allocations: Optional[Sequence[AllocationInput]] = None,
    ) -> Booking:
        booking = self.get_booking(booking_id)
        target = (status or "").strip().lower()
        try:
            validate_status_transition(booking.status, target)
        except InvalidStatusTransitionError as exc:
            raise BookingStatusError(str(exc)) from exc

        event = self._repository.get_event(booking.event_id) if booking.event_id else None
        event_name = event.name if event is not None else "your event"

        proposed: list[Allocation] = []
        if target == APPROVED:
            if booking.stay_period is None:
                raise BookingValidationError("Booking has no valid stay period")
            proposed = self._build_allocations(booking, allocations)

        def resolve(
            current: Booking,
            rooms: list[Room],
            buildings: list[Building],
            bookings: list[Booking],
        ) -> Sequence[Allocation]:
            # The booking may have changed since it was first read.
            try:
                validate_status_transition(current.status, target)
            except InvalidStatusTransitionError as exc:
                raise BookingStatusError(str(exc)) from exc
            if target != APPROVED:
                return () if target in CLEARS_ALLOCATIONS else current.allocations
            if not is_fully_allocated(replace(current, allocations=tuple(proposed))):
                raise AllocationIncompleteError(
                    "Every person in the booking needs a bed before approval"
                )
            conflicts = find_allocation_conflicts(current, proposed, rooms, buildings, bookings)
            if conflicts:
                logger.warning(
                    "Allocation rejected | booking_id=%s | conflicts=%s",
                    booking_id,
                    len(conflicts),
                )
                raise BedConflictError(conflicts)
            return proposed

        updated = self._repository.transition_booking(booking_id, target, resolve)
        if updated is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")

        if target == APPROVED:
            message = f"Your booking for {event_name} has been approved!"
        elif target == DECLINED:
            message = f"Your booking for {event_name} has been declined."
        else:
            message = f"Booking for {event_name} is now pending again."

        self._notification_service.notify_user(updated.user_id, message)
        logger.info(
            "Booking status changed | booking_id=%s | from=%s | to=%s | allocations=%s",
            booking_id,
            booking.status,
            updated.status,
            len(updated.allocations),
        )
        return updated
