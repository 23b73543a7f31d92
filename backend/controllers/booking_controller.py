"""HTTP controller layer for booking submission and the approval workflow."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_booking_service
from backend.domain.models import BOOKING_STATUSES, PERSON_GENDERS, Booking
from backend.services.booking_service import (
    AllocationInput,
    BedConflictError,
    BookingError,
    BookingForm,
    BookingNotFoundError,
    BookingService,
    BookingStatusError,
    BookingValidationError,
    PersonInput,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["bookings"])


class PersonRequest(BaseModel):
    name: str = Field(min_length=1)
    age: Optional[int] = Field(default=None, ge=0)
    gender: str
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in PERSON_GENDERS:
            raise ValueError(f"gender must be one of {', '.join(PERSON_GENDERS)}")
        return normalized


class BookingRequest(BaseModel):
    """Booking form as submitted by a user."""

    event_id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    stay_from: date
    stay_to: date
    people: list[PersonRequest] = Field(min_length=1)
    email: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    ashram_name: Optional[str] = None
    notes: Optional[str] = None


class AllocationRequest(BaseModel):
    bed_id: Optional[str] = None
    room_id: Optional[str] = None
    building_id: Optional[str] = None
    person_index: Optional[int] = Field(default=None, ge=0)


class StatusChangeRequest(BaseModel):
    status: str
    allocations: Optional[list[AllocationRequest]] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in BOOKING_STATUSES:
            raise ValueError(f"status must be one of {', '.join(BOOKING_STATUSES)}")
        return normalized


class PersonResponse(BaseModel):
    name: str
    age: Optional[int] = None
    gender: str
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None


class AllocationResponse(BaseModel):
    person_index: int
    building_id: Optional[str] = None
    room_id: Optional[str] = None
    bed_id: Optional[str] = None


class BookingResponse(BaseModel):
    id: str
    booking_number: Optional[str] = None
    status: str
    user_id: Optional[str] = None
    event_id: Optional[str] = None
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None
    people: list[PersonResponse]
    allocations: list[AllocationResponse]
    email: Optional[str] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    ashram_name: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, booking: Booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            booking_number=booking.booking_number,
            status=booking.status,
            user_id=booking.user_id,
            event_id=booking.event_id,
            stay_from=booking.stay_period.stay_from if booking.stay_period else None,
            stay_to=booking.stay_period.stay_to if booking.stay_period else None,
            people=[
                PersonResponse(
                    name=person.name,
                    age=person.age,
                    gender=person.gender,
                    stay_from=person.stay_period.stay_from if person.stay_period else None,
                    stay_to=person.stay_period.stay_to if person.stay_period else None,
                )
                for person in booking.people
            ],
            allocations=[
                AllocationResponse(
                    person_index=allocation.person_index,
                    building_id=allocation.building_id,
                    room_id=allocation.room_id,
                    bed_id=allocation.bed_id,
                )
                for allocation in booking.allocations
            ],
            email=booking.email,
            contact_number=booking.contact_number,
            address=booking.address,
            city=booking.city,
            ashram_name=booking.ashram_name,
            notes=booking.notes,
            created_at=booking.created_at,
            updated_at=booking.updated_at,
        )


def _booking_form(payload: BookingRequest) -> BookingForm:
    return BookingForm(
        event_id=payload.event_id,
        user_id=payload.user_id,
        stay_from=payload.stay_from,
        stay_to=payload.stay_to,
        people=[
            PersonInput(
                name=person.name,
                age=person.age,
                gender=person.gender,
                stay_from=person.stay_from,
                stay_to=person.stay_to,
            )
            for person in payload.people
        ],
        email=payload.email,
        contact_number=payload.contact_number,
        address=payload.address,
        city=payload.city,
        ashram_name=payload.ashram_name,
        notes=payload.notes,
    )


def _http_error(exc: BookingError) -> HTTPException:
    if isinstance(exc, BookingNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (BedConflictError, BookingStatusError)):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, BookingValidationError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


@router.post("/bookings", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def submit_booking(
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_domain(service.submit_booking(_booking_form(payload)))
    except BookingError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking submission failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to submit booking",
        ) from exc


@router.get("/bookings", response_model=list[BookingResponse], status_code=status.HTTP_200_OK)
async def list_bookings(
    booking_status: Optional[str] = Query(default=None, alias="status"),
    user_id: Optional[str] = None,
    event_id: Optional[str] = None,
    service: BookingService = Depends(get_booking_service),
) -> list[BookingResponse]:
    bookings = service.list_bookings(status=booking_status, user_id=user_id, event_id=event_id)
    return [BookingResponse.from_domain(booking) for booking in bookings]


@router.get(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def get_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    try:
        return BookingResponse.from_domain(service.get_booking(booking_id))
    except BookingError as exc:
        raise _http_error(exc) from exc


@router.put(
    "/bookings/{booking_id}",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def update_booking(
    booking_id: str,
    payload: BookingRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """User edit; the booking returns to pending and loses its beds."""
    try:
        return BookingResponse.from_domain(
            service.update_booking(booking_id, _booking_form(payload))
        )
    except BookingError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected booking update failure | booking_id=%s", booking_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update booking",
        ) from exc


@router.delete("/bookings/{booking_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_booking(
    booking_id: str,
    service: BookingService = Depends(get_booking_service),
) -> Response:
    try:
        service.delete_booking(booking_id)
    except BookingError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/bookings/{booking_id}/status",
    response_model=BookingResponse,
    status_code=status.HTTP_200_OK,
)
async def change_booking_status(
    booking_id: str,
    payload: StatusChangeRequest,
    service: BookingService = Depends(get_booking_service),
) -> BookingResponse:
    """Approve with a bed per person, decline, or return a booking to pending."""
    allocations = (
        [
            AllocationInput(
                bed_id=item.bed_id,
                room_id=item.room_id,
                building_id=item.building_id,
                person_index=item.person_index,
            )
            for item in payload.allocations
        ]
        if payload.allocations is not None
        else None
    )
    try:
        booking = service.change_status(booking_id, payload.status, allocations)
        return BookingResponse.from_domain(booking)
    except BookingError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected status change failure | booking_id=%s", booking_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to change booking status",
        ) from exc
