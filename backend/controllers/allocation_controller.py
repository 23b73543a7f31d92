"""HTTP controller layer for bed availability during allocation."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_allocation_service
from backend.controllers.inventory_controller import BedResponse, BuildingResponse
from backend.services.allocation_service import AllocationService
from backend.services.booking_service import BookingNotFoundError, BookingValidationError
from backend.services.inventory_service import ResourceNotFoundError
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["allocation"])


class AvailableBedsRequest(BaseModel):
    """Room being browsed plus the beds already picked in the open form."""

    room_id: str = Field(min_length=1)
    person_index: Optional[int] = Field(default=None, ge=0)
    tentative_allocations: Optional[dict[int, Optional[str]]] = None

    @field_validator("tentative_allocations")
    @classmethod
    def validate_tentative_indexes(
        cls,
        value: Optional[dict[int, Optional[str]]],
    ) -> Optional[dict[int, Optional[str]]]:
        if value is None:
            return None
        for person_index in value:
            if person_index < 0:
                raise ValueError("tentative_allocations keys must be person indexes >= 0")
        return value


class AvailableBedsResponse(BaseModel):
    room_id: str
    beds: list[BedResponse]


class RoomOccupancyResponse(BaseModel):
    room_id: str
    capacity: int = Field(ge=0)
    occupied: int = Field(ge=0)
    vacant: int = Field(ge=0)


class OccupantResponse(BaseModel):
    booking_id: str
    bed_id: str
    person_index: int
    name: Optional[str] = None
    gender: Optional[str] = None
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (BookingNotFoundError, ResourceNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.post(
    "/bookings/{booking_id}/available_beds",
    response_model=AvailableBedsResponse,
    status_code=status.HTTP_200_OK,
)
async def available_beds(
    booking_id: str,
    payload: AvailableBedsRequest,
    service: AllocationService = Depends(get_allocation_service),
) -> AvailableBedsResponse:
    """Beds an admin may still pick in a room for this booking's stay."""
    try:
        beds = service.available_beds(
            booking_id,
            payload.room_id,
            person_index=payload.person_index,
            tentative_allocations=payload.tentative_allocations,
        )
        return AvailableBedsResponse(
            room_id=payload.room_id,
            beds=[BedResponse.from_domain(bed) for bed in beds],
        )
    except (BookingNotFoundError, ResourceNotFoundError, BookingValidationError) as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected availability failure | booking_id=%s", booking_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute available beds",
        ) from exc


@router.get(
    "/bookings/{booking_id}/rooms/{room_id}/occupancy",
    response_model=RoomOccupancyResponse,
    status_code=status.HTTP_200_OK,
)
async def room_occupancy(
    booking_id: str,
    room_id: str,
    service: AllocationService = Depends(get_allocation_service),
) -> RoomOccupancyResponse:
    try:
        occupancy = service.room_occupancy(booking_id, room_id)
        return RoomOccupancyResponse(
            room_id=room_id,
            capacity=occupancy.capacity,
            occupied=occupancy.occupied,
            vacant=occupancy.vacant,
        )
    except (BookingNotFoundError, ResourceNotFoundError, BookingValidationError) as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupancy failure | booking_id=%s", booking_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to compute room occupancy",
        ) from exc


@router.get(
    "/bookings/{booking_id}/rooms/{room_id}/occupants",
    response_model=list[OccupantResponse],
    status_code=status.HTTP_200_OK,
)
async def room_occupants(
    booking_id: str,
    room_id: str,
    service: AllocationService = Depends(get_allocation_service),
) -> list[OccupantResponse]:
    try:
        return [
            OccupantResponse(
                booking_id=occupant.booking_id,
                bed_id=occupant.bed_id,
                person_index=occupant.person_index,
                name=occupant.name,
                gender=occupant.gender,
                stay_from=occupant.stay_from,
                stay_to=occupant.stay_to,
            )
            for occupant in service.room_occupants(booking_id, room_id)
        ]
    except (BookingNotFoundError, ResourceNotFoundError, BookingValidationError) as exc:
        raise _http_error(exc) from exc


@router.get(
    "/bookings/{booking_id}/people/{person_index}/eligible_buildings",
    response_model=list[BuildingResponse],
    status_code=status.HTTP_200_OK,
)
async def eligible_buildings(
    booking_id: str,
    person_index: int,
    service: AllocationService = Depends(get_allocation_service),
) -> list[BuildingResponse]:
    try:
        buildings = service.eligible_buildings(booking_id, person_index)
        return [BuildingResponse.from_domain(building) for building in buildings]
    except (BookingNotFoundError, BookingValidationError) as exc:
        raise _http_error(exc) from exc
