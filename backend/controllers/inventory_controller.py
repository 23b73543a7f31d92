"""HTTP controller layer for events and the accommodation inventory."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_inventory_service
from backend.domain.models import BED_TYPES, BUILDING_GENDERS, Bed, Building, Event, Room
from backend.services.inventory_service import (
    EventInput,
    InventoryConflictError,
    InventoryError,
    InventoryService,
    InventoryValidationError,
    ResourceNotFoundError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["inventory"])


class EventRequest(BaseModel):
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    start_date: date
    end_date: date
    booking_start_date: date
    booking_end_date: date
    location: Optional[str] = None


class EventResponse(BaseModel):
    id: str
    name: str
    description: str
    start_date: date
    end_date: date
    booking_start_date: date
    booking_end_date: date
    location: Optional[str] = None

    @classmethod
    def from_domain(cls, event: Event) -> "EventResponse":
        return cls(
            id=event.id,
            name=event.name,
            description=event.description,
            start_date=event.start_date,
            end_date=event.end_date,
            booking_start_date=event.booking_start_date,
            booking_end_date=event.booking_end_date,
            location=event.location,
        )


class BuildingRequest(BaseModel):
    name: str = Field(min_length=1)
    gender: str

    @field_validator("gender")
    @classmethod
    def validate_gender(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in BUILDING_GENDERS:
            raise ValueError(f"gender must be one of {', '.join(BUILDING_GENDERS)}")
        return normalized


class BuildingResponse(BaseModel):
    id: str
    name: str
    gender: str

    @classmethod
    def from_domain(cls, building: Building) -> "BuildingResponse":
        return cls(id=building.id, name=building.name, gender=building.gender)


class BedRequest(BaseModel):
    name: str = Field(min_length=1)
    type: str = "single"

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in BED_TYPES:
            raise ValueError(f"type must be one of {', '.join(BED_TYPES)}")
        return normalized


class BedResponse(BaseModel):
    id: str
    name: str
    type: str
    room_id: Optional[str] = None

    @classmethod
    def from_domain(cls, bed: Bed) -> "BedResponse":
        return cls(id=bed.id, name=bed.name, type=bed.type, room_id=bed.room_id)


class RoomRequest(BaseModel):
    building_id: str = Field(min_length=1)
    room_number: str = Field(min_length=1)
    beds: list[BedRequest] = Field(default_factory=list)


class RoomUpdateRequest(BaseModel):
    room_number: str = Field(min_length=1)


class RoomResponse(BaseModel):
    id: str
    room_number: str
    building_id: Optional[str]
    beds: list[BedResponse]

    @classmethod
    def from_domain(cls, room: Room) -> "RoomResponse":
        return cls(
            id=room.id,
            room_number=room.room_number,
            building_id=room.building_id,
            beds=[BedResponse.from_domain(bed) for bed in room.beds],
        )


def _http_error(exc: InventoryError) -> HTTPException:
    if isinstance(exc, ResourceNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InventoryConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, InventoryValidationError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))


def _unexpected(action: str) -> HTTPException:
    logger.exception("Unexpected inventory failure | action=%s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}",
    )


def _event_input(payload: EventRequest) -> EventInput:
    return EventInput(
        name=payload.name,
        description=payload.description,
        start_date=payload.start_date,
        end_date=payload.end_date,
        booking_start_date=payload.booking_start_date,
        booking_end_date=payload.booking_end_date,
        location=payload.location,
    )


# --- events ---


@router.post("/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    try:
        return EventResponse.from_domain(service.create_event(_event_input(payload)))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("create event") from exc


@router.get("/events", response_model=list[EventResponse], status_code=status.HTTP_200_OK)
async def list_events(
    service: InventoryService = Depends(get_inventory_service),
) -> list[EventResponse]:
    return [EventResponse.from_domain(event) for event in service.list_events()]


@router.get("/events/{event_id}", response_model=EventResponse, status_code=status.HTTP_200_OK)
async def get_event(
    event_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    try:
        return EventResponse.from_domain(service.get_event(event_id))
    except InventoryError as exc:
        raise _http_error(exc) from exc


@router.put("/events/{event_id}", response_model=EventResponse, status_code=status.HTTP_200_OK)
async def update_event(
    event_id: str,
    payload: EventRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> EventResponse:
    try:
        return EventResponse.from_domain(service.update_event(event_id, _event_input(payload)))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("update event") from exc


@router.delete("/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> Response:
    try:
        service.delete_event(event_id)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("delete event") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- buildings ---


@router.post("/buildings", response_model=BuildingResponse, status_code=status.HTTP_201_CREATED)
async def create_building(
    payload: BuildingRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> BuildingResponse:
    try:
        return BuildingResponse.from_domain(service.create_building(payload.name, payload.gender))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("create building") from exc


@router.get("/buildings", response_model=list[BuildingResponse], status_code=status.HTTP_200_OK)
async def list_buildings(
    service: InventoryService = Depends(get_inventory_service),
) -> list[BuildingResponse]:
    return [BuildingResponse.from_domain(building) for building in service.list_buildings()]


@router.get(
    "/buildings/{building_id}",
    response_model=BuildingResponse,
    status_code=status.HTTP_200_OK,
)
async def get_building(
    building_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> BuildingResponse:
    try:
        return BuildingResponse.from_domain(service.get_building(building_id))
    except InventoryError as exc:
        raise _http_error(exc) from exc


@router.put(
    "/buildings/{building_id}",
    response_model=BuildingResponse,
    status_code=status.HTTP_200_OK,
)
async def update_building(
    building_id: str,
    payload: BuildingRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> BuildingResponse:
    try:
        building = service.update_building(building_id, payload.name, payload.gender)
        return BuildingResponse.from_domain(building)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("update building") from exc


@router.delete("/buildings/{building_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_building(
    building_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> Response:
    try:
        service.delete_building(building_id)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("delete building") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- rooms ---


@router.post("/rooms", response_model=RoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(
    payload: RoomRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> RoomResponse:
    try:
        room = service.create_room(
            payload.building_id,
            payload.room_number,
            [(bed.name, bed.type) for bed in payload.beds],
        )
        return RoomResponse.from_domain(room)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("create room") from exc


@router.get("/rooms", response_model=list[RoomResponse], status_code=status.HTTP_200_OK)
async def list_rooms(
    building_id: Optional[str] = None,
    service: InventoryService = Depends(get_inventory_service),
) -> list[RoomResponse]:
    return [RoomResponse.from_domain(room) for room in service.list_rooms(building_id)]


@router.get("/rooms/{room_id}", response_model=RoomResponse, status_code=status.HTTP_200_OK)
async def get_room(
    room_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.get_room(room_id))
    except InventoryError as exc:
        raise _http_error(exc) from exc


@router.put("/rooms/{room_id}", response_model=RoomResponse, status_code=status.HTTP_200_OK)
async def update_room(
    room_id: str,
    payload: RoomUpdateRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> RoomResponse:
    try:
        return RoomResponse.from_domain(service.update_room(room_id, payload.room_number))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("update room") from exc


@router.delete("/rooms/{room_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_room(
    room_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> Response:
    try:
        service.delete_room(room_id)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("delete room") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- beds ---


@router.post(
    "/rooms/{room_id}/beds",
    response_model=BedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_bed(
    room_id: str,
    payload: BedRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> BedResponse:
    try:
        return BedResponse.from_domain(service.create_bed(room_id, payload.name, payload.type))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("create bed") from exc


@router.get("/beds/{bed_id}", response_model=BedResponse, status_code=status.HTTP_200_OK)
async def get_bed(
    bed_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> BedResponse:
    try:
        return BedResponse.from_domain(service.get_bed(bed_id))
    except InventoryError as exc:
        raise _http_error(exc) from exc


@router.put("/beds/{bed_id}", response_model=BedResponse, status_code=status.HTTP_200_OK)
async def update_bed(
    bed_id: str,
    payload: BedRequest,
    service: InventoryService = Depends(get_inventory_service),
) -> BedResponse:
    try:
        return BedResponse.from_domain(service.update_bed(bed_id, payload.name, payload.type))
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("update bed") from exc


@router.delete("/beds/{bed_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bed(
    bed_id: str,
    service: InventoryService = Depends(get_inventory_service),
) -> Response:
    try:
        service.delete_bed(bed_id)
    except InventoryError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        raise _unexpected("delete bed") from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
