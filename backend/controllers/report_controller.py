"""Controller layer for occupancy reports and the live structure view."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_report_service
from backend.services.report_service import ReportService
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["reports"])


class StructureOccupantResponse(BaseModel):
    name: Optional[str] = None
    gender: Optional[str] = None
    booking_number: Optional[str] = None
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None


class StructureBedResponse(BaseModel):
    bed_id: str
    name: str
    type: str
    occupant: Optional[StructureOccupantResponse] = None


class StructureRoomResponse(BaseModel):
    room_id: str
    room_number: str
    capacity: int = Field(ge=0)
    occupancy: int = Field(ge=0)
    beds: list[StructureBedResponse]


class StructureBuildingResponse(BaseModel):
    building_id: str
    name: str
    gender: str
    capacity: int = Field(ge=0)
    occupancy: int = Field(ge=0)
    rooms: list[StructureRoomResponse]


class StructureResponse(BaseModel):
    on_date: date
    total_capacity: int = Field(ge=0)
    total_occupancy: int = Field(ge=0)
    total_vacancy: int = Field(ge=0)
    buildings: list[StructureBuildingResponse]


class OccupancyRowResponse(BaseModel):
    booking_number: Optional[str] = None
    name: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[str] = None
    building: Optional[str] = None
    room: Optional[str] = None
    bed: Optional[str] = None
    stay_from: Optional[date] = None
    stay_to: Optional[date] = None
    city: Optional[str] = None
    contact_number: Optional[str] = None
    status: Optional[str] = None


class BuildingSummaryResponse(BaseModel):
    building_id: str
    name: str
    gender: str
    room_count: int = Field(ge=0)
    capacity: int = Field(ge=0)
    occupancy: int = Field(ge=0)
    vacancy: int = Field(ge=0)


@router.get("/structure", response_model=StructureResponse, status_code=status.HTTP_200_OK)
async def structure(
    on_date: Optional[date] = None,
    service: ReportService = Depends(get_report_service),
) -> StructureResponse:
    """Buildings, rooms and beds with the occupant of each bed on a given day."""
    day = on_date or datetime.now(timezone.utc).date()
    try:
        return StructureResponse(**service.structure(day))
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected structure view failure | on_date=%s", day)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build structure view",
        ) from exc


@router.get(
    "/reports/occupancy",
    response_model=list[OccupancyRowResponse],
    status_code=status.HTTP_200_OK,
)
async def occupancy_report(
    event_id: Optional[str] = None,
    service: ReportService = Depends(get_report_service),
) -> list[OccupancyRowResponse]:
    try:
        return [OccupancyRowResponse(**row) for row in service.occupancy_report(event_id)]
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupancy report failure | event_id=%s", event_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build occupancy report",
        ) from exc


@router.get("/reports/occupancy.csv", response_class=PlainTextResponse)
async def occupancy_csv(
    event_id: Optional[str] = None,
    service: ReportService = Depends(get_report_service),
) -> PlainTextResponse:
    try:
        content = service.export_occupancy_csv(event_id)
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected occupancy export failure | event_id=%s", event_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to export occupancy report",
        ) from exc
    return PlainTextResponse(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="occupancy.csv"'},
    )


@router.get(
    "/reports/buildings",
    response_model=list[BuildingSummaryResponse],
    status_code=status.HTTP_200_OK,
)
async def building_summary(
    on_date: Optional[date] = None,
    service: ReportService = Depends(get_report_service),
) -> list[BuildingSummaryResponse]:
    try:
        return [BuildingSummaryResponse(**row) for row in service.building_summary(on_date)]
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected building summary failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to build building summary",
        ) from exc
