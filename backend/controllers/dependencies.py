"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from backend.services.allocation_service import AllocationService
from backend.services.booking_service import BookingService
from backend.services.comment_service import CommentService
from backend.services.inventory_service import InventoryService
from backend.services.live_link_service import LiveLinkService
from backend.services.notification_service import NotificationService
from backend.services.report_service import ReportService


def _service_from_state(request: Request, attribute: str, label: str):
    service = getattr(request.app.state, attribute, None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"{label} service is not initialized",
        )
    return service


def get_inventory_service(request: Request) -> InventoryService:
    return _service_from_state(request, "inventory_service", "Inventory")


def get_booking_service(request: Request) -> BookingService:
    return _service_from_state(request, "booking_service", "Booking")


def get_allocation_service(request: Request) -> AllocationService:
    return _service_from_state(request, "allocation_service", "Allocation")


def get_notification_service(request: Request) -> NotificationService:
    return _service_from_state(request, "notification_service", "Notification")


def get_report_service(request: Request) -> ReportService:
    return _service_from_state(request, "report_service", "Report")


def get_comment_service(request: Request) -> CommentService:
    return _service_from_state(request, "comment_service", "Comment")


def get_live_link_service(request: Request) -> LiveLinkService:
    return _service_from_state(request, "live_link_service", "Live link")
