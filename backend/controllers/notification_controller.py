"""Controller layer for in-app notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_notification_service
from backend.domain.models import Notification
from backend.services.notification_service import (
    NotificationError,
    NotificationNotFoundError,
    NotificationService,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["notifications"])


class SendNotificationRequest(BaseModel):
    """Omit user_id to reach the admins, or set broadcast to reach everyone."""

    message: str = Field(min_length=1)
    user_id: Optional[str] = None
    broadcast: bool = False
    ttl_minutes: Optional[int] = Field(default=None, gt=0)


class NotificationResponse(BaseModel):
    id: str
    message: str
    target: str
    user_id: Optional[str] = None
    read: bool
    created_at: Optional[datetime] = None
    expires_at: datetime

    @classmethod
    def from_domain(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            message=notification.message,
            target=notification.target,
            user_id=notification.user_id,
            read=notification.read,
            created_at=notification.created_at,
            expires_at=notification.expires_at,
        )


def _http_error(exc: NotificationError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, NotificationNotFoundError)
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(exc))


@router.post(
    "/notifications",
    response_model=list[NotificationResponse],
    status_code=status.HTTP_201_CREATED,
)
async def send_notification(
    payload: SendNotificationRequest,
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationResponse]:
    try:
        sent = service.send(
            message=payload.message,
            user_id=payload.user_id,
            broadcast=payload.broadcast,
            ttl_minutes=payload.ttl_minutes,
        )
        return [NotificationResponse.from_domain(item) for item in sent]
    except NotificationError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected notification send failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send notification",
        ) from exc


@router.get(
    "/notifications",
    response_model=list[NotificationResponse],
    status_code=status.HTTP_200_OK,
)
async def list_notifications(
    user_id: str = Query(min_length=1),
    service: NotificationService = Depends(get_notification_service),
) -> list[NotificationResponse]:
    try:
        return [NotificationResponse.from_domain(item) for item in service.list_for_user(user_id)]
    except NotificationError as exc:
        raise _http_error(exc) from exc


@router.post("/notifications/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
async def mark_notification_read(
    notification_id: str,
    user_id: str = Query(min_length=1),
    service: NotificationService = Depends(get_notification_service),
) -> Response:
    try:
        service.mark_read(notification_id, user_id)
    except NotificationError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
