"""In-app notification service."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from backend.domain.models import Notification
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class NotificationError(Exception):
    """Base notification failure."""


class NotificationValidationError(NotificationError):
    """Raised when a notification request is malformed."""


class NotificationNotFoundError(NotificationError):
    """Raised when a notification id does not exist."""


class NotificationService:
    """Stores notifications for users and admins; delivery channels are external."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def _workflow_expiry(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(days=self._settings.notification_ttl_days)

    def notify_user(self, user_id: Optional[str], message: str) -> Optional[Notification]:
        if not user_id:
            return None
        return self._repository.create_notification(
            message=message,
            target="user",
            user_id=user_id,
            expires_at=self._workflow_expiry(),
        )

    def notify_admins(self, message: str) -> list[Notification]:
        expires_at = self._workflow_expiry()
        notifications = [
            self._repository.create_notification(
                message=message,
                target="admin",
                user_id=admin_id,
                expires_at=expires_at,
            )
            for admin_id in self._settings.admin_user_ids
        ]
        if not notifications:
            logger.warning("No admin recipients configured | message=%s", message)
        return notifications

    def send(
        self,
        *,
        message: str,
        user_id: Optional[str] = None,
        broadcast: bool = False,
        ttl_minutes: Optional[int] = None,
    ) -> list[Notification]:
        """Manual send: one user, everyone, or the admin recipients."""
        if not message or not message.strip():
            raise NotificationValidationError("Message is required")
        minutes = ttl_minutes if ttl_minutes is not None else self._settings.manual_notification_ttl_minutes
        if minutes <= 0:
            raise NotificationValidationError("ttl_minutes must be > 0")
        expires_at = datetime.now(timezone.utc) + timedelta(minutes=minutes)

        if user_id:
            recipients = [(user_id, "user")]
        elif broadcast:
            recipients = [(None, "all")]
        else:
            recipients = [(admin_id, "admin") for admin_id in self._settings.admin_user_ids]

        sent = [
            self._repository.create_notification(
                message=message.strip(),
                target=target,
                user_id=recipient,
                expires_at=expires_at,
            )
            for recipient, target in recipients
        ]
        logger.info("Notification sent | recipients=%s | ttl_minutes=%s", len(sent), minutes)
        return sent

    def list_for_user(self, user_id: str) -> list[Notification]:
        if not user_id:
            raise NotificationValidationError("user_id is required")
        return self._repository.list_notifications(user_id, datetime.now(timezone.utc))

    def mark_read(self, notification_id: str, user_id: str) -> None:
        if not user_id:
            raise NotificationValidationError("user_id is required")
        if not self._repository.mark_notification_read(notification_id, user_id):
            raise NotificationNotFoundError(f"Notification {notification_id} not found")
