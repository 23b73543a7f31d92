"""Scheduled live-stream links shown while their broadcast window is open."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from backend.domain.constraints import validate_live_window
from backend.domain.models import LiveLink
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class LiveLinkError(Exception):
    """Base exception for live link operations."""


class LiveLinkValidationError(LiveLinkError):
    """Raised when live link input is invalid."""


class LiveLinkNotFoundError(LiveLinkError):
    """Raised when a live link id does not exist."""


@dataclass(frozen=True)
class LiveLinkInput:
    name: str
    url: str
    live_from: datetime
    live_to: datetime
    youtube_embed_url: Optional[str] = None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LiveLinkService:
    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    @staticmethod
    def _validated(payload: LiveLinkInput) -> dict:
        name = (payload.name or "").strip()
        url = (payload.url or "").strip()
        if not name:
            raise LiveLinkValidationError("name is required")
        if not url:
            raise LiveLinkValidationError("url is required")
        try:
            validate_live_window(payload.live_from, payload.live_to)
        except ValueError as exc:
            raise LiveLinkValidationError(str(exc)) from exc
        embed = (payload.youtube_embed_url or "").strip() or None
        return {
            "name": name,
            "url": url,
            "live_from": _as_utc(payload.live_from),
            "live_to": _as_utc(payload.live_to),
            "youtube_embed_url": embed,
        }

    def create(self, payload: LiveLinkInput) -> LiveLink:
        link = self._repository.create_live_link(**self._validated(payload))
        logger.info(
            "Live link created | link_id=%s | live_from=%s | live_to=%s",
            link.id,
            link.live_from.isoformat(),
            link.live_to.isoformat(),
        )
        return link

    def list_links(self) -> list[LiveLink]:
        return self._repository.list_live_links()

    def active_links(self, now: Optional[datetime] = None) -> list[LiveLink]:
        """Links with ``live_from <= now <= live_to``, both ends inclusive."""
        moment = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        return self._repository.list_live_links(active_at=moment)

    def get(self, link_id: str) -> LiveLink:
        link = self._repository.get_live_link(link_id)
        if link is None:
            raise LiveLinkNotFoundError(f"Live link {link_id} not found")
        return link

    def update(self, link_id: str, payload: LiveLinkInput) -> LiveLink:
        link = self._repository.update_live_link(link_id, **self._validated(payload))
        if link is None:
            raise LiveLinkNotFoundError(f"Live link {link_id} not found")
        return link

    def delete(self, link_id: str) -> None:
        if not self._repository.delete_live_link(link_id):
            raise LiveLinkNotFoundError(f"Live link {link_id} not found")
        logger.info("Live link deleted | link_id=%s", link_id)
