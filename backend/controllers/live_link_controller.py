"""Controller layer for scheduled live-stream links."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from backend.controllers.dependencies import get_live_link_service
from backend.domain.models import LiveLink
from backend.services.live_link_service import (
    LiveLinkError,
    LiveLinkInput,
    LiveLinkNotFoundError,
    LiveLinkService,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["live-links"])


class LiveLinkRequest(BaseModel):
    name: str = Field(min_length=1)
    url: str = Field(min_length=1)
    live_from: datetime
    live_to: datetime
    youtube_embed_url: Optional[str] = None

    def to_input(self) -> LiveLinkInput:
        return LiveLinkInput(
            name=self.name,
            url=self.url,
            live_from=self.live_from,
            live_to=self.live_to,
            youtube_embed_url=self.youtube_embed_url,
        )


class LiveLinkResponse(BaseModel):
    id: str
    name: str
    url: str
    live_from: datetime
    live_to: datetime
    youtube_embed_url: Optional[str] = None

    @classmethod
    def from_domain(cls, link: LiveLink) -> "LiveLinkResponse":
        return cls(
            id=link.id,
            name=link.name,
            url=link.url,
            live_from=link.live_from,
            live_to=link.live_to,
            youtube_embed_url=link.youtube_embed_url,
        )


def _http_error(exc: LiveLinkError) -> HTTPException:
    code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, LiveLinkNotFoundError)
        else status.HTTP_400_BAD_REQUEST
    )
    return HTTPException(status_code=code, detail=str(exc))


@router.post("/live-links", response_model=LiveLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_live_link(
    payload: LiveLinkRequest,
    service: LiveLinkService = Depends(get_live_link_service),
) -> LiveLinkResponse:
    try:
        return LiveLinkResponse.from_domain(service.create(payload.to_input()))
    except LiveLinkError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected live link creation failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create live link",
        ) from exc


@router.get("/live-links", response_model=list[LiveLinkResponse], status_code=status.HTTP_200_OK)
async def list_live_links(
    service: LiveLinkService = Depends(get_live_link_service),
) -> list[LiveLinkResponse]:
    return [LiveLinkResponse.from_domain(link) for link in service.list_links()]


@router.get(
    "/live-links/active",
    response_model=list[LiveLinkResponse],
    status_code=status.HTTP_200_OK,
)
async def list_active_live_links(
    service: LiveLinkService = Depends(get_live_link_service),
) -> list[LiveLinkResponse]:
    return [LiveLinkResponse.from_domain(link) for link in service.active_links()]


@router.get(
    "/live-links/{link_id}",
    response_model=LiveLinkResponse,
    status_code=status.HTTP_200_OK,
)
async def get_live_link(
    link_id: str,
    service: LiveLinkService = Depends(get_live_link_service),
) -> LiveLinkResponse:
    try:
        return LiveLinkResponse.from_domain(service.get(link_id))
    except LiveLinkError as exc:
        raise _http_error(exc) from exc


@router.put(
    "/live-links/{link_id}",
    response_model=LiveLinkResponse,
    status_code=status.HTTP_200_OK,
)
async def update_live_link(
    link_id: str,
    payload: LiveLinkRequest,
    service: LiveLinkService = Depends(get_live_link_service),
) -> LiveLinkResponse:
    try:
        return LiveLinkResponse.from_domain(service.update(link_id, payload.to_input()))
    except LiveLinkError as exc:
        raise _http_error(exc) from exc


@router.delete("/live-links/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_live_link(
    link_id: str,
    service: LiveLinkService = Depends(get_live_link_service),
) -> Response:
    try:
        service.delete(link_id)
    except LiveLinkError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
