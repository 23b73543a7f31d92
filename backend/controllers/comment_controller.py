"""Controller layer for user comments and their moderation."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator

from backend.controllers.dependencies import get_comment_service
from backend.domain.models import COMMENT_STATUSES, Comment
from backend.services.comment_service import (
    CommentError,
    CommentNotFoundError,
    CommentPermissionError,
    CommentService,
    CommentStatusError,
)
from backend.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["comments"])


class CommentRequest(BaseModel):
    user_id: str = Field(min_length=1)
    content: str = Field(min_length=1)


class CommentStatusRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in COMMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(COMMENT_STATUSES)}")
        return normalized


class CommentResponse(BaseModel):
    id: str
    user_id: str
    content: str
    status: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, comment: Comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            user_id=comment.user_id,
            content=comment.content,
            status=comment.status,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )


def _http_error(exc: CommentError) -> HTTPException:
    if isinstance(exc, CommentNotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, CommentPermissionError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, CommentStatusError):
        code = status.HTTP_409_CONFLICT
    else:
        code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=code, detail=str(exc))


def _responses(comments: list[Comment]) -> list[CommentResponse]:
    return [CommentResponse.from_domain(comment) for comment in comments]


@router.post("/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def submit_comment(
    payload: CommentRequest,
    service: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    try:
        return CommentResponse.from_domain(service.submit(payload.user_id, payload.content))
    except CommentError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected comment submission failure")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error. Could not submit comment.",
        ) from exc


@router.get("/comments", response_model=list[CommentResponse], status_code=status.HTTP_200_OK)
async def public_comment_feed(
    viewer_id: Optional[str] = Query(default=None),
    service: CommentService = Depends(get_comment_service),
) -> list[CommentResponse]:
    return _responses(service.public_feed(viewer_id))


@router.get("/comments/all", response_model=list[CommentResponse], status_code=status.HTTP_200_OK)
async def list_all_comments(
    service: CommentService = Depends(get_comment_service),
) -> list[CommentResponse]:
    return _responses(service.list_all())


@router.get(
    "/comments/pending",
    response_model=list[CommentResponse],
    status_code=status.HTTP_200_OK,
)
async def list_pending_comments(
    service: CommentService = Depends(get_comment_service),
) -> list[CommentResponse]:
    return _responses(service.list_pending())


@router.get("/comments/mine", response_model=list[CommentResponse], status_code=status.HTTP_200_OK)
async def list_user_comments(
    user_id: str = Query(min_length=1),
    service: CommentService = Depends(get_comment_service),
) -> list[CommentResponse]:
    try:
        return _responses(service.list_for_user(user_id))
    except CommentError as exc:
        raise _http_error(exc) from exc


@router.get(
    "/comments/{comment_id}",
    response_model=CommentResponse,
    status_code=status.HTTP_200_OK,
)
async def get_comment(
    comment_id: str,
    service: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    try:
        return CommentResponse.from_domain(service.get_comment(comment_id))
    except CommentError as exc:
        raise _http_error(exc) from exc


@router.post(
    "/comments/{comment_id}/status",
    response_model=CommentResponse,
    status_code=status.HTTP_200_OK,
)
async def moderate_comment(
    comment_id: str,
    payload: CommentStatusRequest,
    service: CommentService = Depends(get_comment_service),
) -> CommentResponse:
    """Approve, reject, or send a comment back to pending."""
    try:
        return CommentResponse.from_domain(service.change_status(comment_id, payload.status))
    except CommentError as exc:
        raise _http_error(exc) from exc
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected comment moderation failure | comment_id=%s", comment_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error. Could not update comment.",
        ) from exc


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: str,
    user_id: str = Query(min_length=1),
    service: CommentService = Depends(get_comment_service),
) -> Response:
    try:
        service.delete(comment_id, user_id)
    except CommentError as exc:
        raise _http_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)
