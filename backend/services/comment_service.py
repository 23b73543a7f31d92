"""Moderated user comments: submission, public feed and admin review."""

from __future__ import annotations

from typing import Optional

from backend.domain.constraints import (
    InvalidStatusTransitionError,
    validate_comment_content,
    validate_comment_transition,
)
from backend.domain.models import APPROVED, PENDING, REJECTED, Comment
from backend.repository.data_repository import DataRepository
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)


class CommentError(Exception):
    """Base exception for comment operations."""


class CommentValidationError(CommentError):
    """Raised when comment input is invalid."""


class CommentNotFoundError(CommentError):
    """Raised when a comment id does not exist."""


class CommentStatusError(CommentError):
    """Raised when a moderation change is not allowed from the current state."""


class CommentPermissionError(CommentError):
    """Raised when a user acts on a comment they do not own."""


class CommentService:
    """Comments start pending and only appear publicly once approved."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    def submit(self, user_id: str, content: str) -> Comment:
        if not user_id or not user_id.strip():
            raise CommentValidationError("user_id is required")
        try:
            text = validate_comment_content(content, self._settings.comment_max_length)
        except ValueError as exc:
            raise CommentValidationError(str(exc)) from exc
        comment = self._repository.create_comment(user_id.strip(), text)
        logger.info("Comment submitted | comment_id=%s | user_id=%s", comment.id, comment.user_id)
        return comment

    def get_comment(self, comment_id: str) -> Comment:
        comment = self._repository.get_comment(comment_id)
        if comment is None:
            raise CommentNotFoundError(f"Comment {comment_id} not found")
        return comment

    def public_feed(self, viewer_id: Optional[str] = None) -> list[Comment]:
        """Approved comments, preceded by the viewer's own unpublished ones."""
        approved = self._repository.list_comments(statuses=(APPROVED,))
        if not viewer_id:
            return approved
        personal = self._repository.list_comments(statuses=(PENDING, REJECTED), user_id=viewer_id)
        return personal + approved

    def list_for_user(self, user_id: str) -> list[Comment]:
        if not user_id:
            raise CommentValidationError("user_id is required")
        return self._repository.list_comments(user_id=user_id)

    def list_all(self) -> list[Comment]:
        return self._repository.list_comments()

    def list_pending(self) -> list[Comment]:
        """Review queue, oldest first."""
        return self._repository.list_comments(statuses=(PENDING,), oldest_first=True)

    def change_status(self, comment_id: str, status: str) -> Comment:
        comment = self.get_comment(comment_id)
        target = (status or "").strip().lower()
        try:
            validate_comment_transition(comment.status, target)
        except InvalidStatusTransitionError as exc:
            raise CommentStatusError(str(exc)) from exc

        updated = self._repository.update_comment_status(comment_id, comment.status, target)
        if updated is None:
            current = self.get_comment(comment_id)
            raise CommentStatusError(
                f"Comment moved to {current.status} before it could become {target}"
            )
        logger.info(
            "Comment moderated | comment_id=%s | from=%s | to=%s",
            comment_id,
            comment.status,
            updated.status,
        )
        return updated

    def delete(self, comment_id: str, user_id: str) -> None:
        comment = self.get_comment(comment_id)
        if comment.user_id != (user_id or "").strip():
            raise CommentPermissionError("You are not authorized to delete this comment.")
        self._repository.delete_comment(comment_id)
        logger.info("Comment deleted | comment_id=%s", comment_id)
