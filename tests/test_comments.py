from __future__ import annotations

from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend.repository.data_repository import DataRepository
from backend.services.comment_service import (
    CommentNotFoundError,
    CommentPermissionError,
    CommentService,
    CommentStatusError,
    CommentValidationError,
)
from backend.utils.config import get_settings


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(
        get_settings(),
        database_path=tmp_path / filename,
        seed_demo_inventory=False,
        comment_max_length=50,
    )


def _build_service(tmp_path, filename: str) -> tuple[DataRepository, CommentService]:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    return repository, CommentService(repository=repository, settings=settings)


def test_submitted_comment_waits_for_review(tmp_path):
    _, comments = _build_service(tmp_path, "submit.db")

    comment = comments.submit("user-1", "  Lovely stay, thank you!  ")

    assert comment.status == "pending"
    assert comment.content == "Lovely stay, thank you!"
    assert [item.id for item in comments.list_pending()] == [comment.id]


@pytest.mark.parametrize(
    ("user_id", "content", "message"),
    [
        ("user-1", "   ", "content is required"),
        ("user-1", "x" * 51, "more than 50 characters"),
        ("", "Hello", "user_id is required"),
    ],
)
def test_invalid_comments_are_rejected(tmp_path, user_id, content, message):
    _, comments = _build_service(tmp_path, "invalid.db")

    with pytest.raises(CommentValidationError, match=message):
        comments.submit(user_id, content)


def test_public_feed_hides_unpublished_comments_from_others(tmp_path):
    _, comments = _build_service(tmp_path, "feed.db")
    published = comments.submit("user-2", "Great food")
    comments.change_status(published.id, "approved")
    mine = comments.submit("user-1", "Hot water please")
    declined = comments.submit("user-1", "Spam")
    comments.change_status(declined.id, "rejected")
    comments.submit("user-3", "Not yet reviewed")

    anonymous = comments.public_feed()
    personal = comments.public_feed("user-1")

    assert [item.content for item in anonymous] == ["Great food"]
    assert [item.id for item in personal] == [declined.id, mine.id, published.id]


def test_moderation_follows_review_states(tmp_path):
    _, comments = _build_service(tmp_path, "moderation.db")
    comment = comments.submit("user-1", "Nice garden")

    assert comments.change_status(comment.id, "approved").status == "approved"
    with pytest.raises(CommentStatusError, match="from approved to rejected"):
        comments.change_status(comment.id, "rejected")
    assert comments.change_status(comment.id, "pending").status == "pending"
    assert comments.change_status(comment.id, "rejected").status == "rejected"
    with pytest.raises(CommentStatusError):
        comments.change_status(comment.id, "archived")
    with pytest.raises(CommentNotFoundError):
        comments.change_status("missing", "approved")


def test_moderation_does_not_overwrite_a_newer_decision(tmp_path, monkeypatch):
    repository, comments = _build_service(tmp_path, "stale.db")
    comment = comments.submit("user-1", "Nice garden")
    stale = repository.get_comment(comment.id)
    comments.change_status(comment.id, "approved")

    monkeypatch.setattr(repository, "get_comment", lambda comment_id: stale)
    with pytest.raises(CommentStatusError):
        comments.change_status(comment.id, "rejected")
    monkeypatch.undo()

    assert comments.get_comment(comment.id).status == "approved"


def test_only_the_author_can_delete(tmp_path):
    _, comments = _build_service(tmp_path, "delete.db")
    comment = comments.submit("user-1", "Remove me")

    with pytest.raises(CommentPermissionError):
        comments.delete(comment.id, "user-2")
    comments.delete(comment.id, "user-1")

    assert comments.list_for_user("user-1") == []
    with pytest.raises(CommentNotFoundError):
        comments.delete(comment.id, "user-1")


def test_comment_endpoints(tmp_path):
    app = create_app(_build_test_settings(tmp_path, "api_comments.db"))

    with TestClient(app) as client:
        created = client.post("/comments", json={"user_id": "user-1", "content": "Thanks!"})
        assert created.status_code == 201
        comment_id = created.json()["id"]

        assert client.get("/comments").json() == []
        assert [item["id"] for item in client.get("/comments/pending").json()] == [comment_id]
        mine = client.get("/comments", params={"viewer_id": "user-1"}).json()
        assert [item["status"] for item in mine] == ["pending"]

        approved = client.post(f"/comments/{comment_id}/status", json={"status": "approved"})
        assert approved.json()["status"] == "approved"
        again = client.post(f"/comments/{comment_id}/status", json={"status": "approved"})
        assert again.status_code == 409
        unknown = client.post(f"/comments/{comment_id}/status", json={"status": "archived"})
        assert unknown.status_code == 422

        assert [item["content"] for item in client.get("/comments").json()] == ["Thanks!"]
        assert len(client.get("/comments/all").json()) == 1
        assert len(client.get("/comments/mine", params={"user_id": "user-1"}).json()) == 1

        forbidden = client.delete(f"/comments/{comment_id}", params={"user_id": "user-2"})
        assert forbidden.status_code == 403
        deleted = client.delete(f"/comments/{comment_id}", params={"user_id": "user-1"})
        assert deleted.status_code == 204
        assert client.get(f"/comments/{comment_id}").status_code == 404

        too_long = client.post("/comments", json={"user_id": "user-1", "content": "x" * 60})
        assert too_long.status_code == 400
