from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from app import create_app
from backend.repository.data_repository import DataRepository
from backend.services.live_link_service import (
    LiveLinkInput,
    LiveLinkNotFoundError,
    LiveLinkService,
    LiveLinkValidationError,
)
from backend.utils.config import get_settings


WINDOW_START = datetime(2030, 1, 10, 18, 0, tzinfo=timezone.utc)
WINDOW_END = datetime(2030, 1, 10, 20, 0, tzinfo=timezone.utc)


def _build_test_settings(tmp_path, filename: str):
    get_settings.cache_clear()
    return replace(get_settings(), database_path=tmp_path / filename, seed_demo_inventory=False)


def _build_service(tmp_path, filename: str) -> LiveLinkService:
    settings = _build_test_settings(tmp_path, filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    return LiveLinkService(repository=repository, settings=settings)


def _link_input(**overrides) -> LiveLinkInput:
    values = {
        "name": "Evening Satsang",
        "url": "https://example.org/live",
        "live_from": WINDOW_START,
        "live_to": WINDOW_END,
    }
    values.update(overrides)
    return LiveLinkInput(**values)


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (WINDOW_START - timedelta(seconds=1), []),
        (WINDOW_START, ["Evening Satsang"]),
        (WINDOW_START + timedelta(hours=1), ["Evening Satsang"]),
        (WINDOW_END, ["Evening Satsang"]),
        (WINDOW_END + timedelta(seconds=1), []),
    ],
)
def test_active_links_window_is_inclusive(tmp_path, moment, expected):
    links = _build_service(tmp_path, "window.db")
    links.create(_link_input())

    assert [link.name for link in links.active_links(moment)] == expected


def test_naive_times_are_read_as_utc(tmp_path):
    links = _build_service(tmp_path, "naive.db")

    link = links.create(
        _link_input(live_from=datetime(2030, 1, 10, 18, 0), live_to=datetime(2030, 1, 10, 20, 0))
    )

    assert link.live_from == WINDOW_START
    assert link.is_live(datetime(2030, 1, 10, 19, 0, tzinfo=timezone.utc))
    assert links.active_links(datetime(2030, 1, 10, 19, 0)) == [link]


def test_invalid_live_links_are_rejected(tmp_path):
    links = _build_service(tmp_path, "invalid.db")

    with pytest.raises(LiveLinkValidationError, match="live_from must be on or before live_to"):
        links.create(_link_input(live_from=WINDOW_END, live_to=WINDOW_START))
    with pytest.raises(LiveLinkValidationError, match="url is required"):
        links.create(_link_input(url="  "))


def test_update_and_delete(tmp_path):
    links = _build_service(tmp_path, "crud.db")
    link = links.create(_link_input(youtube_embed_url="https://youtube.com/embed/abc"))

    moved = links.update(
        link.id,
        _link_input(name="Morning Satsang", live_to=WINDOW_END + timedelta(hours=1)),
    )

    assert moved.name == "Morning Satsang"
    assert moved.youtube_embed_url is None
    assert links.active_links(WINDOW_END + timedelta(minutes=30)) == [moved]

    links.delete(link.id)
    assert links.list_links() == []
    with pytest.raises(LiveLinkNotFoundError):
        links.delete(link.id)
    with pytest.raises(LiveLinkNotFoundError):
        links.update(link.id, _link_input())


def test_live_link_endpoints(tmp_path):
    app = create_app(_build_test_settings(tmp_path, "api_live_links.db"))
    now = datetime.now(timezone.utc)

    with TestClient(app) as client:
        current = client.post(
            "/live-links",
            json={
                "name": "Now Streaming",
                "url": "https://example.org/now",
                "live_from": (now - timedelta(hours=1)).isoformat(),
                "live_to": (now + timedelta(hours=1)).isoformat(),
            },
        )
        assert current.status_code == 201
        client.post(
            "/live-links",
            json={
                "name": "Tomorrow",
                "url": "https://example.org/tomorrow",
                "live_from": (now + timedelta(days=1)).isoformat(),
                "live_to": (now + timedelta(days=1, hours=2)).isoformat(),
            },
        )

        active = client.get("/live-links/active").json()
        assert [link["name"] for link in active] == ["Now Streaming"]
        assert len(client.get("/live-links").json()) == 2

        reversed_window = client.post(
            "/live-links",
            json={
                "name": "Broken",
                "url": "https://example.org/broken",
                "live_from": (now + timedelta(hours=2)).isoformat(),
                "live_to": now.isoformat(),
            },
        )
        assert reversed_window.status_code == 400

        link_id = current.json()["id"]
        assert client.get(f"/live-links/{link_id}").json()["name"] == "Now Streaming"
        assert client.delete(f"/live-links/{link_id}").status_code == 204
        assert client.get(f"/live-links/{link_id}").status_code == 404
