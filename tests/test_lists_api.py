# ListMirror test scripts
from __future__ import annotations

from typing import Any

import pytest
import responses
from fastapi.testclient import TestClient

from api import create_app
from conftest import API
from lm_platform.engine import (
    AuthExpiredError,
    MediaItem,
    MediaKind,
    RemoteCallError,
    RemoteList,
    SyncEngine,
    SyncReport,
)


class StubEngine:
    def __init__(self, error: Exception | None = None):
        self.error = error

    def _maybe_fail(self) -> None:
        if self.error is not None:
            raise self.error

    def reconcile(self, lst: RemoteList, cancel=None) -> SyncReport:
        self._maybe_fail()
        return SyncReport(slug=lst.slug, added=2, removed=1)

    def movie_search(self, spec, user=None) -> list[MediaItem]:
        self._maybe_fail()
        return [MediaItem.from_payload(MediaKind.MOVIE, {"title": f"M{i}", "ids": {"trakt": i}}) for i in range(3)]

    def show_search(self, spec, user=None) -> list[MediaItem]:
        self._maybe_fail()
        return []


LISTS: dict[int, RemoteList] = {
    7: RemoteList(name="Seven", owner="alice", id=7, slug="seven"),
}


def _client(engine: Any) -> TestClient:
    return TestClient(create_app(engine, LISTS.get))


def test_sync_returns_report() -> None:
    r = _client(StubEngine()).post("/api/lists/7/sync")
    assert r.status_code == 200
    data = r.json()
    assert data["ok"] is True
    assert data["report"]["added"] == 2
    assert data["report"]["removed"] == 1


@pytest.mark.parametrize(
    "error,status",
    [
        (AuthExpiredError("expired", user="alice"), 401),
        (RemoteCallError("bad gateway", status=500), 502),
    ],
)
def test_engine_errors_map_to_status(error: Exception, status: int) -> None:
    r = _client(StubEngine(error)).post("/api/lists/7/sync")
    assert r.status_code == status
    assert r.json()["ok"] is False


def test_unknown_list_is_404() -> None:
    assert _client(StubEngine()).post("/api/lists/99/sync").status_code == 404


def test_search_counts_results() -> None:
    r = _client(StubEngine()).post("/api/lists/search", json={"kind": "movie", "filters": {"genres": ["action"]}, "sample": 2})
    assert r.status_code == 200
    data = r.json()
    assert data["count"] == 3
    assert len(data["items"]) == 2


def test_invalid_filter_is_400() -> None:
    r = _client(StubEngine()).post("/api/lists/search", json={"filters": {"years": [2020, 2000]}})
    assert r.status_code == 400


def test_create_through_engine(engine: SyncEngine) -> None:
    client = _client(engine)
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            f"{API}/users/me/lists",
            json={"name": "Action Movies", "ids": {"trakt": 123, "slug": "action-movies-123"}},
            status=201,
        )
        r = client.post("/api/lists", json={"name": "Action Movies", "owner": "alice", "filters": {"genres": ["action"]}})
    assert r.status_code == 200
    lst = r.json()["list"]
    assert (lst["id"], lst["slug"], lst["process"], lst["state"]) == (123, "action-movies-123", True, "created")


def test_update_unsynced_list_is_400(engine: SyncEngine) -> None:
    lookup = {3: RemoteList(name="Draft", owner="alice")}.get
    client = TestClient(create_app(engine, lookup))
    r = client.put("/api/lists/3", json={"name": "Renamed"})
    assert r.status_code == 400


def test_entrypoint_app_registers_created_lists(config_base, store) -> None:
    from listmirror import MemoryLists, build_app
    from lm_platform.credentials import ConfigCredentialStore

    ConfigCredentialStore().save(store.load("alice"))
    lists = MemoryLists()
    client = TestClient(build_app({"trakt": {"client_id": "cid"}}, lists))
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.POST,
            f"{API}/users/me/lists",
            json={"name": "Mine", "ids": {"trakt": 55, "slug": "mine"}},
            status=201,
        )
        r = client.post("/api/lists", json={"name": "Mine", "owner": "alice"})
    assert r.status_code == 200
    assert [x.slug for x in lists.all()] == ["mine"]


def test_rejected_update_leaves_stored_list_untouched(engine: SyncEngine) -> None:
    stored = RemoteList(name="Seven", owner="alice", id=7, slug="seven", description="old")
    client = TestClient(create_app(engine, {7: stored}.get))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, f"{API}/users/me/lists/7", json={"error": "invalid"}, status=422)
        r = client.put("/api/lists/7", json={"name": "Renamed", "description": "new", "filters": {"genres": ["drama"]}})
    assert r.status_code == 502
    assert r.json()["ok"] is False
    assert (stored.name, stored.description, stored.filters.genres) == ("Seven", "old", frozenset())


def test_accepted_update_is_written_back(engine: SyncEngine) -> None:
    stored = RemoteList(name="Seven", owner="alice", id=7, slug="seven")
    changed: list[RemoteList] = []
    client = TestClient(create_app(engine, {7: stored}.get, changed.append))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.PUT, f"{API}/users/me/lists/7", json={"name": "Renamed", "ids": {"trakt": 7, "slug": "seven"}})
        r = client.put("/api/lists/7", json={"name": "Renamed"})
    assert r.status_code == 200
    assert r.json()["list"]["name"] == "Renamed"
    assert stored.name == "Renamed"
    assert changed == [stored]


def test_deleted_list_leaves_registry_and_cannot_be_updated(config_base, store) -> None:
    from listmirror import MemoryLists, build_app
    from lm_platform.credentials import ConfigCredentialStore

    ConfigCredentialStore().save(store.load("alice"))
    lists = MemoryLists()
    lists.put(RemoteList(name="Seven", owner="alice", id=7, slug="seven", process=True))
    client = TestClient(build_app({"trakt": {"client_id": "cid"}}, lists))
    with responses.RequestsMock() as rsps:
        rsps.add(responses.DELETE, f"{API}/users/alice/lists/seven", status=204)
        assert client.delete("/api/lists/7").status_code == 200
        assert client.put("/api/lists/7", json={"name": "Again"}).status_code == 404
        assert len(rsps.calls) == 1
    assert lists.all() == []
