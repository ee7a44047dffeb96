# ListMirror test scripts
from __future__ import annotations

import json
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable
from urllib.parse import parse_qs, urlparse

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from lm_platform.engine import Credential, SyncEngine, TokenGate  # noqa: E402
from providers.sync.trakt._lists import TraktListsAPI  # noqa: E402

API = "https://api.trakt.tv"
FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    import providers.sync._mod_common as mc

    slept: list[float] = []
    monkeypatch.setattr(mc.time, "sleep", slept.append)
    return slept


class MemStore:
    def __init__(self, *creds: Credential):
        self.creds = {c.user: c for c in creds}
        self.saved: list[Credential] = []

    def load(self, user: str) -> Credential | None:
        return self.creds.get(user)

    def save(self, cred: Credential) -> None:
        self.creds[cred.user] = cred
        self.saved.append(cred)


def fresh_cred(user: str = "alice", token: str = "tok-a") -> Credential:
    return Credential(user=user, access_token=token, refresh_token=f"ref-{user}", expires_at=int(time.time()) + 3600)


@pytest.fixture()
def store() -> MemStore:
    return MemStore(fresh_cred())


@pytest.fixture()
def engine(store: MemStore) -> SyncEngine:
    api = TraktListsAPI("cid", max_retries=3)
    gate = TokenGate(store, None, current_user=lambda: "alice")
    return SyncEngine(
        api,
        gate,
        page_size=100,
        page_delay=0,
        description="desc",
        clock=lambda: FIXED_NOW,
        sleep=lambda s: None,
    )


def movie_row(i: int) -> dict[str, Any]:
    return {
        "type": "movie",
        "score": 10,
        "movie": {"title": f"Movie {i}", "year": 2000 + i % 20, "ids": {"trakt": i, "slug": f"movie-{i}"}},
    }


def paged_callback(pages: list[list[dict[str, Any]]], *, total: int | None = None) -> Callable:
    """responses callback serving pages[page-1] with the page-count header."""

    def cb(request):
        q = parse_qs(urlparse(request.url).query)
        page = int(q.get("page", ["1"])[0])
        rows = pages[page - 1] if 1 <= page <= len(pages) else []
        headers = {"Content-Type": "application/json"}
        n = len(pages) if total is None else total
        if n >= 0:
            headers["X-Pagination-Page-Count"] = str(n)
        return 200, headers, json.dumps(rows)

    return cb


def query_of(call) -> dict[str, list[str]]:
    return parse_qs(urlparse(call.request.url).query)
