# lm_platform/engine/facade.py
# ListMirror - list synchronization engine: CRUD, paged reads, search and reconcile.
from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

from _logging import log as _root_log
from providers.auth._auth_TRAKT import make_provider
from providers.sync.trakt._common import build_items_body
from providers.sync.trakt._lists import TraktListsAPI

from ..config_base import load_config, trakt_settings
from ..errors import RemoteCallError, SyncCancelled, ValidationError
from ._dedup import SeenSet, dedupe
from ._paging import EXHAUSTIVE_UNTIL_EQUAL, EXHAUSTIVE_WITH_BACKOFF, fetch_all, with_delay
from ._reconciler import ListReconciler, Plan, SyncReport, plan as _plan
from ._token_gate import CredentialSource, Refresher, TokenGate
from ._types import FilterSpec, ListState, MediaItem, MediaKind, PageCursor, RemoteList

__all__ = ["SyncEngine"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _list_from_payload(d: Mapping[str, Any], *, owner: str, kind: MediaKind = MediaKind.MOVIE) -> RemoteList:
    ids = d.get("ids") or {}
    user = d.get("user") or {}
    uname = ((user.get("ids") or {}).get("slug") or user.get("username") or owner) if isinstance(user, Mapping) else owner
    lid = ids.get("trakt")
    return RemoteList(
        name=str(d.get("name") or ""),
        owner=str(uname or owner),
        kind=kind,
        id=int(lid) if lid is not None else None,
        slug=ids.get("slug") or None,
        description=d.get("description"),
    )


class SyncEngine:
    """
    Public list operations. Each operation resolves its own credential through the
    token gate and hands the access token to the API wrapper, so one engine can
    serve concurrent runs for different users.
    """

    def __init__(
        self,
        api: TraktListsAPI,
        gate: TokenGate,
        *,
        page_size: int = 100,
        page_delay: float = 0.5,
        chunk_size: int = 0,
        description: str = "",
        clock: Callable[[], datetime] = _utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api = api
        self.gate = gate
        self.page_size = min(100, max(1, int(page_size)))
        self.list_policy = with_delay(EXHAUSTIVE_WITH_BACKOFF, page_delay)
        self.search_policy = EXHAUSTIVE_UNTIL_EQUAL
        self.chunk_size = max(0, int(chunk_size or 0))
        self.description = description
        self.clock = clock
        self.sleep = sleep
        self.log = _root_log.child("ENGINE")

    @classmethod
    def from_config(
        cls,
        cfg: Mapping[str, Any] | None = None,
        *,
        store: CredentialSource | None = None,
        refresher: Refresher | None = None,
        current_user: Callable[[], str | None] | None = None,
        session: Any = None,
    ) -> "SyncEngine":
        cfg = dict(cfg or load_config())
        tr = trakt_settings(cfg)
        if store is None:
            from ..credentials import ConfigCredentialStore
            store = ConfigCredentialStore()
        api = TraktListsAPI(
            tr["client_id"],
            session=session,
            timeout=tr["timeout"],
            max_retries=tr["max_retries"],
        )
        gate = TokenGate(store, refresher or make_provider(cfg), current_user=current_user)
        return cls(
            api,
            gate,
            page_size=tr["page_size"],
            page_delay=tr["page_delay_ms"] / 1000.0,
            chunk_size=tr["chunk_size"],
            description=str(tr.get("list_description") or ""),
        )

    # --- guards -------------------------------------------------------------------

    @staticmethod
    def _require_live(lst: RemoteList, op: str) -> None:
        if lst.state is ListState.DELETED:
            raise ValidationError(f"{op}: list '{lst.name}' was deleted")

    @classmethod
    def _require_remote(cls, lst: RemoteList, op: str) -> None:
        cls._require_live(lst, op)
        if lst.id is None:
            raise ValidationError(f"{op}: list '{lst.name}' has no remote id")

    @classmethod
    def _require_slug(cls, lst: RemoteList, op: str) -> str:
        cls._require_live(lst, op)
        if not lst.slug:
            raise ValidationError(f"{op}: list '{lst.name}' has no slug")
        return lst.slug

    def _token(self, user: str | None) -> tuple[str, str]:
        cred = self.gate.prepare(user)
        return cred.user, cred.access_token

    # --- list CRUD ------------------------------------------------------------------

    def create(self, lst: RemoteList) -> RemoteList:
        if lst.id is not None:
            raise ValidationError(f"create: list '{lst.name}' already exists remotely (id {lst.id})")
        if not lst.name.strip():
            raise ValidationError("create: list name is empty")
        user, token = self._token(lst.owner or None)
        desc = lst.description or self.description
        res = self.api.create_list(token, lst.name, desc)
        made = _list_from_payload(res, owner=user, kind=lst.kind)
        if made.id is None or not made.slug:
            raise RemoteCallError(f"create: remote answered without ids for '{lst.name}'", method="POST", body=res)
        lst.id, lst.slug, lst.owner = made.id, made.slug, lst.owner or user
        lst.description = desc
        lst.last_processed = self.clock()
        lst.process = True
        lst.state = ListState.CREATED
        self.log.success(f"created list '{lst.name}'", extra={"id": lst.id, "slug": lst.slug})
        return lst

    def get(self, list_id: int, user: str | None = None) -> RemoteList:
        owner, token = self._token(user)
        return _list_from_payload(self.api.get_list(token, list_id), owner=owner)

    def update(self, lst: RemoteList) -> RemoteList:
        self._require_remote(lst, "update")
        _, token = self._token(lst.owner or None)
        res = self.api.update_list(token, lst.id, lst.name, lst.description or self.description)
        if res.get("name"):
            lst.name = str(res["name"])
        self.log.info(f"updated list '{lst.name}'", extra={"id": lst.id})
        return lst

    def delete(self, lst: RemoteList) -> RemoteList:
        self._require_remote(lst, "delete")
        user, token = self._token(lst.owner or None)
        self.api.delete_list(token, lst.owner or user, lst.slug or str(lst.id))
        lst.process = False
        lst.state = ListState.DELETED
        self.log.info(f"deleted list '{lst.name}'", extra={"id": lst.id})
        return lst

    def lists_for(self, user: str | None = None) -> list[RemoteList]:
        owner, token = self._token(user)
        return [_list_from_payload(d, owner=owner) for d in self.api.get_lists(token, owner)]

    # --- paged reads --------------------------------------------------------------

    def _list_contents(self, lst: RemoteList, kind: MediaKind, cancel: threading.Event | None) -> list[MediaItem]:
        slug = self._require_slug(lst, f"get_{kind.plural}")
        user, token = self._token(lst.owner or None)
        owner = lst.owner or user

        def fetch(cur: PageCursor):
            return self.api.list_items_page(token, owner, slug, kind.value, **cur.as_params())

        rows = fetch_all(
            fetch, self.list_policy, limit=self.page_size, cancel=cancel, sleep=self.sleep, label=f"{slug}:{kind.plural}"
        )
        return [MediaItem.from_payload(kind, r) for r in rows]

    def get_movies(self, lst: RemoteList, cancel: threading.Event | None = None) -> list[MediaItem]:
        return self._list_contents(lst, MediaKind.MOVIE, cancel)

    def get_shows(self, lst: RemoteList, cancel: threading.Event | None = None) -> list[MediaItem]:
        return self._list_contents(lst, MediaKind.SHOW, cancel)

    def get_items(self, lst: RemoteList, cancel: threading.Event | None = None) -> list[MediaItem]:
        return self._list_contents(lst, lst.kind, cancel)

    def _search(
        self,
        kind: MediaKind,
        filters: FilterSpec,
        user: str | None,
        cancel: threading.Event | None,
        seen: SeenSet | None = None,
    ) -> list[MediaItem]:
        params = filters.to_params(kind)
        _, token = self._token(user)
        seen = seen if seen is not None else SeenSet()

        def fetch(cur: PageCursor):
            return self.api.search_page(token, kind.value, params, **cur.as_params())

        rows = fetch_all(fetch, self.search_policy, limit=self.page_size, cancel=cancel, sleep=self.sleep, label=f"search:{kind.value}")
        found = [MediaItem.from_payload(kind, r) for r in rows]
        out = dedupe(found, seen)
        if len(out) != len(found):
            self.log.debug(f"search:{kind.value} dropped {len(found) - len(out)} duplicate(s)")
        return out

    def movie_search(
        self, filters: FilterSpec, user: str | None = None, cancel: threading.Event | None = None
    ) -> list[MediaItem]:
        return self._search(MediaKind.MOVIE, filters, user, cancel)

    def show_search(
        self, filters: FilterSpec, user: str | None = None, cancel: threading.Event | None = None
    ) -> list[MediaItem]:
        return self._search(MediaKind.SHOW, filters, user, cancel)

    def search(self, lst: RemoteList, cancel: threading.Event | None = None) -> list[MediaItem]:
        return self._search(lst.kind, lst.filters, lst.owner or None, cancel)

    # --- membership -----------------------------------------------------------------

    def _mutate(
        self, op: str, lst: RemoteList, items: Iterable[MediaItem], kind: MediaKind | None = None
    ) -> dict[str, Any]:
        slug = self._require_slug(lst, op)
        batch = list(items or [])
        if kind is not None:
            wrong = [it for it in batch if it.kind is not kind]
            if wrong:
                raise ValidationError(f"{op}: {len(wrong)} item(s) are not {kind.plural}")
        body, skipped = build_items_body(batch)
        if skipped:
            self.log.warn(f"{op}: {len(skipped)} item(s) without a usable id skipped", extra={"slug": slug})
        if not body:
            return {}
        user, token = self._token(lst.owner or None)
        call = self.api.remove_items if op.startswith("remove") else self.api.add_items
        return call(token, lst.owner or user, slug, body)

    def add_movies(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("add_movies", lst, items, MediaKind.MOVIE)

    def add_shows(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("add_shows", lst, items, MediaKind.SHOW)

    def remove_movies(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("remove_movies", lst, items, MediaKind.MOVIE)

    def remove_shows(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("remove_shows", lst, items, MediaKind.SHOW)

    def add_items(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("add_items", lst, items)

    def remove_items(self, lst: RemoteList, items: Iterable[MediaItem]) -> dict[str, Any]:
        return self._mutate("remove_items", lst, items)

    # --- reconcile ------------------------------------------------------------------

    def plan(self, desired: Iterable[MediaItem], actual: Iterable[MediaItem]) -> Plan:
        return _plan(desired, actual)

    def reconciler_for(self, lst: RemoteList) -> ListReconciler:
        return ListReconciler(
            lambda batch: self.add_items(lst, batch),
            lambda batch: self.remove_items(lst, batch),
            chunk_size=self.chunk_size,
        )

    def reconcile(self, lst: RemoteList, cancel: threading.Event | None = None) -> SyncReport:
        """
        desired = search(filters), actual = list contents, then add desired minus actual
        and remove actual minus desired. Cancellation is honoured up to the first
        mutation; once batches are being sent the run completes or fails.
        """
        self._require_slug(lst, "reconcile")
        prev = lst.state
        lst.state = ListState.PROCESSING
        try:
            desired = self.search(lst, cancel)
            actual = self.get_items(lst, cancel)
            if cancel is not None and cancel.is_set():
                raise SyncCancelled(f"reconcile of '{lst.slug}' cancelled before applying changes")
            p = _plan(desired, actual)
            rep = self.reconciler_for(lst).apply(p, slug=lst.slug)
        except Exception:
            lst.state = prev
            raise
        rep.desired, rep.actual = len(desired), len(actual)
        lst.last_processed = self.clock()
        lst.state = ListState.UPDATED
        self.log.info(
            f"reconciled '{lst.slug}'",
            extra={"desired": rep.desired, "actual": rep.actual, "added": rep.added, "removed": rep.removed},
        )
        return rep
