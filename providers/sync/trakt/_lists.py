# /providers/sync/trakt/_lists.py
# ListMirror - Trakt custom lists and search endpoints
from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote

import requests

from lm_platform.errors import RemoteCallError
from ._common import build_headers, payload_of, pick_trakt_kind
from .._log import log
from .._mod_common import build_session, hdr_int, label_trakt, request_with_retries, safe_json

BASE = "https://api.trakt.tv"
URL_SEARCH_FMT = "{base}/search/{kind}"
URL_USER_LISTS_FMT = "{base}/users/{owner}/lists"
URL_LIST_FMT = "{base}/users/{owner}/lists/{lid}"
URL_LIST_ITEMS_FMT = "{base}/users/{owner}/lists/{lid}/items/{kind}"
URL_LIST_ADD_FMT = "{base}/users/{owner}/lists/{lid}/items"
URL_LIST_REM_FMT = "{base}/users/{owner}/lists/{lid}/items/remove"

PAGE_COUNT_HEADER = "X-Pagination-Page-Count"


def _q(v: Any) -> str:
    return quote(str(v), safe="")


class TraktListsAPI:
    """
    Stateless wrapper over the Trakt endpoints the list engine needs.
    The bearer token is an argument of every call; nothing about the
    caller's identity is kept on the instance, so one instance can serve
    concurrent runs for different users.
    """

    def __init__(
        self,
        client_id: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        base: str = BASE,
    ):
        self.client_id = client_id
        self.session = session or build_session("TRAKT", feature_label=label_trakt)
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self.base = base.rstrip("/")

    # --- transport ------------------------------------------------------------

    def _call(
        self,
        method: str,
        url: str,
        token: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> requests.Response:
        feature = label_trakt(method, url, {})
        try:
            r = request_with_retries(
                self.session,
                method,
                url,
                headers=build_headers(self.client_id, token),
                params=dict(params or {}),
                json=json,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        except requests.RequestException as e:
            log("TRAKT", feature, "error", f"{method} {url} failed: {e}")
            raise RemoteCallError(f"{method} {url} failed: {e}", method=method, url=url, cause=e) from e

        if not (200 <= r.status_code < 300):
            body = safe_json(r) or (r.text or "")[:400]
            log("TRAKT", feature, "error", f"{method} {url} -> {r.status_code}", body=body)
            raise RemoteCallError(
                f"{method} {url} -> {r.status_code}",
                method=method,
                url=url,
                status=r.status_code,
                body=body,
            )
        return r

    def _paged(
        self,
        url: str,
        token: str,
        kind: str,
        *,
        page: int,
        limit: int,
        params: Mapping[str, Any] | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]:
        q = dict(params or {})
        q.update({"extended": "full", "page": page, "limit": limit})
        r = self._call("GET", url, token, params=q)
        rows = safe_json(r)
        if not isinstance(rows, list):
            rows = []
        out: list[dict[str, Any]] = []
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            node = payload_of(row, kind)
            if node is not None:
                out.append(dict(node))
        total = hdr_int(r.headers, PAGE_COUNT_HEADER)
        log("TRAKT", label_trakt("GET", url, {}), "debug", "page fetched", page=page, rows=len(out), total_pages=total)
        return out, total

    # --- paged reads ------------------------------------------------------------

    def search_page(
        self,
        token: str,
        kind: str,
        params: Mapping[str, Any],
        *,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int | None]:
        k = pick_trakt_kind(kind)[:-1]
        url = URL_SEARCH_FMT.format(base=self.base, kind=k)
        return self._paged(url, token, k, page=page, limit=limit, params=params)

    def list_items_page(
        self,
        token: str,
        owner: str,
        slug: str,
        kind: str,
        *,
        page: int,
        limit: int,
    ) -> tuple[list[dict[str, Any]], int | None]:
        plural = pick_trakt_kind(kind)
        url = URL_LIST_ITEMS_FMT.format(base=self.base, owner=_q(owner), lid=_q(slug), kind=plural)
        return self._paged(url, token, plural[:-1], page=page, limit=limit)

    # --- list CRUD --------------------------------------------------------------

    def get_lists(self, token: str, owner: str = "me") -> list[dict[str, Any]]:
        r = self._call("GET", URL_USER_LISTS_FMT.format(base=self.base, owner=_q(owner)), token)
        data = safe_json(r)
        return [dict(x) for x in data if isinstance(x, Mapping)] if isinstance(data, list) else []

    def get_list(self, token: str, list_id: Any, owner: str = "me") -> dict[str, Any]:
        r = self._call("GET", URL_LIST_FMT.format(base=self.base, owner=_q(owner), lid=_q(list_id)), token)
        return dict(safe_json(r) or {})

    def create_list(self, token: str, name: str, description: str, *, privacy: str = "public") -> dict[str, Any]:
        body = {
            "name": name,
            "description": description,
            "privacy": privacy,
            "display_numbers": False,
            "allow_comments": False,
        }
        r = self._call("POST", URL_USER_LISTS_FMT.format(base=self.base, owner="me"), token, json=body)
        return dict(safe_json(r) or {})

    def update_list(
        self, token: str, list_id: Any, name: str, description: str, *, privacy: str = "public"
    ) -> dict[str, Any]:
        body = {
            "name": name,
            "description": description,
            "privacy": privacy,
            "display_numbers": False,
            "allow_comments": False,
        }
        r = self._call("PUT", URL_LIST_FMT.format(base=self.base, owner="me", lid=_q(list_id)), token, json=body)
        return dict(safe_json(r) or {})

    def delete_list(self, token: str, owner: str, slug: str) -> None:
        self._call("DELETE", URL_LIST_FMT.format(base=self.base, owner=_q(owner), lid=_q(slug)), token)

    # --- membership ---------------------------------------------------------------

    def add_items(self, token: str, owner: str, slug: str, body: Mapping[str, Any]) -> dict[str, Any]:
        url = URL_LIST_ADD_FMT.format(base=self.base, owner=_q(owner), lid=_q(slug))
        return dict(safe_json(self._call("POST", url, token, json=dict(body))) or {})

    def remove_items(self, token: str, owner: str, slug: str, body: Mapping[str, Any]) -> dict[str, Any]:
        url = URL_LIST_REM_FMT.format(base=self.base, owner=_q(owner), lid=_q(slug))
        return dict(safe_json(self._call("POST", url, token, json=dict(body))) or {})


__all__ = ["TraktListsAPI", "BASE", "PAGE_COUNT_HEADER"]
