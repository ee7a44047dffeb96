# /providers/sync/trakt/_common.py
# ListMirror - Trakt headers, id sanitizing and request bodies
from __future__ import annotations
import os
from typing import Any, Dict, Iterable, Mapping

# ── headers ───────────────────────────────────────────────────────────────────
UA = os.environ.get("LM_UA", "ListMirror/1.0 (Trakt)")

def build_headers(client_id: str, access_token: str | None = None) -> Dict[str, str]:
    h = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "trakt-api-version": "2",
        "trakt-api-key": str(client_id or "").strip(),
        "User-Agent": UA,
    }
    token = str(access_token or "").strip()
    if token:
        h["Authorization"] = f"Bearer {token}"
    return h

# ── ids / kinds ───────────────────────────────────────────────────────────────
_ALLOWED_ID_KEYS = ("trakt", "slug", "imdb", "tmdb", "tvdb")

def ids_for_trakt(ids: Mapping[str, Any]) -> Dict[str, Any]:
    """Numeric ids as ints, imdb as 'tt..', slug as-is; empty values dropped."""
    out: Dict[str, Any] = {}
    for k in _ALLOWED_ID_KEYS:
        v = ids.get(k)
        if v is None:
            continue
        s = str(v).strip()
        if not s:
            continue
        if k in ("trakt", "tmdb", "tvdb"):
            if s.isdigit():
                out[k] = int(s)
        elif k == "imdb":
            out[k] = s if s.startswith("tt") else f"tt{''.join(ch for ch in s if ch.isdigit())}"
        else:
            out[k] = s
    return out

def pick_trakt_kind(kind: Any) -> str:
    t = str(getattr(kind, "value", kind) or "movie").lower()
    if t in ("show", "shows", "series", "tv"):
        return "shows"
    return "movies"

def payload_of(row: Mapping[str, Any], kind: str) -> Mapping[str, Any] | None:
    """Unwrap a search or list-item row ({"type": "movie", "movie": {...}})."""
    t = str(row.get("type") or kind).lower()
    node = row.get(t) if t in ("movie", "show") else None
    if node is None:
        node = row.get(kind)
    return node if isinstance(node, Mapping) else None

def build_items_body(items: Iterable[Any]) -> tuple[Dict[str, Any], list[Any]]:
    """
    Group items into {"movies": [...], "shows": [...]}.
    Items expose .kind and .ids; items without a usable id come back as skipped.
    """
    movies: list = []
    shows: list = []
    skipped: list = []
    for it in items or []:
        ids = ids_for_trakt(getattr(it, "ids", None) or {})
        if not ids:
            skipped.append(it)
            continue
        if pick_trakt_kind(getattr(it, "kind", "movie")) == "shows":
            shows.append({"ids": ids})
        else:
            movies.append({"ids": ids})
    body: Dict[str, Any] = {}
    if movies: body["movies"] = movies
    if shows:  body["shows"]  = shows
    return body, skipped
