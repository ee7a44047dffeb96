# /lm_platform/id_map.py
# Common ID handling for movies/shows.
# - Normalize/clean IDs returned by the remote API.
# - Generate stable keys used for deduplication and list reconciliation.
# - Minimal projection for logs and request bodies.

from __future__ import annotations
import re
from typing import Any, Dict, Mapping, Optional, Tuple

# Public policy: the remote's own numeric id wins, external ids are fallbacks.
ID_KEYS: Tuple[str, ...]       = ("trakt", "slug", "imdb", "tmdb", "tvdb")
KEY_PRIORITY: Tuple[str, ...]  = ("trakt", "imdb", "tmdb", "tvdb", "slug")

__all__ = [
    "ID_KEYS", "KEY_PRIORITY",
    "norm_type", "ids_from", "coalesce_ids",
    "canonical_key", "stable_key", "minimal",
]

# --- tiny utils ---------------------------------------------------------------

_CLEAN_SENTINELS = {"none", "null", "nan", "undefined", "unknown", "0", ""}

def _norm_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None

def norm_type(t: Any) -> str:
    x = (str(t or "")).strip().lower()
    if x in ("movies", "movie"): return "movie"
    if x in ("shows", "show", "series", "tv"): return "show"
    return x or "movie"

def _normalize_id(key: str, val: Any) -> Optional[str]:
    """Normalize ids so values from different endpoints compare equal."""
    k = (key or "").lower().strip()
    s = _norm_str(val)
    if not s:
        return None
    if s.lower() in _CLEAN_SENTINELS:
        return None

    if k in ("tmdb", "tvdb", "trakt"):
        digits = re.sub(r"\D+", "", s)
        return digits or None

    if k == "imdb":
        s = s.lower()
        m = re.search(r"(tt\d+)", s)
        if m:
            return m.group(1)
        digits = re.sub(r"\D+", "", s)
        return f"tt{digits}" if digits else None

    if k == "slug":
        return s.lower()

    return s

# --- Collect ------------------------------------------------------------------

def coalesce_ids(*many: Mapping[str, Any]) -> Dict[str, str]:
    """Merge several 'ids' maps into one normalized dict (later maps win)."""
    out: Dict[str, str] = {}
    for ids in many:
        if not isinstance(ids, Mapping):
            continue
        for k in ID_KEYS:
            n = _normalize_id(k, ids.get(k))
            if n:
                out[k] = n
    return out

def ids_from(item: Mapping[str, Any]) -> Dict[str, str]:
    """Pull IDs from item["ids"] and from top level fields (trakt/imdb/...)."""
    base = item.get("ids") if isinstance(item.get("ids"), Mapping) else {}
    top = {k: item.get(k) for k in ID_KEYS if item.get(k) is not None}
    return coalesce_ids(top, base or {})

# --- Keys ---------------------------------------------------------------------

def _best_id_key(idmap: Mapping[str, str]) -> Optional[str]:
    for k in KEY_PRIORITY:
        v = idmap.get(k)
        if v:
            return f"{k}:{v}".lower()
    return None

def stable_key(kind: Any, ids: Mapping[str, Any]) -> Optional[str]:
    """'movie:trakt:123' style key, or None when no usable id is present."""
    best = _best_id_key(coalesce_ids(ids))
    if not best:
        return None
    return f"{norm_type(kind)}:{best}"

def canonical_key(item: Mapping[str, Any]) -> str:
    """
    One stable string per entity:
    - Prefer ids (by KEY_PRIORITY), scoped by media type.
    - Fallback: type|title|year (only when no ids are available).
    """
    typ = norm_type(item.get("type"))
    key = stable_key(typ, ids_from(item))
    if key:
        return key
    t = _norm_str(item.get("title"))
    if not t:
        return "unknown:"
    y = _norm_str(item.get("year")) or ""
    return f"{typ}|title:{t.lower()}|year:{y}"

# --- Minimal projection -------------------------------------------------------

def minimal(item: Mapping[str, Any]) -> Dict[str, Any]:
    ids = ids_from(item)
    return {
        "type": norm_type(item.get("type")),
        "title": item.get("title"),
        "year": item.get("year"),
        "ids": {k: ids[k] for k in ID_KEYS if k in ids},
    }
