# lm_platform/engine/__init__.py
from __future__ import annotations

from ..errors import AuthExpiredError, EngineError, RemoteCallError, SyncCancelled, ValidationError
from ._dedup import SeenSet, dedupe
from ._paging import EXHAUSTIVE_UNTIL_EQUAL, EXHAUSTIVE_WITH_BACKOFF, FetchPolicy, fetch_all, iter_pages
from ._reconciler import ListReconciler, Plan, SyncReport, plan
from ._token_gate import TokenGate
from ._types import (
    Credential,
    FilterSpec,
    ListState,
    MediaItem,
    MediaKind,
    Page,
    PageCursor,
    Range,
    RemoteList,
)
from .facade import SyncEngine

__all__ = [
    "SyncEngine",
    "TokenGate",
    "ListReconciler",
    "Plan",
    "SyncReport",
    "plan",
    "SeenSet",
    "dedupe",
    "FetchPolicy",
    "EXHAUSTIVE_WITH_BACKOFF",
    "EXHAUSTIVE_UNTIL_EQUAL",
    "iter_pages",
    "fetch_all",
    "Credential",
    "FilterSpec",
    "ListState",
    "MediaItem",
    "MediaKind",
    "Page",
    "PageCursor",
    "Range",
    "RemoteList",
    "EngineError",
    "AuthExpiredError",
    "RemoteCallError",
    "SyncCancelled",
    "ValidationError",
]
