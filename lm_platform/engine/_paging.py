# lm_platform/engine/_paging.py
# page-by-page retrieval with a pluggable stop rule.
from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from _logging import log as _root_log

from ..errors import SyncCancelled
from ._types import Page, PageCursor

log = _root_log.child("PAGING")

FetchPage = Callable[[PageCursor], tuple[list[Any], "int | None"]]


def _stop_at_total(page: int, total: int) -> bool:
    # pages are 1-based, so "last page reached" and "page == total" coincide;
    # a remote that reports 0 pages leaves page > total and must stop too
    return page >= total


@dataclass(frozen=True)
class FetchPolicy:
    name: str
    stop: Callable[[int, int], bool]
    delay: float = 0.0


# list reads, paced between requests
EXHAUSTIVE_WITH_BACKOFF = FetchPolicy("exhaustive_with_backoff", _stop_at_total, delay=0.5)
# search reads, back to back
EXHAUSTIVE_UNTIL_EQUAL = FetchPolicy("exhaustive_until_equal", _stop_at_total, delay=0.0)


def iter_pages(
    fetch: FetchPage,
    policy: FetchPolicy,
    *,
    limit: int = 100,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "",
) -> Iterator[Page]:
    """
    Yield every page from page 1 until the policy's stop rule holds.

    fetch(cursor) returns (items, total_pages). When the remote does not report a
    total, a short or empty page ends the walk. Errors raised by fetch propagate.
    """
    cursor = PageCursor(1, max(1, int(limit)))
    while True:
        if cancel is not None and cancel.is_set():
            raise SyncCancelled(f"cancelled before page {cursor.page}")
        items, total = fetch(cursor)
        items = list(items or [])
        yield Page(items, cursor.page, total)

        if total is None:
            if len(items) < cursor.limit:
                break
        elif policy.stop(cursor.page, int(total)):
            break

        cursor = cursor.next()
        if policy.delay > 0:
            sleep(policy.delay)

    log.debug(f"{label or policy.name}: walked {cursor.page} page(s)")


def fetch_all(
    fetch: FetchPage,
    policy: FetchPolicy,
    *,
    limit: int = 100,
    cancel: threading.Event | None = None,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "",
) -> list[Any]:
    """All items across all pages, in order. A failed page fails the whole fetch."""
    out: list[Any] = []
    for page in iter_pages(fetch, policy, limit=limit, cancel=cancel, sleep=sleep, label=label):
        out.extend(page.items)
    return out


def with_delay(policy: FetchPolicy, delay: float) -> FetchPolicy:
    return FetchPolicy(policy.name, policy.stop, max(0.0, float(delay)))


__all__ = [
    "FetchPolicy",
    "EXHAUSTIVE_WITH_BACKOFF",
    "EXHAUSTIVE_UNTIL_EQUAL",
    "iter_pages",
    "fetch_all",
    "with_delay",
]
