# lm_platform/scheduling.py
# ListMirror - picks lists that are due and reconciles them on a small worker pool.
from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta, timezone
from typing import Any

from _logging import log as _root_log

from .engine import RemoteList, SyncEngine, SyncReport

log = _root_log.child("SCHED")


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def due_lists(lists: Iterable[RemoteList], now: datetime, min_interval: timedelta) -> list[RemoteList]:
    """Lists flagged for processing, known remotely and not reconciled within min_interval."""
    now = _aware(now)
    out: list[RemoteList] = []
    for lst in lists:
        if not lst.process or not lst.has_remote:
            continue
        if lst.last_processed is None or now - _aware(lst.last_processed) >= min_interval:
            out.append(lst)
    return out


def min_interval_from(cfg: Mapping[str, Any]) -> timedelta:
    rt = cfg.get("runtime") or {}
    try:
        hours = float(rt.get("min_interval_hours", 24))
    except (TypeError, ValueError):
        hours = 24.0
    return timedelta(hours=max(0.0, hours))


class ListRunner:
    def __init__(self, engine: SyncEngine, workers: int = 2, min_interval: timedelta = timedelta(hours=24)):
        self.engine = engine
        self.workers = max(1, int(workers or 1))
        self.min_interval = min_interval

    @classmethod
    def from_config(cls, engine: SyncEngine, cfg: Mapping[str, Any]) -> "ListRunner":
        rt = cfg.get("runtime") or {}
        try:
            workers = int(rt.get("workers", 2))
        except (TypeError, ValueError):
            workers = 2
        return cls(engine, workers=workers, min_interval=min_interval_from(cfg))

    def _one(self, lst: RemoteList, cancel: threading.Event | None) -> SyncReport:
        return self.engine.reconcile(lst, cancel)

    def run(
        self, lists: Iterable[RemoteList], cancel: threading.Event | None = None
    ) -> dict[str, SyncReport | Exception]:
        """
        Reconcile every given list. A list that fails is logged and its exception is
        returned in place of a report; the remaining lists still run.
        """
        todo = list(lists)
        results: dict[str, SyncReport | Exception] = {}
        if not todo:
            return results

        log.info(f"running {len(todo)} list(s) on {min(self.workers, len(todo))} worker(s)")
        with ThreadPoolExecutor(max_workers=min(self.workers, len(todo))) as ex:
            futs = {ex.submit(self._one, lst, cancel): lst for lst in todo}
            for fut in as_completed(futs):
                lst = futs[fut]
                key = lst.slug or str(lst.id)
                try:
                    results[key] = fut.result()
                except Exception as e:
                    log.error(f"list '{key}' failed: {e}", extra={"owner": lst.owner, "error": type(e).__name__})
                    results[key] = e

        ok = sum(1 for v in results.values() if not isinstance(v, Exception))
        log.info(f"run finished: {ok}/{len(results)} list(s) reconciled")
        return results

    def run_due(
        self,
        lists: Iterable[RemoteList],
        *,
        now: datetime | None = None,
        min_interval: timedelta | None = None,
        cancel: threading.Event | None = None,
    ) -> dict[str, SyncReport | Exception]:
        gap = self.min_interval if min_interval is None else min_interval
        return self.run(due_lists(lists, now or datetime.now(timezone.utc), gap), cancel)


__all__ = ["due_lists", "min_interval_from", "ListRunner"]
