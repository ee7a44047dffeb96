# ListMirror test scripts
from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

from lm_platform.engine import RemoteCallError, RemoteList, SyncReport
from lm_platform.scheduling import ListRunner, due_lists, min_interval_from

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _lst(slug: str, *, process: bool = True, age_h: float | None = 48, lid: int | None = 1) -> RemoteList:
    return RemoteList(
        name=slug,
        owner="alice",
        id=lid,
        slug=slug,
        process=process,
        last_processed=None if age_h is None else NOW - timedelta(hours=age_h),
    )


def test_due_lists_selects_stale_processable_lists() -> None:
    lists = [
        _lst("stale"),
        _lst("fresh", age_h=1),
        _lst("never", age_h=None),
        _lst("paused", process=False),
        _lst("unsynced", lid=None),
    ]
    due = due_lists(lists, NOW, timedelta(hours=24))
    assert [x.slug for x in due] == ["stale", "never"]


def test_min_interval_from_runtime_block() -> None:
    assert min_interval_from({"runtime": {"min_interval_hours": 6}}) == timedelta(hours=6)
    assert min_interval_from({}) == timedelta(hours=24)


class FakeEngine:
    def __init__(self, failing: set[str]):
        self.failing = failing
        self.seen: list[str] = []
        self._lock = threading.Lock()

    def reconcile(self, lst: RemoteList, cancel=None) -> SyncReport:
        with self._lock:
            self.seen.append(lst.slug or "")
        if lst.slug in self.failing:
            raise RemoteCallError("remote down", status=502)
        return SyncReport(slug=lst.slug, added=1)


def test_one_failure_does_not_abort_other_lists() -> None:
    eng = FakeEngine({"b"})
    out = ListRunner(eng, workers=2).run([_lst("a"), _lst("b"), _lst("c")])
    assert sorted(eng.seen) == ["a", "b", "c"]
    assert isinstance(out["b"], RemoteCallError)
    assert isinstance(out["a"], SyncReport) and out["a"].added == 1
    assert isinstance(out["c"], SyncReport)


def test_run_due_skips_lists_not_due() -> None:
    eng = FakeEngine(set())
    out = ListRunner(eng).run_due([_lst("a"), _lst("b", age_h=2)], now=NOW)
    assert list(out) == ["a"]


def test_empty_run() -> None:
    assert ListRunner(FakeEngine(set())).run([]) == {}


def test_runner_from_config_reads_runtime_block() -> None:
    cfg = {"runtime": {"workers": "4", "min_interval_hours": 1}}
    runner = ListRunner.from_config(FakeEngine(set()), cfg)
    assert runner.workers == 4
    assert runner.min_interval == timedelta(hours=1)
    # age 2h is due under a 1h interval, not under the 24h default
    assert list(runner.run_due([_lst("a", age_h=2)], now=NOW)) == ["a"]


def test_runner_from_config_defaults() -> None:
    runner = ListRunner.from_config(FakeEngine(set()), {"runtime": {"workers": "lots"}})
    assert runner.workers == 2
    assert runner.min_interval == timedelta(hours=24)


def test_sweeper_reconciles_registered_lists() -> None:
    from listmirror import MemoryLists, start_sweeper

    eng = FakeEngine(set())
    lists = MemoryLists()
    lists.put(_lst("a", age_h=None))
    stop = threading.Event()
    t = start_sweeper(ListRunner(eng, workers=1), lists, stop, every=0.01)
    try:
        for _ in range(200):
            if eng.seen:
                break
            threading.Event().wait(0.01)
    finally:
        stop.set()
        t.join(timeout=2)
    assert "a" in eng.seen
