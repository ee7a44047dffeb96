# ListMirror test scripts
from __future__ import annotations

from typing import Any, Sequence

from lm_platform.engine import ListReconciler, MediaItem, MediaKind, plan


def _m(tag: str, tid: int) -> MediaItem:
    return MediaItem.from_payload(MediaKind.MOVIE, {"title": tag, "ids": {"trakt": tid}})


A, B, C, D = _m("A", 1), _m("B", 2), _m("C", 3), _m("D", 4)


def test_plan_is_set_difference_by_stable_id() -> None:
    p = plan([A, B, C], [B, C, D])
    assert [it.title for it in p.to_add] == ["A"]
    assert [it.title for it in p.to_remove] == ["D"]


def test_plan_is_idempotent_for_equal_sets() -> None:
    p = plan([A, B, C], [_m("c-renamed", 3), B, A])
    assert p.is_empty
    assert p.to_add == [] and p.to_remove == []


def test_plan_ignores_duplicates_on_either_side() -> None:
    p = plan([A, A, B], [C, C])
    assert [it.title for it in p.to_add] == ["A", "B"]
    assert [it.title for it in p.to_remove] == ["C"]


class Recorder:
    def __init__(self, section: str):
        self.section = section
        self.batches: list[list[str]] = []

    def __call__(self, batch: Sequence[MediaItem]) -> dict[str, Any]:
        self.batches.append([it.title or "" for it in batch])
        return {self.section: {"movies": len(batch), "shows": 0}, "not_found": {"movies": []}}


def test_apply_sends_one_add_and_one_remove_batch() -> None:
    add, rem = Recorder("added"), Recorder("deleted")
    rep = ListReconciler(add, rem).apply(plan([A, B, C], [B, C, D]), slug="s")
    assert add.batches == [["A"]]
    assert rem.batches == [["D"]]
    assert (rep.attempted, rep.added, rep.removed) == (2, 1, 1)


def test_apply_skips_empty_plan() -> None:
    add, rem = Recorder("added"), Recorder("deleted")
    rep = ListReconciler(add, rem).apply(plan([A], [A]))
    assert add.batches == [] and rem.batches == []
    assert rep.attempted == 0


def test_apply_chunks_large_batches() -> None:
    items = [_m(f"M{i}", 100 + i) for i in range(5)]
    add, rem = Recorder("added"), Recorder("deleted")
    rep = ListReconciler(add, rem, chunk_size=2).apply(plan(items, []))
    assert [len(b) for b in add.batches] == [2, 2, 1]
    assert rep.added == 5


def test_apply_counts_existing_and_not_found() -> None:
    def add(batch: Sequence[MediaItem]) -> dict[str, Any]:
        return {
            "added": {"movies": 1},
            "existing": {"movies": 1},
            "not_found": {"movies": [{"ids": {"trakt": 9}}]},
        }

    rep = ListReconciler(add, Recorder("deleted")).apply(plan([A, B, C], []))
    assert (rep.added, rep.existing, rep.not_found) == (1, 1, 1)
