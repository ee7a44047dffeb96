# lm_platform/engine/_reconciler.py
# add/remove planning and application for one remote list.
from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from _logging import log as _root_log

from ._dedup import dedupe
from ._types import MediaItem, keys_of

log = _root_log.child("RECONCILE")

Mutation = Callable[[Sequence[MediaItem]], Mapping[str, Any]]


@dataclass(frozen=True)
class Plan:
    to_add: list[MediaItem] = field(default_factory=list)
    to_remove: list[MediaItem] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


@dataclass
class SyncReport:
    slug: str | None = None
    desired: int = 0
    actual: int = 0
    attempted: int = 0
    added: int = 0
    existing: int = 0
    removed: int = 0
    not_found: int = 0

    def as_dict(self) -> dict[str, Any]:
        return {
            "slug": self.slug,
            "desired": self.desired,
            "actual": self.actual,
            "attempted": self.attempted,
            "added": self.added,
            "existing": self.existing,
            "removed": self.removed,
            "not_found": self.not_found,
        }


def plan(desired: Iterable[MediaItem], actual: Iterable[MediaItem]) -> Plan:
    """Presence diff by stable key; order follows desired (adds) and actual (removes)."""
    want = dedupe(desired)
    have = dedupe(actual)
    want_keys, have_keys = keys_of(want), keys_of(have)
    return Plan(
        to_add=[it for it in want if it.key not in have_keys],
        to_remove=[it for it in have if it.key not in want_keys],
    )


def _chunks(items: Sequence[MediaItem], size: int) -> Iterable[Sequence[MediaItem]]:
    if size <= 0 or len(items) <= size:
        yield items
        return
    for i in range(0, len(items), size):
        yield items[i : i + size]


def _count(res: Mapping[str, Any], section: str) -> int:
    node = res.get(section) or {}
    if not isinstance(node, Mapping):
        return 0
    total = 0
    for v in node.values():
        try:
            total += int(v or 0)
        except (TypeError, ValueError):
            continue
    return total


def _not_found(res: Mapping[str, Any]) -> int:
    node = res.get("not_found") or {}
    if not isinstance(node, Mapping):
        return 0
    return sum(len(v) for v in node.values() if isinstance(v, list))


class ListReconciler:
    """
    Applies a Plan through two mutation callables, one add batch and one remove
    batch (each optionally chunked). Partial batches are not rolled back; a failing
    call propagates after the counts of earlier chunks were logged.
    """

    def __init__(self, add: Mutation, remove: Mutation, *, chunk_size: int = 0):
        self._add = add
        self._remove = remove
        self.chunk_size = max(0, int(chunk_size or 0))

    plan = staticmethod(plan)

    def apply(self, p: Plan, *, slug: str | None = None) -> SyncReport:
        rep = SyncReport(slug=slug, attempted=len(p.to_add) + len(p.to_remove))
        if p.is_empty:
            log.debug(f"{slug}: nothing to change")
            return rep

        for batch in _chunks(p.to_add, self.chunk_size) if p.to_add else ():
            res = self._add(batch)
            rep.added += _count(res, "added")
            rep.existing += _count(res, "existing")
            rep.not_found += _not_found(res)

        for batch in _chunks(p.to_remove, self.chunk_size) if p.to_remove else ():
            res = self._remove(batch)
            rep.removed += _count(res, "deleted")
            rep.not_found += _not_found(res)

        log.info(
            f"{slug}: +{rep.added} -{rep.removed}",
            extra={"existing": rep.existing, "not_found": rep.not_found},
        )
        return rep


__all__ = ["Plan", "SyncReport", "ListReconciler", "plan"]
