# lm_platform/engine/_dedup.py
from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable
from typing import Any, TypeVar

from ._types import MediaItem

T = TypeVar("T")


def _item_key(item: Any) -> Hashable:
    return item.key if isinstance(item, MediaItem) else item


class SeenSet:
    """Membership by stable key; first occurrence wins."""

    def __init__(self, key: Callable[[Any], Hashable] = _item_key):
        self._key = key
        self._seen: set[Hashable] = set()

    def contains(self, item: Any) -> bool:
        return self._key(item) in self._seen

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._seen)

    def add(self, item: Any) -> bool:
        """True when the item had not been seen before."""
        k = self._key(item)
        if k in self._seen:
            return False
        self._seen.add(k)
        return True


def dedupe(items: Iterable[T], seen: SeenSet | None = None) -> list[T]:
    seen = seen if seen is not None else SeenSet()
    return [it for it in items if seen.add(it)]


__all__ = ["SeenSet", "dedupe"]
