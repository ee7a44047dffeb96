# lm_platform/engine/_types.py
# data model shared by the engine components.
from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from collections.abc import Iterable, Mapping
from typing import Any

from ..id_map import canonical_key, coalesce_ids, minimal, stable_key
from ..errors import ValidationError


class MediaKind(Enum):
    MOVIE = "movie"
    SHOW = "show"

    @property
    def plural(self) -> str:
        return f"{self.value}s"

    @property
    def show_only_filters(self) -> bool:
        return self is MediaKind.SHOW

    @classmethod
    def parse(cls, v: Any) -> "MediaKind":
        if isinstance(v, MediaKind):
            return v
        s = str(v or "").strip().lower()
        if s in ("show", "shows", "series", "tv"):
            return cls.SHOW
        if s in ("movie", "movies", "film"):
            return cls.MOVIE
        raise ValidationError(f"unknown media kind: {v!r}")


class ListState(Enum):
    UNSYNCED = "unsynced"
    CREATED = "created"
    PROCESSING = "processing"
    UPDATED = "updated"
    DELETED = "deleted"


SEARCH_FIELDS: tuple[str, ...] = (
    "title", "tagline", "overview", "people", "translations", "aliases", "name", "biography",
)


@dataclass(frozen=True)
class Range:
    from_: int | None = None
    to: int | None = None

    @property
    def is_open(self) -> bool:
        return self.from_ is None and self.to is None

    def validate(self, name: str) -> None:
        if self.from_ is not None and self.to is not None and self.from_ > self.to:
            raise ValidationError(f"{name}: from ({self.from_}) must be <= to ({self.to})")

    def as_param(self, floor: int, ceiling: int) -> str | None:
        """'from-to' for the search query; a missing bound takes the floor/ceiling."""
        if self.is_open:
            return None
        lo = self.from_ if self.from_ is not None else floor
        hi = self.to if self.to is not None else ceiling
        return f"{lo}-{hi}"

    @classmethod
    def parse(cls, v: Any) -> "Range":
        if isinstance(v, Range):
            return v
        if v is None:
            return cls()
        if isinstance(v, Mapping):
            lo, hi = v.get("from", v.get("from_")), v.get("to")
        elif isinstance(v, (list, tuple)) and len(v) == 2:
            lo, hi = v
        else:
            raise ValidationError(f"range must be a [from, to] pair or a mapping, got {v!r}")
        try:
            return cls(int(lo) if lo is not None else None, int(hi) if hi is not None else None)
        except (TypeError, ValueError):
            raise ValidationError(f"range bounds must be integers, got {v!r}") from None

    def to_list(self) -> list[int | None]:
        return [self.from_, self.to]


# floor/ceiling used when only one bound of a range is given
_RANGE_LIMITS: dict[str, tuple[int, int]] = {
    "years": (1800, 2100),
    "runtimes": (0, 1000),
    "ratings": (0, 100),
}


def _as_set(v: Any) -> frozenset[str]:
    if v is None:
        return frozenset()
    if isinstance(v, str):
        v = v.split(",")
    return frozenset(str(x).strip().lower() for x in v if str(x).strip())


@dataclass(frozen=True)
class FilterSpec:
    """Search criteria a list mirrors. Empty sets and open ranges mean "no constraint"."""

    query: str = ""
    search_fields: frozenset[str] = frozenset()
    years: Range = Range()
    runtimes: Range = Range()
    ratings: Range = Range()
    genres: frozenset[str] = frozenset()
    languages: frozenset[str] = frozenset()
    countries: frozenset[str] = frozenset()
    certifications: frozenset[str] = frozenset()  # shows only
    networks: frozenset[str] = frozenset()        # shows only

    def validate(self) -> "FilterSpec":
        for name in ("years", "runtimes", "ratings"):
            getattr(self, name).validate(name)
        unknown = sorted(self.search_fields - set(SEARCH_FIELDS))
        if unknown:
            raise ValidationError(f"unknown search fields: {', '.join(unknown)}")
        return self

    def to_params(self, kind: MediaKind) -> dict[str, str]:
        self.validate()
        params: dict[str, str] = {"query": self.query or ""}
        if self.search_fields:
            params["fields"] = ",".join(f for f in SEARCH_FIELDS if f in self.search_fields)
        for name, (floor, ceiling) in _RANGE_LIMITS.items():
            p = getattr(self, name).as_param(floor, ceiling)
            if p:
                params[name] = p
        sets = ["genres", "languages", "countries"]
        if kind.show_only_filters:
            sets += ["certifications", "networks"]
        for name in sets:
            vals = getattr(self, name)
            if vals:
                params[name] = ",".join(sorted(vals))
        return params

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None) -> "FilterSpec":
        d = dict(d or {})
        spec = cls(
            query=str(d.get("query") or ""),
            search_fields=_as_set(d.get("search_fields") or d.get("fields")),
            years=Range.parse(d.get("years")),
            runtimes=Range.parse(d.get("runtimes")),
            ratings=Range.parse(d.get("ratings")),
            genres=_as_set(d.get("genres")),
            languages=_as_set(d.get("languages")),
            countries=_as_set(d.get("countries")),
            certifications=_as_set(d.get("certifications")),
            networks=_as_set(d.get("networks")),
        )
        return spec.validate()

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "search_fields": sorted(self.search_fields),
            "years": self.years.to_list(),
            "runtimes": self.runtimes.to_list(),
            "ratings": self.ratings.to_list(),
            "genres": sorted(self.genres),
            "languages": sorted(self.languages),
            "countries": sorted(self.countries),
            "certifications": sorted(self.certifications),
            "networks": sorted(self.networks),
        }


@dataclass(frozen=True, eq=False)
class MediaItem:
    """A movie or show as returned by the remote. Identity is the remote's stable id."""

    kind: MediaKind
    ids: Mapping[str, str]
    title: str | None = None
    year: int | None = None
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MediaItem):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    @property
    def key(self) -> str:
        return stable_key(self.kind.value, self.ids) or canonical_key(
            {"type": self.kind.value, "title": self.title, "year": self.year}
        )

    def minimal(self) -> dict[str, Any]:
        return minimal({"type": self.kind.value, "title": self.title, "year": self.year, "ids": dict(self.ids)})

    @classmethod
    def from_payload(cls, kind: MediaKind, payload: Mapping[str, Any]) -> "MediaItem":
        year = payload.get("year")
        try:
            year = int(year) if year is not None else None
        except (TypeError, ValueError):
            year = None
        return cls(
            kind=kind,
            ids=coalesce_ids(payload.get("ids") or {}),
            title=payload.get("title"),
            year=year,
            raw=dict(payload),
        )


@dataclass
class Credential:
    user: str
    access_token: str
    refresh_token: str = ""
    expires_at: int = 0
    scope: str = "public"
    token_type: str = "bearer"

    def is_expired(self, now: float | None = None) -> bool:
        return int(self.expires_at or 0) < (time.time() if now is None else now)


@dataclass
class RemoteList:
    """A user-owned remote list and the filter it mirrors. id/slug are set by the remote."""

    name: str
    owner: str
    kind: MediaKind = MediaKind.MOVIE
    filters: FilterSpec = field(default_factory=FilterSpec)
    id: int | None = None
    slug: str | None = None
    description: str | None = None
    last_processed: datetime | None = None
    process: bool = False
    state: ListState = ListState.UNSYNCED

    @property
    def has_remote(self) -> bool:
        return self.id is not None and bool(self.slug)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "owner": self.owner,
            "kind": self.kind.value,
            "description": self.description,
            "last_processed": self.last_processed.isoformat() if self.last_processed else None,
            "process": self.process,
            "state": self.state.value,
            "filters": self.filters.to_dict(),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "RemoteList":
        lp = d.get("last_processed")
        return cls(
            name=str(d.get("name") or ""),
            owner=str(d.get("owner") or ""),
            kind=MediaKind.parse(d.get("kind") or "movie"),
            filters=FilterSpec.from_dict(d.get("filters")),
            id=int(d["id"]) if d.get("id") is not None else None,
            slug=d.get("slug") or None,
            description=d.get("description"),
            last_processed=datetime.fromisoformat(lp) if isinstance(lp, str) and lp else None,
            process=bool(d.get("process", False)),
            state=ListState(d.get("state") or ListState.UNSYNCED.value),
        )


@dataclass(frozen=True)
class PageCursor:
    page: int = 1
    limit: int = 100

    def next(self) -> "PageCursor":
        return PageCursor(self.page + 1, self.limit)

    def as_params(self) -> dict[str, int]:
        return {"page": self.page, "limit": self.limit}


@dataclass(frozen=True)
class Page:
    items: list[Any]
    page: int
    total_pages: int | None = None


def keys_of(items: Iterable[MediaItem]) -> set[str]:
    return {it.key for it in items}
