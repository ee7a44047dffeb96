# ListMirror test scripts
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from lm_platform.engine import (
    FilterSpec,
    ListState,
    MediaItem,
    MediaKind,
    Range,
    RemoteList,
    ValidationError,
)


def test_range_rejects_inverted_bounds() -> None:
    with pytest.raises(ValidationError):
        Range(2020, 2000).validate("years")
    Range(2000, 2000).validate("years")
    Range(None, 5).validate("years")


def test_range_parse_forms() -> None:
    assert Range.parse([2000, 2020]) == Range(2000, 2020)
    assert Range.parse({"from": 10, "to": None}) == Range(10, None)
    assert Range.parse(None).is_open
    with pytest.raises(ValidationError):
        Range.parse("2000-2020")


def test_filter_params_for_movies_skip_show_only_sets() -> None:
    spec = FilterSpec.from_dict(
        {
            "query": "heist",
            "genres": ["Action", "crime"],
            "years": [2000, 2020],
            "networks": ["hbo"],
            "certifications": ["tv-ma"],
            "search_fields": ["overview", "title"],
        }
    )
    params = spec.to_params(MediaKind.MOVIE)
    assert params == {
        "query": "heist",
        "fields": "title,overview",
        "years": "2000-2020",
        "genres": "action,crime",
    }


def test_filter_params_for_shows_keep_show_only_sets() -> None:
    spec = FilterSpec.from_dict({"networks": ["HBO"], "ratings": [70, None]})
    params = spec.to_params(MediaKind.SHOW)
    assert params["networks"] == "hbo"
    assert params["ratings"] == "70-100"
    assert params["query"] == ""


def test_filter_rejects_unknown_search_field() -> None:
    with pytest.raises(ValidationError):
        FilterSpec.from_dict({"search_fields": ["plot"]})


def test_media_item_identity_is_stable_key() -> None:
    a = MediaItem.from_payload(MediaKind.MOVIE, {"title": "A", "year": 1999, "ids": {"trakt": 1}})
    b = MediaItem.from_payload(MediaKind.MOVIE, {"title": "A (remaster)", "year": 2020, "ids": {"trakt": "1"}})
    c = MediaItem.from_payload(MediaKind.SHOW, {"title": "A", "year": 1999, "ids": {"trakt": 1}})
    assert a == b
    assert a != c
    assert len({a, b, c}) == 2
    assert a.key == "movie:trakt:1"


def test_media_kind_parse() -> None:
    assert MediaKind.parse("shows") is MediaKind.SHOW
    assert MediaKind.parse("movie").plural == "movies"
    with pytest.raises(ValidationError):
        MediaKind.parse("episode")


def test_remote_list_dict_round_trip() -> None:
    lst = RemoteList(
        name="Action Movies",
        owner="alice",
        filters=FilterSpec.from_dict({"genres": ["action"], "years": [2000, 2020]}),
        id=123,
        slug="action-movies-123",
        last_processed=datetime(2026, 1, 1, tzinfo=timezone.utc),
        process=True,
        state=ListState.CREATED,
    )
    back = RemoteList.from_dict(lst.to_dict())
    assert back == lst
