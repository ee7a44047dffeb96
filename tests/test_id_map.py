# ListMirror test scripts
from __future__ import annotations

from lm_platform.id_map import canonical_key, coalesce_ids, ids_from, minimal, stable_key


def test_coalesce_ids_normalizes_values() -> None:
    ids = coalesce_ids({"trakt": " 123 ", "imdb": "0137523", "tmdb": "tmdb-550", "slug": "Fight-Club"})
    assert ids == {"trakt": "123", "imdb": "tt0137523", "tmdb": "550", "slug": "fight-club"}


def test_coalesce_ids_drops_sentinels_and_later_maps_win() -> None:
    ids = coalesce_ids({"tmdb": "null", "imdb": "tt01"}, {"imdb": "tt02"})
    assert ids == {"imdb": "tt02"}


def test_stable_key_prefers_trakt_id() -> None:
    assert stable_key("movies", {"imdb": "tt0137523", "trakt": 432}) == "movie:trakt:432"
    assert stable_key("show", {"tvdb": "121361"}) == "show:tvdb:121361"
    assert stable_key("movie", {}) is None


def test_canonical_key_falls_back_to_title_year() -> None:
    item = {"type": "movie", "title": "Some Indie", "year": 2024}
    assert canonical_key(item) == "movie|title:some indie|year:2024"
    assert canonical_key({"type": "movie"}) == "unknown:"


def test_ids_from_reads_top_level_and_nested() -> None:
    assert ids_from({"trakt": 7, "ids": {"imdb": "tt9"}}) == {"trakt": "7", "imdb": "tt9"}


def test_minimal_keeps_only_known_fields() -> None:
    out = minimal({"type": "shows", "title": "Arcane", "year": 2021, "ids": {"tmdb": 94605}, "score": 99})
    assert out == {"type": "show", "title": "Arcane", "year": 2021, "ids": {"tmdb": "94605"}}
