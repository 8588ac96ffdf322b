# ReelSync test scripts
from __future__ import annotations

from rs_platform.id_map import (
    IdIndex,
    backfill_ids,
    has_push_ids,
    ids_from,
    keys_for,
    matches,
    normalize_id,
    sparse_ids,
)
from rs_platform.library import LocalItem


def test_normalize_id_cleans_common_shapes() -> None:
    assert normalize_id("imdb", "tt0137523") == "tt0137523"
    assert normalize_id("imdb", "https://www.imdb.com/title/tt0137523/") == "tt0137523"
    assert normalize_id("imdb", "137523") == "tt137523"
    assert normalize_id("tmdb", " 550 ") == 550
    assert normalize_id("tvdb", "tvdb-42") == 42
    assert normalize_id("tmdb", 0) is None
    assert normalize_id("trakt", "null") is None
    assert normalize_id("imdb", "") is None
    assert normalize_id("slug", "fight-club") is None


def test_ids_from_accepts_mappings_rows_and_objects() -> None:
    assert ids_from({"imdb": "tt1", "tmdb": "0"}) == {"imdb": "tt1"}
    assert ids_from({"ids": {"trakt": "603"}}) == {"trakt": 603}
    assert ids_from(LocalItem("movie", ids={"tvrage": 7})) == {"tvrage": 7}
    assert ids_from(None) == {}


def test_sparse_ids_drops_empty_schemes() -> None:
    item = LocalItem("movie", ids={"imdb": "", "tmdb": 550, "trakt": None, "tvdb": 0})
    assert sparse_ids(item) == {"tmdb": 550}
    assert keys_for(item) == {"tmdb:550"}


def test_matches_needs_one_shared_equal_scheme() -> None:
    a = {"imdb": "tt0137523", "tmdb": 550}
    assert matches(a, {"tmdb": 550})
    assert matches(a, {"imdb": "tt0137523", "tmdb": 999})
    assert not matches(a, {"trakt": 432})
    assert not matches(a, {"tmdb": 551})
    assert not matches({}, {})


def test_matches_is_symmetric() -> None:
    pairs = [
        ({"imdb": "tt1"}, {"imdb": "tt1", "tmdb": 2}),
        ({"tmdb": 2}, {"trakt": 2}),
        ({"tvdb": 5, "trakt": 9}, {"trakt": 9}),
        ({}, {"trakt": 9}),
    ]
    for a, b in pairs:
        assert matches(a, b) == matches(b, a)


def test_backfill_only_fills_empty_slots() -> None:
    local = LocalItem("movie", ids={"imdb": "tt0137523", "tmdb": None})
    assert backfill_ids(local, {"ids": {"imdb": "tt9999999", "tmdb": 550, "trakt": 432}}) is True
    assert local.ids["imdb"] == "tt0137523"
    assert local.ids["tmdb"] == 550
    assert local.ids["trakt"] == 432
    assert backfill_ids(local, {"ids": {"tmdb": 1, "trakt": 2}}) is False
    assert ids_from(local) == {"imdb": "tt0137523", "tmdb": 550, "trakt": 432}


def test_has_push_ids() -> None:
    assert has_push_ids(LocalItem("movie", ids={"imdb": "tt1"}))
    assert not has_push_ids(LocalItem("movie", ids={"imdb": "", "tmdb": 0}))


def test_index_returns_duplicates_in_library_order() -> None:
    a = LocalItem("movie", "Rip 1", ids={"tmdb": 603})
    b = LocalItem("movie", "Other", ids={"tmdb": 604})
    c = LocalItem("movie", "Rip 2", ids={"imdb": "tt0133093"})
    idx = IdIndex([a, b, c])
    assert len(idx) == 3
    assert idx.lookup({"tmdb": 603, "imdb": "tt0133093"}) == [a, c]
    assert idx.lookup({"trakt": 1}) == []


def test_index_refresh_sees_backfilled_ids() -> None:
    it = LocalItem("movie", "The Matrix", ids={"tmdb": 603})
    idx = IdIndex([it])
    assert idx.lookup({"trakt": 481}) == []
    backfill_ids(it, {"trakt": 481})
    idx.refresh(it)
    assert idx.lookup({"trakt": 481}) == [it]
