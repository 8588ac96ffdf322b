# ReelSync test scripts
from __future__ import annotations

from rs_platform.library import LocalItem
from rs_platform.orchestrator._episodes import (
    build_show_payload,
    group_episodes,
    merge_remote_episodes,
    remote_episodes,
)
from rs_platform.orchestrator._types import RemoteEpisode, RemoteSeason


def _ep(season: int, episode: int, *, watched: bool = False) -> LocalItem:
    return LocalItem("episode", "Dark", season=season, episode=episode, watched=watched)


def test_group_episodes_collapses_duplicates_in_order() -> None:
    a, b, c = _ep(1, 1, watched=False), _ep(1, 1, watched=True), _ep(1, 2)
    groups = group_episodes([a, c, b, _ep(-1, 3)])
    assert list(groups) == [(1, 1), (1, 2)]
    assert groups[(1, 1)].items == [a, b]
    assert groups[(1, 1)].first is a
    assert groups[(1, 1)].watched is True
    assert groups[(1, 2)].watched is False


def test_build_show_payload_nests_sorted_seasons() -> None:
    show = LocalItem("show", "Dark", ids={"tvdb": 334824, "imdb": ""})
    groups = group_episodes([_ep(2, 1), _ep(1, 2), _ep(1, 1)])
    payload = build_show_payload(show, groups, lambda g: {"watched_at": "2024-01-01T00:00:00.000Z"})
    assert payload == {
        "type": "show",
        "title": "Dark",
        "ids": {"tvdb": 334824},
        "seasons": [
            {"number": 1, "episodes": [
                {"number": 1, "watched_at": "2024-01-01T00:00:00.000Z"},
                {"number": 2, "watched_at": "2024-01-01T00:00:00.000Z"},
            ]},
            {"number": 2, "episodes": [{"number": 1, "watched_at": "2024-01-01T00:00:00.000Z"}]},
        ],
    }


def test_build_show_payload_skips_empty_seasons_and_shows() -> None:
    show = LocalItem("show", "Dark", ids={"tvdb": 334824})
    groups = group_episodes([_ep(1, 1), _ep(2, 1)])
    payload = build_show_payload(show, groups, lambda g: None if g.key[0] == 1 else {})
    assert payload is not None
    assert [s["number"] for s in payload["seasons"]] == [2]
    assert build_show_payload(show, groups, lambda g: None) is None
    assert build_show_payload(show, {}, lambda g: {}) is None


def test_merge_remote_episodes_applies_to_every_duplicate() -> None:
    a, b, c = _ep(1, 1), _ep(1, 1), _ep(3, 3)
    show = LocalItem("show", "Dark", episodes=[a, b, c])
    seasons = [RemoteSeason(1, [RemoteEpisode(1, plays=2), RemoteEpisode(9, plays=1)])]
    seen: list[LocalItem] = []

    def apply(ep: LocalItem, rep: RemoteEpisode) -> bool:
        seen.append(ep)
        ep.playcount = rep.plays
        return True

    keys, changed = merge_remote_episodes(show, seasons, apply)
    assert keys == {(1, 1)}
    assert changed == [a, b]
    assert seen == [a, b]
    assert a.playcount == b.playcount == 2
    assert c.playcount == 0


def test_remote_episodes_keys() -> None:
    eps = remote_episodes([RemoteSeason(1, [RemoteEpisode(1), RemoteEpisode(2)]), RemoteSeason(0, [RemoteEpisode(5)])])
    assert set(eps) == {(1, 1), (1, 2), (0, 5)}
