# ReelSync test scripts
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from rs_platform.config_base import DEFAULT_CFG, load_config, save_config
from rs_platform.errors import LocalPersistenceError
from rs_platform.library import JsonLibrary, LocalItem, iso_ts, load_library, parse_ts

T1 = datetime(2023, 8, 9, 10, 11, 12, tzinfo=timezone.utc)

DOC = {
    "movies": [{
        "db_id": "m1", "kind": "movie", "title": "Heat", "ids": {"imdb": "tt0113277", "tmdb": "0"},
        "date_added": "2021-03-04T05:06:07Z", "watched": True, "playcount": 2, "rating": 8.5,
        "media": {"video_format": "1080p", "audio_codec": "ac3", "audio_channels": 6, "media_source": "bluray"},
    }],
    "shows": [{
        "db_id": "s1", "kind": "show", "title": "Dark", "ids": {"tvdb": 334824},
        "episodes": [{"db_id": "e1", "season": 1, "episode": 1, "watched": False}],
    }],
}


def test_timestamps() -> None:
    assert parse_ts("2023-08-09T10:11:12Z") == T1
    assert parse_ts("2023-08-09T10:11:12.000+00:00") == T1
    assert parse_ts(T1.timestamp()) == T1
    assert parse_ts("yesterday") is None
    assert iso_ts(T1) == "2023-08-09T10:11:12.000Z"
    assert iso_ts(None) is None


def test_load_reads_movies_shows_and_episodes(tmp_path: Path) -> None:
    p = tmp_path / "library.json"
    p.write_text(json.dumps(DOC), "utf-8")
    lib = JsonLibrary(p)

    (m,) = lib.items("movies")
    assert m.ids == {"imdb": "tt0113277"}
    assert m.playcount == 2 and m.rating == 8.5
    assert m.media is not None and m.media.audio_channels == 6
    (show,) = lib.items("shows")
    (ep,) = show.episodes
    assert ep.kind == "episode"
    assert ep.title == "Dark"
    assert show.episodes_for(1, 1) == [ep]
    assert ep.label == "Dark S01E01"


def test_last_watched_reaches_the_export_but_not_the_store(tmp_path: Path) -> None:
    p = tmp_path / "library.json"
    p.write_text(json.dumps(DOC), "utf-8")
    lib = JsonLibrary(p, tmp_path / "exports")
    (m,) = lib.items("movies")
    m.last_watched = T1

    lib.write_export(m)
    lib.save(m)

    stored = json.loads(p.read_text("utf-8"))["movies"][0]
    exported = json.loads((tmp_path / "exports" / "m1.json").read_text("utf-8"))
    assert "last_watched" not in stored
    assert exported["last_watched"] == "2023-08-09T10:11:12.000Z"
    assert "episodes" not in exported


def test_store_roundtrip_keeps_episodes(tmp_path: Path) -> None:
    p = tmp_path / "library.json"
    p.write_text(json.dumps(DOC), "utf-8")
    lib = JsonLibrary(p)
    (show,) = lib.items("shows")
    show.episodes[0].watched = True
    lib.save(show)

    again = JsonLibrary(p)
    assert again.items("shows")[0].episodes[0].watched is True


def test_save_failure_raises_persistence_error(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("x", "utf-8")
    lib = JsonLibrary(blocker / "library.json")
    lib.add(LocalItem("movie", "Heat"))
    with pytest.raises(LocalPersistenceError):
        lib.save(lib.items("movies")[0])


def test_config_defaults_and_library_paths(config_base: Path) -> None:
    cfg = load_config()
    assert cfg["trakt"]["batch_size"] == DEFAULT_CFG["trakt"]["batch_size"]
    assert cfg["sync"]["shows"] == {"collection": True, "watched": True, "ratings": True}

    cfg["sync"]["movies"] = False
    save_config(cfg)
    again = load_config()
    assert again["sync"]["movies"] == {"collection": False, "watched": False, "ratings": False}

    lib = load_library(again)
    assert lib.path == config_base / "library.json"
    assert lib.export_dir == config_base / "exports"
