# ReelSync test scripts
from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import Any

import pytest
import responses
from responses import matchers

from providers.sync._mod_TRAKT import TRAKTModule
from rs_platform.library import LocalItem
from rs_platform.orchestrator._collection import CollectionReconciler
from rs_platform.orchestrator._types import RemoteCollectionEntry, RemoteWatchedEntry
from rs_platform.orchestrator._watched import WatchedReconciler

API = "https://api.trakt.tv"
T0 = datetime(2021, 3, 4, 5, 6, 7, tzinfo=timezone.utc)
T1 = datetime(2023, 8, 9, 10, 11, 12, tzinfo=timezone.utc)


def _slow_saves(library: Any) -> list[str]:
    """Make saves slow; returns the labels of saves that started while the same item was saving."""
    real = library.save
    guard = threading.Lock()
    active: set[int] = set()
    overlaps: list[str] = []

    def save(item: LocalItem) -> None:
        with guard:
            if id(item) in active:
                overlaps.append(item.label)
            active.add(id(item))
        try:
            time.sleep(0.05)
            with guard:
                real(item)
        finally:
            with guard:
                active.discard(id(item))

    library.save = save
    return overlaps


def _run_all(*targets: Any) -> list[Exception]:
    errors: list[Exception] = []
    start = threading.Barrier(len(targets))

    def wrap(fn: Any) -> None:
        try:
            start.wait(timeout=5)
            fn()
        except Exception as e:
            errors.append(e)

    threads = [threading.Thread(target=wrap, args=(fn,)) for fn in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return errors


def test_parallel_reconcilers_never_save_one_item_concurrently(gateway: Any, library: Any) -> None:
    movies = [LocalItem("movie", f"M{i}", ids={"tmdb": i}) for i in range(1, 6)]
    library.movies = movies
    overlaps = _slow_saves(library)
    gateway.collection["movies"] = [RemoteCollectionEntry("movie", ids={"tmdb": m.ids["tmdb"]}, collected_at=T0) for m in movies]
    gateway.watched["movies"] = [RemoteWatchedEntry("movie", ids={"tmdb": m.ids["tmdb"]}, plays=1, last_watched_at=T1) for m in movies]

    errors = _run_all(
        lambda: CollectionReconciler(gateway, library, kind="movies").run(),
        lambda: WatchedReconciler(gateway, library, kind="movies").run(),
    )

    assert errors == []
    assert overlaps == []
    assert all(m.date_added == T0 and m.watched and m.playcount == 1 for m in movies)
    assert len(library.saved) == 10


def test_concurrent_unauthorized_calls_refresh_once(monkeypatch: pytest.MonkeyPatch) -> None:
    gw = TRAKTModule({"trakt": {"client_id": "cid", "client_secret": "secret", "access_token": "old",
                                "refresh_token": "r1", "max_retries": 1}}, persist_tokens=False)
    refreshes: list[str] = []

    def slow_refresh(client_id: str, client_secret: str, refresh_token: str, **kw: Any) -> dict[str, Any]:
        refreshes.append(refresh_token)
        time.sleep(0.1)
        return {"access_token": "new", "refresh_token": "r2", "expires_at": 0, "scope": "public", "token_type": "bearer"}

    monkeypatch.setattr("providers.sync.trakt._client.refresh_tokens", slow_refresh)
    results: list[Any] = []

    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, f"{API}/sync/watched/movies", status=401,
                 match=[matchers.header_matcher({"Authorization": "Bearer old"})])
        rsps.add(responses.GET, f"{API}/sync/watched/movies", json=[],
                 match=[matchers.header_matcher({"Authorization": "Bearer new"})])

        errors = _run_all(*(lambda: results.append(gw.list_watched("movies")) for _ in range(4)))

    assert errors == []
    assert refreshes == ["r1"]
    assert results == [[], [], [], []]
    assert gw.cfg.access_token == "new"
