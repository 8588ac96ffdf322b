# /providers/sync/trakt/_history.py
# Trakt watched state: aggregated watched index, history add/remove.
from __future__ import annotations

from typing import Any, Iterable, List, Mapping

from rs_platform.library import parse_ts
from rs_platform.orchestrator._types import BatchResult, RemoteEpisode, RemoteSeason, RemoteWatchedEntry

from ._common import _log, post_chunked

URL_WATCHED = "/sync/watched"
URL_HISTORY = "/sync/history"
URL_HISTORY_REMOVE = "/sync/history/remove"


def _plays(v: Any) -> int:
    try:
        return max(0, int(v or 0))
    except (TypeError, ValueError):
        return 0


def _seasons(rows: Iterable[Mapping[str, Any]]) -> List[RemoteSeason]:
    out: List[RemoteSeason] = []
    for s in rows or []:
        if s.get("number") is None:
            continue
        eps = [
            RemoteEpisode(
                number=int(e["number"]),
                plays=_plays(e.get("plays")),
                last_watched_at=parse_ts(e.get("last_watched_at")),
            )
            for e in (s.get("episodes") or [])
            if e.get("number") is not None
        ]
        out.append(RemoteSeason(number=int(s["number"]), episodes=eps))
    return out


def parse_row(row: Mapping[str, Any], kind: str) -> RemoteWatchedEntry | None:
    key = "movie" if kind == "movies" else "show"
    node = row.get(key) or {}
    if not isinstance(node, Mapping):
        return None
    return RemoteWatchedEntry(
        kind=key,
        ids=dict(node.get("ids") or {}),
        title=str(node.get("title") or ""),
        plays=_plays(row.get("plays")),
        last_watched_at=parse_ts(row.get("last_watched_at")),
        seasons=_seasons(row.get("seasons") or []) if kind == "shows" else [],
    )


def fetch(client: Any, kind: str) -> List[RemoteWatchedEntry]:
    if kind not in ("movies", "shows"):
        raise ValueError(f"unsupported watched kind: {kind}")
    r = client.get(f"{URL_WATCHED}/{kind}")
    rows = client.json_of(r) or []
    out = [e for e in (parse_row(row, kind) for row in rows if isinstance(row, Mapping)) if e is not None]
    _log("history", "debug", "watched index", kind=kind, rows=len(rows), entries=len(out))
    return out


def add(client: Any, items: Iterable[Mapping[str, Any]], *, chunk: int) -> BatchResult:
    return post_chunked(client, URL_HISTORY, items, feature="history", chunk=chunk)


def remove(client: Any, items: Iterable[Mapping[str, Any]], *, chunk: int) -> BatchResult:
    return post_chunked(client, URL_HISTORY_REMOVE, items, feature="history", chunk=chunk)
