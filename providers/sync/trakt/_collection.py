# /providers/sync/trakt/_collection.py
# Trakt collection: index with technical metadata, add, remove.
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from rs_platform.library import parse_ts
from rs_platform.orchestrator._types import (
    BatchResult,
    RemoteCollectionEntry,
    RemoteEpisode,
    RemoteSeason,
)
from rs_platform.profile import profile_from_wire

from ._common import _log, post_chunked

URL_COLLECTION = "/sync/collection"
URL_REMOVE = "/sync/collection/remove"


def _seasons(rows: Iterable[Mapping[str, Any]]) -> List[RemoteSeason]:
    out: List[RemoteSeason] = []
    for s in rows or []:
        if s.get("number") is None:
            continue
        eps = [
            RemoteEpisode(
                number=int(e["number"]),
                collected_at=parse_ts(e.get("collected_at")),
                profile=profile_from_wire(e.get("metadata")),
            )
            for e in (s.get("episodes") or [])
            if e.get("number") is not None
        ]
        out.append(RemoteSeason(number=int(s["number"]), episodes=eps))
    return out


def parse_row(row: Mapping[str, Any], kind: str) -> RemoteCollectionEntry | None:
    if kind == "movies":
        m = row.get("movie") or {}
        if not isinstance(m, Mapping):
            return None
        return RemoteCollectionEntry(
            kind="movie",
            ids=dict(m.get("ids") or {}),
            title=str(m.get("title") or ""),
            collected_at=parse_ts(row.get("collected_at")),
            profile=profile_from_wire(row.get("metadata")),
        )
    sh = row.get("show") or {}
    if not isinstance(sh, Mapping):
        return None
    return RemoteCollectionEntry(
        kind="show",
        ids=dict(sh.get("ids") or {}),
        title=str(sh.get("title") or ""),
        collected_at=parse_ts(row.get("last_collected_at")),
        seasons=_seasons(row.get("seasons") or []),
    )


def fetch(client: Any, kind: str, *, include_metadata: bool = True) -> List[RemoteCollectionEntry]:
    if kind not in ("movies", "shows"):
        raise ValueError(f"unsupported collection kind: {kind}")
    params: Dict[str, Any] = {"extended": "metadata"} if include_metadata else {}
    r = client.get(f"{URL_COLLECTION}/{kind}", params=params)
    rows = client.json_of(r) or []
    out = [e for e in (parse_row(row, kind) for row in rows if isinstance(row, Mapping)) if e is not None]
    _log("collection", "debug", "index", kind=kind, rows=len(rows), entries=len(out))
    return out


def add(client: Any, items: Iterable[Mapping[str, Any]], *, chunk: int) -> BatchResult:
    return post_chunked(client, URL_COLLECTION, items, feature="collection", chunk=chunk)


def remove(client: Any, items: Iterable[Mapping[str, Any]], *, chunk: int) -> BatchResult:
    return post_chunked(client, URL_REMOVE, items, feature="collection", chunk=chunk)
