# /providers/sync/trakt/_ratings.py
# Trakt ratings: paged index per type, upsert.
from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from rs_platform.library import parse_ts
from rs_platform.orchestrator._types import BatchResult, RemoteRatingEntry

from ._common import _log, post_chunked

URL_RATINGS = "/sync/ratings"

_TYPES = {"movies": "movie", "shows": "show", "episodes": "episode"}


def _valid_rating(v: Any) -> Optional[int]:
    try:
        i = int(str(v).strip())
    except (TypeError, ValueError):
        return None
    return i if 1 <= i <= 10 else None


def parse_row(row: Mapping[str, Any], typ: str) -> RemoteRatingEntry | None:
    rating = _valid_rating(row.get("rating"))
    rated_at = parse_ts(row.get("rated_at"))
    if typ == "episode":
        ep = row.get("episode") or {}
        show = row.get("show") or {}
        if not isinstance(ep, Mapping) or ep.get("season") is None or ep.get("number") is None:
            return None
        return RemoteRatingEntry(
            kind="episode",
            ids=dict(ep.get("ids") or {}),
            rating=rating,
            title=str(show.get("title") or ep.get("title") or ""),
            rated_at=rated_at,
            show_ids=dict(show.get("ids") or {}),
            season=int(ep["season"]),
            episode=int(ep["number"]),
        )
    node = row.get(typ) or {}
    if not isinstance(node, Mapping):
        return None
    return RemoteRatingEntry(
        kind=typ,
        ids=dict(node.get("ids") or {}),
        rating=rating,
        title=str(node.get("title") or ""),
        rated_at=rated_at,
    )


def fetch(client: Any, kind: str, *, per_page: int = 100, max_pages: int = 50) -> List[RemoteRatingEntry]:
    typ = _TYPES.get(kind)
    if typ is None:
        raise ValueError(f"unsupported ratings kind: {kind}")
    per_page = max(1, min(int(per_page or 100), 100))
    out: List[RemoteRatingEntry] = []
    for page in range(1, max(1, int(max_pages)) + 1):
        r = client.get(f"{URL_RATINGS}/{kind}", params={"page": page, "limit": per_page})
        rows = client.json_of(r) or []
        if not rows:
            break
        for row in rows:
            if not isinstance(row, Mapping):
                continue
            e = parse_row(row, typ)
            if e is not None:
                out.append(e)
        if len(rows) < per_page:
            break
    _log("ratings", "debug", "index", kind=kind, entries=len(out))
    return out


def add(client: Any, items: Iterable[Mapping[str, Any]], *, chunk: int) -> BatchResult:
    rows = []
    for it in items or []:
        # show items may only carry nested episode ratings
        if not it.get("seasons") and _valid_rating(it.get("rating")) is None:
            _log("ratings", "warn", "dropping item with invalid rating", title=it.get("title"), rating=it.get("rating"))
            continue
        rows.append(it)
    return post_chunked(client, URL_RATINGS, rows, feature="ratings", chunk=chunk)
