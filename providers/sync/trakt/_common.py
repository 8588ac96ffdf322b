# /providers/sync/trakt/_common.py
# Trakt wire helpers: headers, id sanitizing, bucketed bodies, chunked writes.
from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from rs_platform.id_map import ids_from
from rs_platform.orchestrator._types import BatchResult

from .._log import log as _plog

BASE = "https://api.trakt.tv"
UA = os.environ.get("RS_UA", "ReelSync/0.4 (Trakt)")

BUCKETS: Tuple[str, ...] = ("movies", "shows", "seasons", "episodes")
_SINGULAR = {"movies": "movie", "shows": "show", "seasons": "season", "episodes": "episode"}


def _log(feature: str, level: str, msg: str, **fields: Any) -> None:
    _plog("TRAKT", feature, level, msg, **fields)


# ── headers ───────────────────────────────────────────────────────────────────

def build_headers(client_id: str, access_token: str | None = None) -> Dict[str, str]:
    h = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "trakt-api-version": "2",
        "trakt-api-key": str(client_id or "").strip(),
        "User-Agent": UA,
    }
    token = str(access_token or "").strip()
    if token:
        h["Authorization"] = f"Bearer {token}"
    return h


# ── ids / buckets ─────────────────────────────────────────────────────────────

def ids_for_trakt(obj: Any) -> Dict[str, Any]:
    """Normalized, non-empty ids; imdb stays a string, the rest are ints."""
    return dict(ids_from(obj))


def pick_trakt_kind(item: Mapping[str, Any]) -> str:
    t = str(item.get("type") or "movie").lower()
    if t == "episode":
        return "episodes"
    if t == "season":
        return "seasons"
    if t in ("show", "series", "tv"):
        return "shows"
    return "movies"


def chunk_iter(lst: List[Dict[str, Any]], size: int) -> Iterable[List[Dict[str, Any]]]:
    n = int(size or 0)
    if n <= 0:
        n = 100
    for i in range(0, len(lst), n):
        yield lst[i:i + n]


def bucketize(items: Iterable[Mapping[str, Any]], feature: str) -> Dict[str, List[Dict[str, Any]]]:
    """Outgoing items grouped per Trakt bucket; `type` is dropped, ids are sanitized.
    Items without a usable id are logged and left out."""
    body: Dict[str, List[Dict[str, Any]]] = {}
    for it in items or []:
        ids = ids_for_trakt(it.get("ids") or {})
        if not ids:
            _log(feature, "warn", "dropping item without ids", title=it.get("title"))
            continue
        obj = {k: v for k, v in it.items() if k not in ("type", "ids") and v is not None}
        obj["ids"] = ids
        body.setdefault(pick_trakt_kind(it), []).append(obj)
    return body


# ── responses ─────────────────────────────────────────────────────────────────

def _count(block: Any) -> int:
    if not isinstance(block, Mapping):
        return 0
    total = 0
    for v in block.values():
        try:
            total += int(v or 0)
        except (TypeError, ValueError):
            continue
    return total


def batch_result(doc: Mapping[str, Any]) -> BatchResult:
    """Sum a sync write response; every not_found row becomes an error tagged with its type."""
    d = doc if isinstance(doc, Mapping) else {}
    res = BatchResult(
        added=_count(d.get("added")),
        existing=_count(d.get("existing")) + _count(d.get("updated")),
        deleted=_count(d.get("deleted")),
    )
    nf = d.get("not_found") or {}
    if isinstance(nf, Mapping):
        for bucket in BUCKETS:
            for row in nf.get(bucket) or []:
                if not isinstance(row, Mapping):
                    continue
                err: Dict[str, Any] = {"type": _SINGULAR[bucket], "ids": dict(row.get("ids") or {})}
                if row.get("title"):
                    err["title"] = row["title"]
                res.errors.append(err)
    return res


def post_chunked(client: Any, url: str, items: Iterable[Mapping[str, Any]], *, feature: str, chunk: int) -> BatchResult:
    """POST bucketed items `chunk` rows at a time and sum the responses."""
    body = bucketize(items, feature)
    total = BatchResult()
    for bucket in BUCKETS:
        rows = body.get(bucket) or []
        for part in chunk_iter(rows, chunk):
            r = client.post(url, json={bucket: part})
            res = batch_result(client.json_of(r))
            total.merge(res)
            _log(feature, "debug", "write chunk", bucket=bucket, rows=len(part),
                 added=res.added, existing=res.existing, deleted=res.deleted, not_found=len(res.errors))
    return total
