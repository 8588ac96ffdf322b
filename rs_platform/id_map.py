# /rs_platform/id_map.py
# Identifier handling for movies/shows/episodes.
# - Normalize/clean external IDs (imdb/tmdb/trakt/tvdb/tvrage).
# - Match a local item against a remote record on any shared scheme.
# - Backfill local IDs from a matched remote record (fill-only).
# - Sparse projection for outgoing payloads.
# - Key index over local items so remote rows resolve without a linear scan.

from __future__ import annotations
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

IdValue = Union[str, int]

# imdb is string-keyed, everything else integer-keyed; tvrage is legacy (shows only in practice).
ID_KEYS: Tuple[str, ...]  = ("imdb", "tmdb", "trakt", "tvdb", "tvrage")
INT_KEYS: Tuple[str, ...] = ("tmdb", "trakt", "tvdb", "tvrage")

__all__ = [
    "ID_KEYS", "INT_KEYS",
    "normalize_id", "ids_from", "sparse_ids", "keys_for",
    "matches", "backfill_ids", "has_push_ids",
    "IdIndex",
]

# --- tiny utils ---------------------------------------------------------------

_CLEAN_SENTINELS = {"none", "null", "nan", "undefined", "unknown", "0", ""}
_IMDB_RX = re.compile(r"(tt\d+)")

def normalize_id(key: str, val: Any) -> Optional[IdValue]:
    """Normalized scheme value, or None when the slot counts as empty."""
    k = (key or "").lower().strip()
    if val is None or isinstance(val, bool):
        return None

    if k in INT_KEYS:
        if isinstance(val, int):
            return val if val > 0 else None
        s = str(val).strip()
        if s.lower() in _CLEAN_SENTINELS:
            return None
        digits = re.sub(r"\D+", "", s)
        if not digits:
            return None
        n = int(digits)
        return n if n > 0 else None

    if k == "imdb":
        s = str(val).strip().lower()
        if s in _CLEAN_SENTINELS:
            return None
        m = _IMDB_RX.search(s)
        if m:
            return m.group(1)
        digits = re.sub(r"\D+", "", s)
        return f"tt{digits}" if digits and int(digits) > 0 else None

    return None

def _raw_ids(obj: Any) -> Mapping[str, Any]:
    if obj is None:
        return {}
    if isinstance(obj, Mapping):
        inner = obj.get("ids")
        return inner if isinstance(inner, Mapping) else obj
    ids = getattr(obj, "ids", None)
    return ids if isinstance(ids, Mapping) else {}

def ids_from(obj: Any) -> Dict[str, IdValue]:
    """Normalized non-empty ids of a mapping, an `{"ids": ...}` row or anything with `.ids`."""
    raw = _raw_ids(obj)
    out: Dict[str, IdValue] = {}
    for k in ID_KEYS:
        v = normalize_id(k, raw.get(k))
        if v is not None:
            out[k] = v
    return out

def sparse_ids(obj: Any) -> Dict[str, IdValue]:
    return ids_from(obj)

def keys_for(obj: Any) -> Set[str]:
    return {f"{k}:{v}" for k, v in ids_from(obj).items()}

# --- matching / backfill ------------------------------------------------------

def matches(a: Any, b: Any) -> bool:
    """True iff some scheme is non-empty on both sides with equal values."""
    ia, ib = ids_from(a), ids_from(b)
    if not ia or not ib:
        return False
    return any(ib.get(k) == v for k, v in ia.items())

def has_push_ids(item: Any) -> bool:
    return bool(ids_from(item))

def backfill_ids(local: Any, remote: Any) -> bool:
    """Copy remote ids into empty local slots. Returns True when anything was filled."""
    if local is None:
        return False
    ids = getattr(local, "ids", None)
    if ids is None:
        return False
    have = ids_from(ids)
    dirty = False
    for k, v in ids_from(remote).items():
        if k in have:
            continue
        ids[k] = v
        dirty = True
    return dirty

# --- index --------------------------------------------------------------------

class IdIndex:
    """Key index over local items; lookups return hits in library order."""

    def __init__(self, items: Iterable[Any] = ()):
        self._order: Dict[int, int] = {}
        self._items: List[Any] = []
        self._by_key: Dict[str, List[Any]] = {}
        for it in items:
            self.add(it)

    def __len__(self) -> int:
        return len(self._items)

    def add(self, item: Any) -> None:
        if id(item) not in self._order:
            self._order[id(item)] = len(self._items)
            self._items.append(item)
        self.refresh(item)

    def refresh(self, item: Any) -> None:
        """Re-index an item after its ids were backfilled."""
        for key in keys_for(item):
            bucket = self._by_key.setdefault(key, [])
            if not any(x is item for x in bucket):
                bucket.append(item)

    def lookup(self, remote: Any) -> List[Any]:
        seen: Dict[int, Any] = {}
        for key in keys_for(remote):
            for it in self._by_key.get(key, ()):
                seen.setdefault(id(it), it)
        # ids may have been edited outside backfill since indexing
        hits = [it for it in seen.values() if matches(it, remote)]
        hits.sort(key=lambda it: self._order.get(id(it), 0))
        return hits
