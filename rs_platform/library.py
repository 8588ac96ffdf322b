# /rs_platform/library.py
# Local library model and a JSON-file store implementing the persistence collaborator.
from __future__ import annotations

import json
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol

from .config_base import resolve_path, write_json_atomic
from .errors import LocalPersistenceError
from .id_map import ids_from

__all__ = [
    "MediaFileInfo", "LocalItem", "LocalLibrary", "JsonLibrary", "load_library",
    "parse_ts", "iso_ts",
]


# --- timestamps ---------------------------------------------------------------

def parse_ts(v: Any) -> Optional[datetime]:
    """UTC-aware datetime from ISO-8601 text (a trailing Z is accepted) or epoch seconds."""
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v if v.tzinfo else v.replace(tzinfo=timezone.utc)
    if isinstance(v, (int, float)):
        return datetime.fromtimestamp(float(v), tz=timezone.utc)
    s = str(v).strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def iso_ts(dt: Optional[datetime]) -> Optional[str]:
    if dt is None:
        return None
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# --- model --------------------------------------------------------------------

@dataclass
class MediaFileInfo:
    video_format: str = ""          # e.g. "1080p"
    video_3d: bool = False
    hdr_format: str = ""            # free text, e.g. "Dolby Vision"
    audio_codec: str = ""           # e.g. "DTSHD-MA"
    audio_channels: int = 0
    media_source: str = ""          # source name or release name

    @classmethod
    def from_record(cls, d: Optional[Mapping[str, Any]]) -> Optional["MediaFileInfo"]:
        if not d:
            return None
        return cls(
            video_format=str(d.get("video_format") or ""),
            video_3d=bool(d.get("video_3d", False)),
            hdr_format=str(d.get("hdr_format") or ""),
            audio_codec=str(d.get("audio_codec") or ""),
            audio_channels=int(d.get("audio_channels") or 0),
            media_source=str(d.get("media_source") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "video_format": self.video_format,
            "video_3d": self.video_3d,
            "hdr_format": self.hdr_format,
            "audio_codec": self.audio_codec,
            "audio_channels": self.audio_channels,
            "media_source": self.media_source,
        }


@dataclass(eq=False)
class LocalItem:
    """A movie, show or episode owned by the local library.

    Items compare by identity: two rips of the same title are two items even when every
    field matches. `scope()` grants exclusive access for a merge-and-persist step.
    """
    kind: str                                               # movie | show | episode
    title: str = ""
    ids: Dict[str, Any] = field(default_factory=dict)
    db_id: str = ""
    date_added: Optional[datetime] = None
    watched: bool = False
    playcount: int = 0
    last_watched: Optional[datetime] = None
    rating: Optional[float] = None
    media: Optional[MediaFileInfo] = None
    season: int = -1
    episode: int = -1
    episodes: List["LocalItem"] = field(default_factory=list)
    dirty: bool = field(default=False, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @contextmanager
    def scope(self) -> Iterator["LocalItem"]:
        with self._lock:
            yield self

    def episodes_for(self, season: int, episode: int) -> List["LocalItem"]:
        return [e for e in self.episodes if e.season == season and e.episode == episode]

    @property
    def label(self) -> str:
        if self.kind == "episode":
            return f"{self.title} S{self.season:02d}E{self.episode:02d}"
        return self.title or self.db_id or "?"

    # --- store record ---------------------------------------------------------
    # last_watched is never written to the store record, only to the export. Records
    # imported from an export artifact still carry it, so it is read when present.

    @classmethod
    def from_record(cls, d: Mapping[str, Any]) -> "LocalItem":
        rating = d.get("rating")
        it = cls(
            kind=str(d.get("kind") or "movie"),
            title=str(d.get("title") or ""),
            ids=dict(ids_from(d.get("ids") or {})),
            db_id=str(d.get("db_id") or d.get("id") or ""),
            date_added=parse_ts(d.get("date_added")),
            watched=bool(d.get("watched", False)),
            playcount=int(d.get("playcount") or 0),
            last_watched=parse_ts(d.get("last_watched")),
            rating=float(rating) if rating not in (None, "") else None,
            media=MediaFileInfo.from_record(d.get("media")),
            season=int(d["season"]) if d.get("season") is not None else -1,
            episode=int(d["episode"]) if d.get("episode") is not None else -1,
        )
        it.episodes = [cls.from_record(e) for e in (d.get("episodes") or [])]
        return it

    def to_record(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "db_id": self.db_id,
            "kind": self.kind,
            "title": self.title,
            "ids": dict(self.ids),
            "date_added": iso_ts(self.date_added),
            "watched": self.watched,
            "playcount": self.playcount,
            "rating": self.rating,
        }
        if self.media is not None:
            out["media"] = self.media.to_record()
        if self.kind == "episode":
            out["season"] = self.season
            out["episode"] = self.episode
        if self.episodes:
            out["episodes"] = [e.to_record() for e in self.episodes]
        return out

    def to_export(self) -> Dict[str, Any]:
        out = self.to_record()
        out.pop("episodes", None)
        out["last_watched"] = iso_ts(self.last_watched)
        return out


# --- persistence collaborator -------------------------------------------------

class LocalLibrary(Protocol):
    def items(self, kind: str) -> List[LocalItem]: ...
    def save(self, item: LocalItem) -> None: ...
    def write_export(self, item: LocalItem) -> None: ...


Exporter = Callable[[LocalItem], None]


class JsonLibrary:
    """Library kept in one JSON document; export artifacts are one JSON file per item."""

    def __init__(self, path: Path, export_dir: Optional[Path] = None, *, exporter: Optional[Exporter] = None):
        self.path = Path(path)
        self.export_dir = Path(export_dir) if export_dir else None
        self.exporter = exporter
        self._lock = threading.Lock()
        self._movies: List[LocalItem] = []
        self._shows: List[LocalItem] = []
        self.load()

    def load(self) -> None:
        doc: Dict[str, Any] = {}
        if self.path.exists():
            with self.path.open("r", encoding="utf-8") as f:
                doc = json.load(f) or {}
        self._movies = [LocalItem.from_record(d) for d in (doc.get("movies") or [])]
        self._shows = [LocalItem.from_record(d) for d in (doc.get("shows") or [])]
        for show in self._shows:
            for ep in show.episodes:
                ep.kind = "episode"
                if not ep.title:
                    ep.title = show.title

    def items(self, kind: str) -> List[LocalItem]:
        return list(self._movies if kind in ("movie", "movies") else self._shows)

    def add(self, item: LocalItem) -> None:
        (self._shows if item.kind == "show" else self._movies).append(item)

    def save(self, item: LocalItem) -> None:
        # rewrites the whole document; `item` only labels errors
        with self._lock:
            doc = {
                "movies": [m.to_record() for m in self._movies],
                "shows": [s.to_record() for s in self._shows],
            }
            try:
                write_json_atomic(self.path, doc)
            except (OSError, TypeError, ValueError) as e:
                raise LocalPersistenceError(f"save {item.label}: {e}") from e

    def write_export(self, item: LocalItem) -> None:
        if self.exporter is not None:
            self.exporter(item)
            return
        if self.export_dir is None:
            return
        name = item.db_id or f"{item.kind}-{id(item):x}"
        try:
            write_json_atomic(self.export_dir / f"{name}.json", item.to_export())
        except OSError as e:
            raise LocalPersistenceError(f"export {item.label}: {e}") from e


def load_library(cfg: Mapping[str, Any]) -> JsonLibrary:
    lib = dict(cfg.get("library") or {})
    export_dir = lib.get("export_dir")
    return JsonLibrary(
        resolve_path(lib.get("path") or "library.json"),
        resolve_path(export_dir) if export_dir else None,
    )
