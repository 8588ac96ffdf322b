# rs_platform/orchestrator/_types.py
# types, errors and the remote gateway protocol for the orchestrator.
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from collections.abc import Mapping, Sequence
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from ..errors import AuthExpiredError, LocalPersistenceError, SyncCancelled, SyncError, TransportError  # noqa: F401
from ..profile import TechnicalProfile


# --- remote records (fetched per run, never cached) ---------------------------

@dataclass
class RemoteEpisode:
    number: int
    collected_at: datetime | None = None
    profile: TechnicalProfile | None = None
    plays: int = 0
    last_watched_at: datetime | None = None


@dataclass
class RemoteSeason:
    number: int
    episodes: list[RemoteEpisode] = field(default_factory=list)


@dataclass
class RemoteCollectionEntry:
    kind: str                                   # movie | show
    ids: dict[str, Any]
    title: str = ""
    collected_at: datetime | None = None
    profile: TechnicalProfile | None = None
    seasons: list[RemoteSeason] = field(default_factory=list)


@dataclass
class RemoteWatchedEntry:
    kind: str
    ids: dict[str, Any]
    title: str = ""
    plays: int = 0
    last_watched_at: datetime | None = None
    seasons: list[RemoteSeason] = field(default_factory=list)


@dataclass
class RemoteRatingEntry:
    kind: str                                   # movie | show | episode
    ids: dict[str, Any]
    rating: int | None
    title: str = ""
    rated_at: datetime | None = None
    show_ids: dict[str, Any] = field(default_factory=dict)
    season: int | None = None
    episode: int | None = None


@dataclass
class BatchResult:
    added: int = 0
    existing: int = 0
    deleted: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)   # rejected outgoing ids, tagged with "type"

    def merge(self, other: "BatchResult") -> "BatchResult":
        self.added += other.added
        self.existing += other.existing
        self.deleted += other.deleted
        self.errors.extend(other.errors)
        return self


class SyncGateway(Protocol):
    def list_collection(self, kind: str, include_metadata: bool = True) -> list[RemoteCollectionEntry]: ...
    def list_watched(self, kind: str) -> list[RemoteWatchedEntry]: ...
    def list_ratings(self, kind: str) -> list[RemoteRatingEntry]: ...
    def add_to_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult: ...
    def add_to_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult: ...
    def add_ratings(self, items: Sequence[Mapping[str, Any]]) -> BatchResult: ...
    def remove_from_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult: ...
    def remove_from_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult: ...


# --- run bookkeeping ----------------------------------------------------------

class CategoryStatus(str, Enum):
    OK = "ok"
    FAILED = "failed"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"


@dataclass
class CategoryResult:
    category: str
    status: CategoryStatus = CategoryStatus.OK
    remote: int = 0             # remote entries pulled
    matched: int = 0            # local items matched by some remote entry
    updated: int = 0            # local items persisted
    persist_errors: int = 0
    pushed: int = 0             # items sent in push batches
    ineligible: int = 0         # local items without any push id
    added: int = 0
    existing: int = 0
    rejected: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        return d

    def absorb(self, res: BatchResult) -> None:
        self.added += res.added
        self.existing += res.existing
        self.rejected += len(res.errors)


@dataclass
class RunSummary:
    run_id: str
    started_at: float
    finished_at: float = 0.0
    cancelled: bool = False
    categories: list[CategoryResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(c.status in (CategoryStatus.OK, CategoryStatus.SKIPPED) for c in self.categories)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "cancelled": self.cancelled,
            "ok": self.ok,
            "categories": [c.to_dict() for c in self.categories],
        }
