# ReelSync test scripts
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Sequence

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from rs_platform.errors import LocalPersistenceError  # noqa: E402
from rs_platform.library import LocalItem  # noqa: E402
from rs_platform.orchestrator._types import (  # noqa: E402
    BatchResult,
    RemoteCollectionEntry,
    RemoteRatingEntry,
    RemoteWatchedEntry,
)


@dataclass
class FakeGateway:
    collection: dict[str, list[RemoteCollectionEntry]] = field(default_factory=dict)
    watched: dict[str, list[RemoteWatchedEntry]] = field(default_factory=dict)
    ratings: dict[str, list[RemoteRatingEntry]] = field(default_factory=dict)
    calls: dict[str, list[list[dict[str, Any]]]] = field(default_factory=dict)
    reject: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    fail_on: dict[str, Exception] = field(default_factory=dict)
    reads: list[tuple[str, str]] = field(default_factory=list)

    def _read(self, op: str, kind: str) -> None:
        self.reads.append((op, kind))
        if op in self.fail_on:
            raise self.fail_on[op]

    def _write(self, op: str, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        if op in self.fail_on:
            raise self.fail_on[op]
        batch = [dict(x) for x in items]
        self.calls.setdefault(op, []).append(batch)
        errors = list(self.reject.get(op, []))
        if op.startswith("remove"):
            return BatchResult(deleted=len(batch) - len(errors), errors=errors)
        return BatchResult(added=len(batch) - len(errors), errors=errors)

    def sent(self, op: str) -> list[dict[str, Any]]:
        return [it for batch in self.calls.get(op, []) for it in batch]

    def list_collection(self, kind: str, include_metadata: bool = True) -> list[RemoteCollectionEntry]:
        self._read("list_collection", kind)
        return list(self.collection.get(kind, []))

    def list_watched(self, kind: str) -> list[RemoteWatchedEntry]:
        self._read("list_watched", kind)
        return list(self.watched.get(kind, []))

    def list_ratings(self, kind: str) -> list[RemoteRatingEntry]:
        self._read("list_ratings", kind)
        return list(self.ratings.get(kind, []))

    def add_to_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write("add_to_collection", items)

    def add_to_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write("add_to_watched_history", items)

    def add_ratings(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write("add_ratings", items)

    def remove_from_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write("remove_from_collection", items)

    def remove_from_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write("remove_from_watched_history", items)


@dataclass
class FakeLibrary:
    movies: list[LocalItem] = field(default_factory=list)
    shows: list[LocalItem] = field(default_factory=list)
    saved: list[LocalItem] = field(default_factory=list)
    exported: list[LocalItem] = field(default_factory=list)
    export_records: list[dict[str, Any]] = field(default_factory=list)
    fail_save: set[str] = field(default_factory=set)

    def items(self, kind: str) -> list[LocalItem]:
        return list(self.movies if kind == "movies" else self.shows)

    def save(self, item: LocalItem) -> None:
        if item.title in self.fail_save:
            raise LocalPersistenceError(f"disk full while saving {item.title}")
        self.saved.append(item)

    def write_export(self, item: LocalItem) -> None:
        self.exported.append(item)
        self.export_records.append(item.to_export())

    def saved_titles(self) -> list[str]:
        return [it.label for it in self.saved]


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture()
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture()
def library() -> FakeLibrary:
    return FakeLibrary()
