# rs_platform/orchestrator/_base.py
# Shared reconciler skeleton: pull -> persist dirty items -> push the uncovered remainder.
from __future__ import annotations

import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from _logging import Logger, log as host_log

from ..id_map import IdIndex, has_push_ids, ids_from, matches, sparse_ids
from ..library import LocalItem, LocalLibrary, iso_ts
from ..profile import profile_to_wire, snapshot
from ._types import BatchResult, CategoryResult, SyncCancelled, SyncGateway

__all__ = ["Reconciler", "wire_item", "episode_fields", "now_utc"]


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def wire_item(item: LocalItem, **stamp: datetime | None) -> dict[str, Any]:
    """Outgoing movie/show item: sparse ids, the technical profile and exactly one timestamp."""
    out: dict[str, Any] = {"type": item.kind, "title": item.title, "ids": sparse_ids(item)}
    out.update(profile_to_wire(snapshot(item)))
    for k, v in stamp.items():
        out[k] = iso_ts(v)
    return out


def episode_fields(ep: LocalItem, **stamp: datetime | None) -> dict[str, Any]:
    out: dict[str, Any] = dict(profile_to_wire(snapshot(ep)))
    for k, v in stamp.items():
        out[k] = iso_ts(v)
    return out


class Reconciler:
    """One field family (collection, watched or ratings) for one kind (movies or shows)."""

    feature = ""

    def __init__(
        self,
        gateway: SyncGateway,
        library: LocalLibrary,
        *,
        kind: str,
        cancel: threading.Event | None = None,
        logger: Logger | None = None,
    ):
        self.gateway = gateway
        self.library = library
        self.kind = kind
        self.cancel = cancel or threading.Event()
        self.log = (logger or host_log).child(f"SYNC:{self.category}")
        self.result = CategoryResult(self.category)
        self._dirty: list[LocalItem] = []
        self._dirty_ids: set[int] = set()

    @property
    def category(self) -> str:
        return f"{self.kind}:{self.feature}"

    # --- template ---------------------------------------------------------------
    def run(self) -> CategoryResult:
        items = self.library.items(self.kind)
        self.log.info(f"start: {len(items)} local {self.kind}")
        if self.kind == "shows":
            self.reconcile_shows(items)
        else:
            self.reconcile_flat(items)
        r = self.result
        self.log.info(
            f"done: remote={r.remote} matched={r.matched} updated={r.updated} pushed={r.pushed} "
            f"added={r.added} existing={r.existing} rejected={r.rejected} ineligible={r.ineligible}"
        )
        return r

    def reconcile_flat(self, items: list[LocalItem]) -> None:
        raise NotImplementedError

    def reconcile_shows(self, shows: list[LocalItem]) -> None:
        raise NotImplementedError

    # --- helpers ----------------------------------------------------------------
    def check_cancel(self) -> None:
        if self.cancel.is_set():
            raise SyncCancelled(f"{self.category} cancelled")

    def index(self, items: Iterable[LocalItem]) -> IdIndex:
        return IdIndex(items)

    def touch(self, item: LocalItem) -> None:
        item.dirty = True
        if id(item) not in self._dirty_ids:
            self._dirty_ids.add(id(item))
            self._dirty.append(item)

    def persist(self) -> None:
        """Export + save every dirty item; one failing save never blocks the others."""
        for it in self._dirty:
            with it.scope():
                if not it.dirty:
                    continue
                try:
                    self.library.write_export(it)
                    self.library.save(it)
                except Exception as e:
                    self.result.persist_errors += 1
                    self.log.error(f"local save failed for {it.label}: {e}")
                    continue
                it.dirty = False
                self.result.updated += 1
                self.after_save(it)
        self._dirty.clear()
        self._dirty_ids.clear()

    def after_save(self, item: LocalItem) -> None:
        """Called under the item scope after a successful export and save."""

    def eligible(self, items: Iterable[LocalItem]) -> list[LocalItem]:
        out: list[LocalItem] = []
        for it in items:
            if has_push_ids(it):
                out.append(it)
                continue
            self.result.ineligible += 1
            self.log.debug(f"skip {it.label}: no usable ids")
        return out

    def send(
        self,
        op: Callable[[Sequence[Mapping[str, Any]]], BatchResult],
        payload: list[dict[str, Any]],
        sources: Sequence[LocalItem],
    ) -> BatchResult | None:
        if not payload:
            return None
        res = op(payload)
        self.result.pushed += len(payload)
        self.result.absorb(res)
        self.log.info(f"push: sent={len(payload)} added={res.added} existing={res.existing} errors={len(res.errors)}")
        for err in res.errors:
            self.log.warn(f"rejected by remote: {self.describe(err, sources)}")
        return res

    @staticmethod
    def describe(err: Mapping[str, Any], sources: Sequence[LocalItem]) -> str:
        ids = ids_from(err)
        t = err.get("type") or "item"
        for it in sources:
            if matches(it, ids):
                return f"{t} '{it.title}' ids={ids}"
        return f"{t} ids={ids}"
