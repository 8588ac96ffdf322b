# rs_platform/orchestrator/facade.py
# orchestrator facade: runs the reconcilers category by category and bulk-clears remote state.
from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from _logging import Logger, log as host_log

from ..config_base import SYNC_FEATURES, SYNC_KINDS
from ..id_map import sparse_ids
from ..library import LocalLibrary
from ._base import Reconciler
from ._collection import CollectionReconciler
from ._logging import Emitter
from ._providers import load_gateway
from ._ratings import RatingReconciler
from ._types import (
    AuthExpiredError,
    BatchResult,
    CategoryResult,
    CategoryStatus,
    RunSummary,
    SyncCancelled,
    SyncGateway,
)
from ._watched import WatchedReconciler

__all__ = ["Orchestrator", "CATEGORY_ORDER", "RECONCILERS"]

RECONCILERS: dict[str, type[Reconciler]] = {
    "collection": CollectionReconciler,
    "watched": WatchedReconciler,
    "ratings": RatingReconciler,
}

CATEGORY_ORDER: tuple[tuple[str, str], ...] = tuple((k, f) for k in SYNC_KINDS for f in SYNC_FEATURES)


@dataclass
class Orchestrator:
    config: Mapping[str, Any]
    library: LocalLibrary
    gateway: SyncGateway | None = None
    on_progress: Callable[[str], None] | None = None
    cancel: threading.Event = field(default_factory=threading.Event)

    emitter: Emitter = field(init=False)
    remote: SyncGateway = field(init=False)
    log: Logger = field(init=False)

    def __post_init__(self) -> None:
        self.cfg: dict[str, Any] = dict(self.config or {})
        self.emitter = Emitter(self.on_progress)
        self.log = host_log.child("SYNC")
        # the gateway owns the remote client context for as long as this orchestrator lives
        self.remote = self.gateway if self.gateway is not None else load_gateway(self.cfg, ctx=self.emitter)

    # Config
    def enabled(self, kind: str, feature: str) -> bool:
        sync = dict(self.cfg.get("sync") or {})
        per_kind = sync.get(kind)
        if isinstance(per_kind, bool):
            return per_kind
        return bool(dict(per_kind or {}).get(feature, True))

    # Runs
    def run(
        self,
        features: Iterable[str] | None = None,
        kinds: Iterable[str] | None = None,
        *,
        run_id: str | None = None,
    ) -> RunSummary:
        want_f = set(features or SYNC_FEATURES)
        want_k = set(kinds or SYNC_KINDS)
        summary = RunSummary(run_id=run_id or uuid.uuid4().hex[:12], started_at=time.time())
        self.emitter.emit("run:start", run_id=summary.run_id, features=sorted(want_f), kinds=sorted(want_k))

        for kind, feature in CATEGORY_ORDER:
            if kind not in want_k or feature not in want_f:
                continue
            if self.cancel.is_set():
                summary.cancelled = True
                summary.categories.append(CategoryResult(f"{kind}:{feature}", CategoryStatus.CANCELLED))
                continue
            res = self.run_category(kind, feature)
            summary.categories.append(res)
            if res.status is CategoryStatus.CANCELLED:
                summary.cancelled = True

        summary.finished_at = time.time()
        failed = [c.category for c in summary.categories if c.status is CategoryStatus.FAILED]
        if failed:
            self.log.warn(f"run {summary.run_id} finished; not synced: {', '.join(failed)}")
        else:
            self.log.success(f"run {summary.run_id} finished in {summary.finished_at - summary.started_at:.1f}s")
        self.emitter.emit("run:done", **summary.to_dict())
        return summary

    def run_category(self, kind: str, feature: str) -> CategoryResult:
        category = f"{kind}:{feature}"
        if not self.enabled(kind, feature):
            self.log.debug(f"{category} disabled in config")
            return CategoryResult(category, CategoryStatus.SKIPPED)

        self.emitter.emit("category:start", category=category)
        rec = RECONCILERS[feature](self.remote, self.library, kind=kind, cancel=self.cancel, logger=self.log)
        try:
            res = rec.run()
        except SyncCancelled:
            res = rec.result
            res.status = CategoryStatus.CANCELLED
            self.log.warn(f"{category} cancelled after {res.pushed} pushed items")
        except AuthExpiredError as e:
            res = rec.result
            res.status = CategoryStatus.FAILED
            res.error = f"authorization expired: {e}"
            self.log.error(f"{category} failed: {res.error} (remote={res.remote} updated={res.updated} pushed={res.pushed})")
        except Exception as e:
            res = rec.result
            res.status = CategoryStatus.FAILED
            res.error = f"{type(e).__name__}: {e}"
            self.log.error(f"{category} failed: {res.error} (remote={res.remote} updated={res.updated} pushed={res.pushed})")
        self.emitter.emit("category:done", **res.to_dict())
        return res

    # Bulk clear
    def clear(self, kind: str) -> dict[str, Any]:
        """Remove every collection and watched-history entry of a kind from the remote."""
        if kind not in SYNC_KINDS:
            raise ValueError(f"unknown kind: {kind}")
        singular = "movie" if kind == "movies" else "show"

        def _items(entries: Iterable[Any]) -> list[dict[str, Any]]:
            out = []
            for e in entries:
                ids = sparse_ids(e)
                if ids:
                    out.append({"type": singular, "title": e.title, "ids": ids})
            return out

        coll = _items(self.remote.list_collection(kind, include_metadata=False))
        hist = _items(self.remote.list_watched(kind))
        r_coll = self.remote.remove_from_collection(coll) if coll else BatchResult()
        r_hist = self.remote.remove_from_watched_history(hist) if hist else BatchResult()

        self.log.info(
            f"cleared {kind}: collection deleted={r_coll.deleted} not_found={len(r_coll.errors)}; "
            f"history deleted={r_hist.deleted} not_found={len(r_hist.errors)}"
        )
        return {
            "kind": kind,
            "collection": {"sent": len(coll), "deleted": r_coll.deleted, "not_found": len(r_coll.errors)},
            "watched": {"sent": len(hist), "deleted": r_hist.deleted, "not_found": len(r_hist.errors)},
        }
