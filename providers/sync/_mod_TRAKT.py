# /providers/sync/_mod_TRAKT.py
# ReelSync Trakt module: the remote sync gateway (collection, watched history, ratings)
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Sequence

from rs_platform.orchestrator._types import (
    BatchResult,
    RemoteCollectionEntry,
    RemoteRatingEntry,
    RemoteWatchedEntry,
)

from .trakt import _collection as feat_collection
from .trakt import _history as feat_history
from .trakt import _ratings as feat_ratings
from .trakt._client import TraktClient
from .trakt._common import _log

__VERSION__ = "2.0.0"
__all__ = ["TRAKTConfig", "TRAKTModule"]


@dataclass
class TRAKTConfig:
    client_id: str
    client_secret: str = ""
    access_token: str = ""
    refresh_token: str = ""
    expires_at: int = 0
    timeout: float = 10.0
    max_retries: int = 5
    batch_size: int = 100
    ratings_per_page: int = 100
    ratings_max_pages: int = 50


class TRAKTModule:
    """SyncGateway over the Trakt sync API. Owns one TraktClient for its lifetime."""

    def __init__(self, cfg: Mapping[str, Any], *, persist_tokens: bool = True, ctx: Any = None):
        t = dict(cfg.get("trakt") or {})
        self.cfg = TRAKTConfig(
            client_id=str(t.get("client_id") or "").strip(),
            client_secret=str(t.get("client_secret") or "").strip(),
            access_token=str(t.get("access_token") or "").strip(),
            refresh_token=str(t.get("refresh_token") or "").strip(),
            expires_at=int(t.get("expires_at") or 0),
            timeout=float(t.get("timeout", 10.0)),
            max_retries=int(t.get("max_retries", 5)),
            batch_size=int(t.get("batch_size", 100) or 100),
            ratings_per_page=int(t.get("ratings_per_page", 100) or 100),
            ratings_max_pages=int(t.get("ratings_max_pages", 50) or 50),
        )
        if t.get("debug") in (True, "1", 1):
            os.environ.setdefault("RS_TRAKT_DEBUG", "1")

        self.raw_cfg = cfg
        self._persist = persist_tokens
        self.client = TraktClient(self.cfg, ctx=ctx, on_tokens=self._on_tokens)
        _log("module", "debug", "gateway ready", batch_size=self.cfg.batch_size, timeout=self.cfg.timeout)

    def _on_tokens(self, tokens: Mapping[str, Any]) -> None:
        if not self._persist:
            return
        from providers.auth._auth_TRAKT import persist_tokens

        persist_tokens(tokens)

    def close(self) -> None:
        self.client.close()

    # --- reads ------------------------------------------------------------------
    def list_collection(self, kind: str, include_metadata: bool = True) -> List[RemoteCollectionEntry]:
        return feat_collection.fetch(self.client, kind, include_metadata=include_metadata)

    def list_watched(self, kind: str) -> List[RemoteWatchedEntry]:
        return feat_history.fetch(self.client, kind)

    def list_ratings(self, kind: str) -> List[RemoteRatingEntry]:
        return feat_ratings.fetch(
            self.client,
            kind,
            per_page=self.cfg.ratings_per_page,
            max_pages=self.cfg.ratings_max_pages,
        )

    # --- writes -----------------------------------------------------------------
    def _write(self, fn: Any, feature: str, items: Iterable[Mapping[str, Any]]) -> BatchResult:
        lst = list(items or [])
        if not lst:
            return BatchResult()
        res = fn(self.client, lst, chunk=self.cfg.batch_size)
        _log(feature, "info", "write done", items=len(lst), added=res.added, existing=res.existing,
             deleted=res.deleted, not_found=len(res.errors))
        return res

    def add_to_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write(feat_collection.add, "collection", items)

    def add_to_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write(feat_history.add, "history", items)

    def add_ratings(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write(feat_ratings.add, "ratings", items)

    def remove_from_collection(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write(feat_collection.remove, "collection", items)

    def remove_from_watched_history(self, items: Sequence[Mapping[str, Any]]) -> BatchResult:
        return self._write(feat_history.remove, "history", items)
