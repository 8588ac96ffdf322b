# rs_platform/orchestrator/_ratings.py
# Rating reconciler: remote ratings only fill empty local ratings; local ratings are pushed
# unless the remote already holds the same integer value.
from __future__ import annotations

import math
from typing import Any

from ..id_map import IdIndex, backfill_ids
from ..library import LocalItem, iso_ts
from ._base import Reconciler, now_utc, wire_item
from ._episodes import EpisodeGroup, build_show_payload, group_episodes
from ._types import RemoteRatingEntry


def wire_rating(value: float | None) -> int | None:
    """Local float rating as the remote's integer 1..10 (half rounds up); None when out of range."""
    if value is None:
        return None
    try:
        n = int(math.floor(float(value) + 0.5))
    except (TypeError, ValueError):
        return None
    return n if 1 <= n <= 10 else None


class RatingReconciler(Reconciler):
    feature = "ratings"

    def _pull(self, remote: list[RemoteRatingEntry], idx: IdIndex) -> dict[int, set[int]]:
        """Merge remote ratings; returns the remote integer ratings seen per matched local item."""
        seen: dict[int, set[int]] = {}
        for entry in remote:
            for it in idx.lookup(entry):
                with it.scope():
                    if backfill_ids(it, entry):
                        self.touch(it)
                        idx.refresh(it)
                    if entry.rating is None:
                        continue
                    seen.setdefault(id(it), set()).add(int(entry.rating))
                    if it.rating is None:
                        it.rating = float(entry.rating)
                        self.touch(it)
        return seen

    def _pending(self, items: list[LocalItem], seen: dict[int, set[int]]) -> list[LocalItem]:
        out: list[LocalItem] = []
        for it in items:
            if it.rating is None:
                continue
            value = wire_rating(it.rating)
            if value is None:
                self.result.ineligible += 1
                self.log.warn(f"skip {it.label}: rating {it.rating} outside 1..10")
                continue
            if value in seen.get(id(it), ()):
                continue
            out.append(it)
        return out

    def _rated(self, it: LocalItem, now: Any) -> dict[str, Any]:
        out = wire_item(it, rated_at=now)
        out["rating"] = wire_rating(it.rating)
        return out

    # --- movies -----------------------------------------------------------------
    def reconcile_flat(self, items: list[LocalItem]) -> None:
        remote = self.gateway.list_ratings(self.kind)
        self.result.remote = len(remote)
        idx = self.index(items)
        seen = self._pull(remote, idx)
        self.result.matched = len(seen)

        self.persist()

        pending = self.eligible(self._pending(items, seen))
        now = now_utc()
        payload = [self._rated(it, now) for it in pending]
        self.send(self.gateway.add_ratings, payload, pending)

    # --- shows ------------------------------------------------------------------
    def reconcile_shows(self, shows: list[LocalItem]) -> None:
        # show-level ratings behave like movie ratings
        show_remote = self.gateway.list_ratings("shows")
        ep_remote = self.gateway.list_ratings("episodes")
        self.result.remote = len(show_remote) + len(ep_remote)
        idx = self.index(shows)
        seen = self._pull(show_remote, idx)

        ep_seen: dict[int, set[int]] = {}
        for entry in ep_remote:
            if entry.season is None or entry.episode is None:
                continue
            for show in idx.lookup(entry.show_ids):
                with show.scope():
                    if backfill_ids(show, entry.show_ids):
                        self.touch(show)
                        idx.refresh(show)
                for ep in show.episodes_for(int(entry.season), int(entry.episode)):
                    with ep.scope():
                        if backfill_ids(ep, entry):
                            self.touch(ep)
                        if entry.rating is None:
                            continue
                        ep_seen.setdefault(id(ep), set()).add(int(entry.rating))
                        if ep.rating is None:
                            ep.rating = float(entry.rating)
                            self.touch(ep)
        self.result.matched = len(seen) + len(ep_seen)

        self.persist()

        now = now_utc()
        pending = self.eligible(self._pending(shows, seen))
        self.send(self.gateway.add_ratings, [self._rated(s, now) for s in pending], pending)

        for show in shows:
            self.check_cancel()

            def entry_for(g: EpisodeGroup) -> dict | None:
                first = g.first
                value = wire_rating(first.rating)
                if value is None or value in ep_seen.get(id(first), ()):
                    return None
                return {"rating": value, "rated_at": iso_ts(now)}

            payload = build_show_payload(show, group_episodes(show.episodes), entry_for)
            if payload is None or not self.eligible([show]):
                continue
            self.send(self.gateway.add_ratings, [payload], [show])
