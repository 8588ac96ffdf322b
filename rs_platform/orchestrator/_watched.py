# rs_platform/orchestrator/_watched.py
# Watched-state reconciler: watched only ever flips to true, plays and last-watched follow the remote.
from __future__ import annotations

from ..id_map import backfill_ids
from ..library import LocalItem
from ._base import Reconciler, episode_fields, now_utc, wire_item
from ._episodes import EpisodeGroup, build_show_payload, group_episodes, merge_remote_episodes
from ._types import RemoteEpisode, RemoteWatchedEntry


def apply_watched(it: LocalItem, plays: int, last_watched_at) -> bool:
    changed = False
    if not it.watched:
        it.watched = True
        changed = True
    # remote count wins, downward too
    plays = int(plays or 0)
    if it.playcount != plays:
        it.playcount = plays
        changed = True
    # the date alone never dirties the item; it only rides along with an export
    if last_watched_at is not None:
        it.last_watched = last_watched_at
    return changed


class WatchedReconciler(Reconciler):
    feature = "watched"

    # --- movies -----------------------------------------------------------------
    def reconcile_flat(self, items: list[LocalItem]) -> None:
        remote = self.gateway.list_watched(self.kind)
        self.result.remote = len(remote)
        idx = self.index(items)

        matched: set[int] = set()
        for entry in remote:
            for it in idx.lookup(entry):
                matched.add(id(it))
                with it.scope():
                    if backfill_ids(it, entry):
                        self.touch(it)
                        idx.refresh(it)
                    if apply_watched(it, entry.plays, entry.last_watched_at):
                        self.touch(it)
        self.result.matched = len(matched)

        self.persist()

        pending = self.eligible(it for it in items if it.watched and id(it) not in matched)
        now = now_utc()
        payload = [wire_item(it, watched_at=it.last_watched or now) for it in pending]
        self.send(self.gateway.add_to_watched_history, payload, pending)

    def after_save(self, item: LocalItem) -> None:
        # last_watched lives only in the export written just now
        item.last_watched = None

    # --- shows ------------------------------------------------------------------
    @staticmethod
    def _merge_episode(ep: LocalItem, rep: RemoteEpisode) -> bool:
        return apply_watched(ep, rep.plays, rep.last_watched_at)

    def reconcile_shows(self, shows: list[LocalItem]) -> None:
        remote: list[RemoteWatchedEntry] = self.gateway.list_watched("shows")
        self.result.remote = len(remote)
        idx = self.index(shows)

        seen: dict[int, set[tuple[int, int]]] = {}
        for entry in remote:
            for show in idx.lookup(entry):
                with show.scope():
                    if backfill_ids(show, entry):
                        self.touch(show)
                        idx.refresh(show)
                keys, changed = merge_remote_episodes(show, entry.seasons, self._merge_episode)
                for ep in changed:
                    self.touch(ep)
                seen.setdefault(id(show), set()).update(keys)
        self.result.matched = len(seen)

        self.persist()

        now = now_utc()
        for show in shows:
            self.check_cancel()
            known = seen.get(id(show), set())

            def entry_for(g: EpisodeGroup) -> dict | None:
                if not g.watched or g.key in known:
                    return None
                return episode_fields(g.first, watched_at=g.first.last_watched or now)

            payload = build_show_payload(show, group_episodes(show.episodes), entry_for)
            if payload is None or not self.eligible([show]):
                continue
            self.send(self.gateway.add_to_watched_history, [payload], [show])
