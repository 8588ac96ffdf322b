# rs_platform/orchestrator/_collection.py
# Collection reconciler: remote collected_at is authoritative, the technical profile decides coverage.
from __future__ import annotations

from ..id_map import IdIndex, backfill_ids
from ..library import LocalItem
from ..profile import covers, snapshot
from ._base import Reconciler, episode_fields, now_utc, wire_item
from ._episodes import EpisodeGroup, build_show_payload, group_episodes, merge_remote_episodes, remote_episodes
from ._types import RemoteCollectionEntry, RemoteEpisode


class CollectionReconciler(Reconciler):
    feature = "collection"

    def _merge(self, it: LocalItem, entry: RemoteCollectionEntry, idx: IdIndex) -> None:
        with it.scope():
            if backfill_ids(it, entry):
                self.touch(it)
                idx.refresh(it)
            if entry.collected_at is not None and it.date_added != entry.collected_at:
                it.date_added = entry.collected_at
                self.touch(it)

    # --- movies -----------------------------------------------------------------
    def reconcile_flat(self, items: list[LocalItem]) -> None:
        remote = self.gateway.list_collection(self.kind, include_metadata=True)
        self.result.remote = len(remote)
        idx = self.index(items)

        matched: set[int] = set()
        covered: set[int] = set()
        for entry in remote:
            hits = idx.lookup(entry)
            if not hits:
                continue
            any_covered = False
            for it in hits:
                self._merge(it, entry, idx)
                matched.add(id(it))
                if covers(entry.profile, snapshot(it)):
                    any_covered = True
            # no copy matches the remote profile: push the first copy, leave the rest alone
            covered.update(id(it) for it in (hits if any_covered else hits[1:]))
        self.result.matched = len(matched)

        self.persist()

        pending = self.eligible(it for it in items if id(it) not in covered)
        now = now_utc()
        payload = [wire_item(it, collected_at=it.date_added or now) for it in pending]
        self.send(self.gateway.add_to_collection, payload, pending)

    # --- shows ------------------------------------------------------------------
    def _merge_episode(self, ep: LocalItem, rep: RemoteEpisode) -> bool:
        if rep.collected_at is not None and ep.date_added != rep.collected_at:
            ep.date_added = rep.collected_at
            return True
        return False

    def reconcile_shows(self, shows: list[LocalItem]) -> None:
        remote = self.gateway.list_collection("shows", include_metadata=True)
        self.result.remote = len(remote)
        idx = self.index(shows)

        have: dict[int, dict[tuple[int, int], RemoteEpisode]] = {}
        for entry in remote:
            for show in idx.lookup(entry):
                with show.scope():
                    if backfill_ids(show, entry):
                        self.touch(show)
                        idx.refresh(show)
                _, changed = merge_remote_episodes(show, entry.seasons, self._merge_episode)
                for ep in changed:
                    self.touch(ep)
                have.setdefault(id(show), {}).update(remote_episodes(entry.seasons))
        self.result.matched = len(have)

        self.persist()

        now = now_utc()
        for show in shows:
            self.check_cancel()
            known = have.get(id(show), {})

            def entry_for(g: EpisodeGroup) -> dict | None:
                rep = known.get(g.key)
                # any covered copy covers the whole key
                if rep is not None and any(covers(rep.profile, snapshot(ep)) for ep in g.items):
                    return None
                return episode_fields(g.first, collected_at=g.first.date_added or now)

            payload = build_show_payload(show, group_episodes(show.episodes), entry_for)
            if payload is None or not self.eligible([show]):
                continue
            self.send(self.gateway.add_to_collection, [payload], [show])
