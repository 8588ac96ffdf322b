# rs_platform/orchestrator/_episodes.py
# Season/episode grouping for episodic content.
# Local duplicates collapse to one payload entry per (season, episode); the first copy
# supplies value fields, the watched contribution is OR-ed across all copies.
from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from ..id_map import sparse_ids
from ..library import LocalItem
from ._types import RemoteEpisode, RemoteSeason

EpisodeKey = tuple[int, int]

__all__ = ["EpisodeKey", "EpisodeGroup", "group_episodes", "remote_episodes", "merge_remote_episodes", "build_show_payload"]


@dataclass
class EpisodeGroup:
    key: EpisodeKey
    items: list[LocalItem] = field(default_factory=list)

    @property
    def first(self) -> LocalItem:
        return self.items[0]

    @property
    def watched(self) -> bool:
        return any(it.watched for it in self.items)


def group_episodes(episodes: Iterable[LocalItem]) -> dict[EpisodeKey, EpisodeGroup]:
    """Group in stable order; episodes with a negative season or number are left out."""
    out: dict[EpisodeKey, EpisodeGroup] = {}
    for ep in episodes:
        if ep.season < 0 or ep.episode < 0:
            continue
        key = (ep.season, ep.episode)
        out.setdefault(key, EpisodeGroup(key)).items.append(ep)
    return out


def remote_episodes(seasons: Iterable[RemoteSeason]) -> dict[EpisodeKey, RemoteEpisode]:
    out: dict[EpisodeKey, RemoteEpisode] = {}
    for s in seasons or ():
        for e in s.episodes or ():
            out.setdefault((int(s.number), int(e.number)), e)
    return out


def merge_remote_episodes(
    show: LocalItem,
    seasons: Iterable[RemoteSeason],
    apply: Callable[[LocalItem, RemoteEpisode], bool],
) -> tuple[set[EpisodeKey], list[LocalItem]]:
    """Run `apply` for every local duplicate of every remote episode of a matched show.

    Returns the matched keys and the episodes `apply` reported as changed.
    """
    matched: set[EpisodeKey] = set()
    changed: list[LocalItem] = []
    for key, rep in remote_episodes(seasons).items():
        locals_ = show.episodes_for(*key)
        if not locals_:
            continue
        matched.add(key)
        for ep in locals_:
            with ep.scope():
                if apply(ep, rep):
                    ep.dirty = True
                    changed.append(ep)
    return matched, changed


def build_show_payload(
    show: LocalItem,
    groups: Mapping[EpisodeKey, EpisodeGroup],
    entry_for: Callable[[EpisodeGroup], dict[str, Any] | None],
) -> dict[str, Any] | None:
    """Nested show item for a push; `entry_for` returns the episode fields or None when
    the remote already has that key. Empty seasons and an empty show yield nothing."""
    seasons: dict[int, list[dict[str, Any]]] = {}
    for key in sorted(groups):
        fields = entry_for(groups[key])
        if fields is None:
            continue
        s, e = key
        seasons.setdefault(s, []).append({"number": e, **fields})
    if not seasons:
        return None
    return {
        "type": "show",
        "title": show.title,
        "ids": sparse_ids(show),
        "seasons": [{"number": s, "episodes": eps} for s, eps in sorted(seasons.items())],
    }
