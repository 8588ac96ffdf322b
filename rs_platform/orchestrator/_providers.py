# rs_platform/orchestrator/_providers.py
# gateway loading for the orchestrator; provider modules live outside rs_platform.
from __future__ import annotations

import importlib
from collections.abc import Mapping
from typing import Any

from ._types import SyncGateway

GATEWAY_MODULES: dict[str, tuple[str, str]] = {
    "trakt": ("providers.sync._mod_TRAKT", "TRAKTModule"),
}

_NEEDED = (
    "list_collection", "list_watched", "list_ratings",
    "add_to_collection", "add_to_watched_history", "add_ratings",
    "remove_from_collection", "remove_from_watched_history",
)


def load_gateway(cfg: Mapping[str, Any], name: str = "trakt", *, ctx: Any = None) -> SyncGateway:
    """Build the named gateway; `ctx` receives its api:hit events (anything with `emit`)."""
    try:
        mod_name, attr = GATEWAY_MODULES[name.lower()]
    except KeyError:
        raise ValueError(f"unknown sync gateway: {name}") from None
    mod = importlib.import_module(mod_name)
    gw = getattr(mod, attr)(cfg, ctx=ctx)
    missing = [fn for fn in _NEEDED if not callable(getattr(gw, fn, None))]
    if missing:
        raise TypeError(f"{mod_name}.{attr} lacks {', '.join(missing)}")
    return gw
