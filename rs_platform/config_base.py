# rs_platform/config_base.py
# Config location, defaults and atomic load/save of config.json.
from __future__ import annotations

import copy
import json
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Dict

# ------------------------------------------------------------
# Base dir resolution
# ------------------------------------------------------------
def CONFIG_BASE() -> Path:
    """
    Determine the base directory for config files.

    Priority:
      1) $CONFIG_BASE if set
      2) /config (when running in container that mounts /config)
      3) Project root (one level up from this package)
    """
    env = os.getenv("CONFIG_BASE")
    if env:
        return Path(env)

    if Path("/app").exists():
        return Path("/config")

    return Path(__file__).resolve().parents[1]


SYNC_KINDS = ("movies", "shows")
SYNC_FEATURES = ("collection", "watched", "ratings")

# Default config structure
DEFAULT_CFG: Dict[str, Any] = {
    # --- Remote service ------------------------------------------------------
    "trakt": {
        "client_id": "",                                # From your Trakt app
        "client_secret": "",                            # From your Trakt app
        "access_token": "",                             # OAuth2 access token
        "refresh_token": "",                            # OAuth2 refresh token
        "expires_at": 0,                                # Epoch when access_token expires

        "timeout": 10,                                  # HTTP timeout (seconds)
        "max_retries": 5,                               # Retry budget for 429/5xx backoff
        "batch_size": 100,                              # Items per POST chunk (collection/history/ratings)

        "ratings_per_page": 100,                        # Items per page when listing ratings (clamped to 100)
        "ratings_max_pages": 50,                        # Max pages per ratings type
    },

    # --- What to reconcile ---------------------------------------------------
    "sync": {
        "movies": {"collection": True, "watched": True, "ratings": True},
        "shows":  {"collection": True, "watched": True, "ratings": True},
    },

    # --- Local library -------------------------------------------------------
    "library": {
        "path": "library.json",                         # JSON store, relative to CONFIG_BASE
        "export_dir": "exports",                        # Per-item export artifacts, relative to CONFIG_BASE
    },

    # --- Runtime -------------------------------------------------------------
    "runtime": {
        "debug": False,                                 # Enables DEBUG lines in the host logger
        "log_level": "info",                            # silent | error | warn | info | debug
        "log_json": "",                                 # JSON-lines log file, relative to CONFIG_BASE; empty = off
        "color": True,                                  # ANSI colors when stdout is a terminal
    },
}


def _cfg_file() -> Path:
    return CONFIG_BASE() / "config.json"


def config_path() -> Path:
    return _cfg_file()


def _read_json(p: Path) -> Dict[str, Any]:
    with p.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_json_atomic(p: Path, data: Any) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    suffix = f".{time.time_ns()}.{os.getpid()}.{threading.get_ident()}.{secrets.token_hex(4)}.tmp"
    tmp = p.with_suffix(suffix)

    with tmp.open("w", encoding="utf-8", newline="\n") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
        f.write("\n")
    tmp.replace(p)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)  # type: ignore[assignment]
        else:
            out[k] = v
    return out


# -------------------- Sync toggles normalization ----------------------------
def _normalize_sync_map(sync: Any) -> Dict[str, Dict[str, bool]]:
    s = dict(sync or {}) if isinstance(sync, dict) else {}
    out: Dict[str, Dict[str, bool]] = {}
    for kind in SYNC_KINDS:
        val = s.get(kind)
        if isinstance(val, bool):
            out[kind] = {f: val for f in SYNC_FEATURES}
            continue
        v = dict(val or {}) if isinstance(val, dict) else {}
        out[kind] = {f: bool(v.get(f, True)) for f in SYNC_FEATURES}
    return out


def resolve_path(value: str | os.PathLike[str]) -> Path:
    """Paths in config are relative to CONFIG_BASE unless absolute."""
    p = Path(value)
    return p if p.is_absolute() else CONFIG_BASE() / p


# ------------------------------------------------------------
# Public API
# ------------------------------------------------------------
def load_config() -> Dict[str, Any]:
    """
    Read config.json merged over DEFAULT_CFG.
    """
    p = _cfg_file()
    user_cfg: Dict[str, Any] = {}
    if p.exists():
        try:
            user_cfg = _read_json(p)
        except (OSError, ValueError):
            user_cfg = {}

    cfg = _deep_merge(DEFAULT_CFG, user_cfg)
    cfg["sync"] = _normalize_sync_map(cfg.get("sync"))
    return cfg


def save_config(cfg: Dict[str, Any]) -> None:
    """
    Write to config.json
    """
    data = dict(cfg or {})
    if "sync" in data:
        data["sync"] = _normalize_sync_map(data.get("sync"))
    write_json_atomic(_cfg_file(), data)
