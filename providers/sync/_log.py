# /providers/sync/_log.py
# ReelSync - gateway logging. Every Trakt call site logs through here as
#   [TRAKT:collection] INFO write done added=3 items=3
# Levels: RS_TRAKT_LOG_LEVEL > RS_LOG_LEVEL > RS_DEBUG/RS_TRAKT_DEBUG > info.
# RS_LOG_FORMAT=json switches to one JSON object per line; credentials are always masked.
from __future__ import annotations

import json
import os
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

__all__ = ["log", "enabled"]

_LEVELS: dict[str, int] = {"off": 99, "error": 40, "warn": 30, "warning": 30, "info": 20, "debug": 10}

RESET = "\033[0m"
_STYLE: dict[int, str] = {40: "\033[91m", 30: "\033[33m", 20: "\033[94m", 10: "\033[90m"}
_HEAD = "\033[90m"

# field names never printed in clear text
_SECRETS = frozenset({"access_token", "refresh_token", "client_secret", "authorization", "token", "code"})


def _truthy(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _num(level: Any) -> int:
    return _LEVELS.get(str(level or "info").strip().lower(), 20)


def _threshold(provider: str) -> int:
    raw = os.getenv(f"RS_{provider}_LOG_LEVEL") or os.getenv("RS_LOG_LEVEL") or ""
    if raw.strip():
        return _num(raw)
    return _num("debug") if (_truthy("RS_DEBUG") or _truthy(f"RS_{provider}_DEBUG")) else _num("info")


def enabled(provider: str, level: str) -> bool:
    return _num(level) >= _threshold(str(provider).strip().upper())


def _mask(key: str, value: Any) -> Any:
    if key.lower() not in _SECRETS or value in (None, ""):
        return value
    s = str(value)
    return f"{s[:4]}…" if len(s) > 8 else "***"


def _flat(v: Any) -> str:
    return " ".join(str("" if v is None else v).split())


def _pairs(fields: Mapping[str, Any]) -> str:
    out: list[str] = []
    for k in sorted(fields):
        v = _flat(fields[k])
        if not v:
            continue
        if any(ch.isspace() or ch in '"=:' for ch in v):
            v = json.dumps(v, ensure_ascii=False)
        out.append(f"{k}={v}")
    return " ".join(out)


def _color() -> bool:
    if os.getenv("NO_COLOR") is not None:
        return False
    return (os.getenv("RS_LOG_COLOR") or "auto").strip().lower() not in ("0", "false", "no", "off")


def log(provider: str, feature: str, level: str, msg: str, **fields: Any) -> None:
    prov = str(provider).strip().upper()
    lvl = _num(level)
    if lvl < _threshold(prov):
        return
    name = str(level).strip().upper()
    feat = str(feature).strip().lower()
    safe = {k: _mask(k, v) for k, v in fields.items()}

    if (os.getenv("RS_LOG_FORMAT") or "kv").strip().lower() == "json":
        ts = datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")
        doc = {"ts": ts, "provider": prov, "feature": feat, "level": name, "msg": _flat(msg), **safe}
        print(json.dumps(doc, ensure_ascii=False, default=str), flush=True)
        return

    head, tag = f"[{prov}:{feat}]", name
    if _color():
        head = f"{_HEAD}{head}{RESET}"
        tag = f"{_STYLE.get(lvl, '')}{name}{RESET}"
    line = f"{head} {tag} {_flat(msg)}"
    tail = _pairs(safe)
    print(f"{line} {tail}" if tail else line, flush=True)
