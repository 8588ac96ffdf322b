# rs_platform/orchestrator/_logging.py
from __future__ import annotations
import json
from typing import Any, Callable

class Emitter:
    """Progress events for an optional UI callback; the callback gets one JSON line per event."""

    def __init__(self, cb: Callable[[str], None] | None):
        self.cb = cb

    def emit(self, event: str, **data: Any) -> None:
        if not self.cb:
            return
        payload = {"event": event}
        payload.update(data)
        self.cb(json.dumps(payload, separators=(",", ":"), default=str))
