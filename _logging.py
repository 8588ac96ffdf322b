# _logging.py
# ReelSync host logger. Sync runs log as "[SYNC:movies:collection] INFO ...", the HTTP
# middleware as [HTTP] and the OAuth helpers as [AUTH]. reelsync.main() calls
# log.configure(cfg) with the runtime section: log_level, debug, log_json (JSON-lines sink).
from __future__ import annotations
import sys, datetime, json, threading, time
from typing import Any, Optional, TextIO, Mapping, Dict

RESET = "\033[0m"
DIM = "\033[90m"
RED = "\033[91m"
GREEN = "\033[92m"
YELLOW = "\033[33m"
BLUE = "\033[94m"

LEVELS = {"silent": 60, "error": 40, "warn": 30, "info": 20, "debug": 10}

TAG_COLORS = {"DEBUG": DIM, "INFO": BLUE, "WARN": YELLOW, "ERROR": RED, "SUCCESS": GREEN}

# ── debug gate: runtime.debug from configure(), else config.json (re-read every 5s) ──
_DEBUG_PINNED: bool | None = None
_CFG_CACHE: Dict[str, Any] | None = None
_CFG_TS: float = 0.0

def _debug_enabled() -> bool:
    global _CFG_CACHE, _CFG_TS
    if _DEBUG_PINNED is not None:
        return _DEBUG_PINNED
    now = time.time()
    if _CFG_CACHE is None or (now - _CFG_TS) > 5.0:
        from rs_platform.config_base import config_path
        try:
            with open(config_path(), "r", encoding="utf-8") as f:
                _CFG_CACHE = json.load(f)
        except (OSError, ValueError):
            _CFG_CACHE = {}
        _CFG_TS = now
    return bool((_CFG_CACHE.get("runtime") or {}).get("debug"))


class Logger:
    def __init__(
        self,
        stream: TextIO = sys.stdout,
        level: str = "info",
        use_color: bool = True,
        *,
        _context: Optional[Dict[str, Any]] = None,
        _json_stream: Optional[TextIO] = None,
        _lock: Optional[threading.Lock] = None,
    ):
        self.stream = stream
        self.level_no = LEVELS.get(level, 20)
        self.use_color = use_color
        self._context: Dict[str, Any] = dict(_context or {})
        self._json_stream: Optional[TextIO] = _json_stream
        self._lock = _lock or threading.Lock()

    # Configuration
    def set_level(self, level: str) -> None:
        self.level_no = LEVELS.get(level, self.level_no)

    def enable_json(self, file_path: str) -> None:
        self._json_stream = open(file_path, "a", encoding="utf-8")

    def configure(self, cfg: Mapping[str, Any]) -> None:
        global _DEBUG_PINNED
        rt = dict(cfg.get("runtime") or {})
        self.set_level(str(rt.get("log_level") or "info").lower())
        _DEBUG_PINNED = bool(rt.get("debug", False))
        isatty = getattr(self.stream, "isatty", None)
        self.use_color = bool(rt.get("color", True)) and bool(isatty and isatty())
        if rt.get("log_json"):
            from rs_platform.config_base import resolve_path
            self.enable_json(str(resolve_path(rt["log_json"])))

    # Context
    def bind(self, **ctx: Any) -> "Logger":
        new_ctx = dict(self._context)
        new_ctx.update(ctx)
        child = Logger(self.stream, "info", self.use_color, _context=new_ctx, _json_stream=self._json_stream, _lock=self._lock)
        child.level_no = self.level_no
        return child

    def child(self, name: str) -> "Logger":
        return self.bind(module=name)

    # Formatting
    def _fmt_text(self, tag: str, msg: str) -> str:
        # "[ts] [MODULE] LEVEL message"
        mod = str(self._context.get("module") or "").strip()
        ts = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        col = TAG_COLORS.get(tag) if self.use_color else None
        lvl = f"{col}{tag}{RESET}" if col else tag
        stamp = f"{DIM}[{ts}]{RESET}" if self.use_color else f"[{ts}]"
        head = f" [{mod}]" if mod else ""
        return f"{stamp}{head} {lvl} {msg}"

    def _write_sinks(self, tag: str, text: str, *, msg: str, extra: Optional[Mapping[str, Any]]) -> None:
        with self._lock:
            self.stream.write(text + "\n")
            self.stream.flush()
            if self._json_stream:
                payload: Dict[str, Any] = {
                    "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
                    "level": tag,
                    "msg": msg,
                    "ctx": self._context,
                }
                if extra:
                    payload["extra"] = dict(extra)
                self._json_stream.write(json.dumps(payload, ensure_ascii=False, default=str) + "\n")
                self._json_stream.flush()

    def _emit(self, severity: str, tag: str, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        if severity == "debug":
            if not _debug_enabled():
                return
        elif self.level_no > LEVELS.get(severity, LEVELS["info"]):
            return
        msg = " ".join(str(p) for p in parts)
        text = self._fmt_text(tag, msg)
        if extra:
            text = f"{text} " + " ".join(f"{k}={v}" for k, v in extra.items() if v is not None)
        self._write_sinks(tag, text, msg=msg, extra=extra)

    # Public API
    def debug(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("debug", "DEBUG", *parts, extra=extra)

    def info(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "INFO", *parts, extra=extra)

    def warn(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("warn", "WARN", *parts, extra=extra)

    def error(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("error", "ERROR", *parts, extra=extra)

    def success(self, *parts: Any, extra: Optional[Mapping[str, Any]] = None) -> None:
        self._emit("info", "SUCCESS", *parts, extra=extra)

    # Callable adapter for the AUTH helpers: log("text", level="WARN", module="AUTH")
    def __call__(
        self,
        message: str,
        *,
        level: str = "INFO",
        module: Optional[str] = None,
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        target = self.child(module) if module else self
        fn = {
            "debug": target.debug,
            "warn": target.warn,
            "warning": target.warn,
            "error": target.error,
            "success": target.success,
        }.get((level or "INFO").lower(), target.info)
        fn(message, extra=extra)

# default instance
log = Logger()

__all__ = ["Logger", "log", "LEVELS", "RESET", "DIM", "RED", "GREEN", "YELLOW", "BLUE"]
