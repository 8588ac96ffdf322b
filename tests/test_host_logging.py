# ReelSync test scripts
from __future__ import annotations

import io
import json
from pathlib import Path

import pytest

import _logging
from _logging import Logger


def test_child_logger_tags_lines_with_its_module() -> None:
    out = io.StringIO()
    Logger(out, use_color=False).child("SYNC:movies:collection").info("done:", "remote=3", extra={"pushed": 1})
    line = out.getvalue().strip()
    assert "[SYNC:movies:collection] INFO done: remote=3 pushed=1" in line


def test_configure_applies_level_debug_and_json_sink(config_base: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(_logging, "_DEBUG_PINNED", None)
    out = io.StringIO()
    logger = Logger(out)
    logger.configure({"runtime": {"log_level": "warn", "debug": False, "log_json": "sync.jsonl"}})
    sync = logger.child("SYNC")

    sync.info("hidden")
    sync.debug("hidden too")
    sync.warn("kept")

    assert "hidden" not in out.getvalue()
    assert "[SYNC] WARN kept" in out.getvalue()
    assert "\033[" not in out.getvalue()
    (doc,) = [json.loads(x) for x in (config_base / "sync.jsonl").read_text("utf-8").splitlines()]
    assert doc["level"] == "WARN" and doc["msg"] == "kept"
    assert doc["ctx"] == {"module": "SYNC"}
    assert logger._json_stream is not None
    logger._json_stream.close()
