# api/syncAPI.py
# ReelSync - sync command surface: start, cancel, bulk clear and status
from __future__ import annotations

import threading
import time
import uuid
from collections import deque
from typing import Any, Callable

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from _logging import log as host_log
from rs_platform.config_base import SYNC_FEATURES, SYNC_KINDS, load_config
from rs_platform.errors import SyncError
from rs_platform.library import load_library
from rs_platform.orchestrator import Orchestrator, RunSummary

__all__ = [
    "router",
    "SyncRequest",
    "set_orchestrator_factory",
    "default_orchestrator_factory",
    "_is_sync_running",
    "_wait_for_run",
]

router = APIRouter(prefix="/api", tags=["synchronization"])
_log = host_log.child("API")

OrchestratorFactory = Callable[[dict[str, Any], Callable[[str], None]], Orchestrator]

RUNNING_PROCS: dict[str, threading.Thread] = {}
SYNC_PROC_LOCK = threading.Lock()
LOG_BUFFER: deque[str] = deque(maxlen=500)

_STATE: dict[str, Any] = {
    "run_id": None,
    "orchestrator": None,
    "last": None,
    "started_at": None,
}


def default_orchestrator_factory(cfg: dict[str, Any], on_progress: Callable[[str], None]) -> Orchestrator:
    return Orchestrator(cfg, load_library(cfg), on_progress=on_progress)


_FACTORY: OrchestratorFactory = default_orchestrator_factory


def set_orchestrator_factory(fn: OrchestratorFactory | None) -> None:
    """Swap how runs get their orchestrator (None restores the default)."""
    global _FACTORY
    _FACTORY = fn or default_orchestrator_factory


def _append_log(line: str) -> None:
    LOG_BUFFER.append(line)


def _is_sync_running() -> bool:
    t = RUNNING_PROCS.get("SYNC")
    return bool(t and t.is_alive())


def _wait_for_run(timeout: float | None = None) -> bool:
    """Join the active run thread; False if it is still running after `timeout`."""
    t = RUNNING_PROCS.get("SYNC")
    if t is None:
        return True
    t.join(timeout)
    return not t.is_alive()


class SyncRequest(BaseModel):
    kinds: list[str] | None = None


def _run_thread(orc: Orchestrator, run_id: str, features: list[str], kinds: list[str]) -> None:
    try:
        summary: RunSummary = orc.run(features=features, kinds=kinds, run_id=run_id)
        _STATE["last"] = summary.to_dict()
    except Exception as e:
        _log.error(f"run {run_id} aborted: {type(e).__name__}: {e}")
        _STATE["last"] = {"run_id": run_id, "ok": False, "error": f"{type(e).__name__}: {e}", "categories": []}
    finally:
        _STATE["orchestrator"] = None


def _bad_request(msg: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": msg}, status_code=400)


@router.post("/sync/cancel")
def api_sync_cancel() -> dict[str, Any]:
    orc: Orchestrator | None = _STATE.get("orchestrator")
    if orc is None or not _is_sync_running():
        return {"ok": True, "cancelled": False}
    orc.cancel.set()
    _log.warn(f"cancel requested for run {_STATE.get('run_id')}")
    return {"ok": True, "cancelled": True, "run_id": _STATE.get("run_id")}


@router.get("/sync/status")
def api_sync_status() -> dict[str, Any]:
    return {
        "running": _is_sync_running(),
        "run_id": _STATE.get("run_id"),
        "started_at": _STATE.get("started_at"),
        "last": _STATE.get("last"),
        "log": list(LOG_BUFFER)[-50:],
    }


@router.post("/sync/clear/{kind}", response_model=None)
def api_sync_clear(kind: str) -> dict[str, Any] | JSONResponse:
    if kind not in SYNC_KINDS:
        return _bad_request(f"unknown kind: {kind}")
    with SYNC_PROC_LOCK:
        if _is_sync_running():
            return JSONResponse({"ok": False, "error": "Sync already running"}, status_code=409)
        orc = _FACTORY(load_config(), _append_log)
    try:
        res = orc.clear(kind)
    except SyncError as e:
        _log.error(f"clear {kind} failed: {type(e).__name__}: {e}")
        return JSONResponse({"ok": False, "error": f"{type(e).__name__}: {e}"}, status_code=502)
    return {"ok": True, **res}


@router.post("/sync/{feature}", response_model=None)
def api_sync_run(feature: str, payload: SyncRequest | None = Body(None)) -> dict[str, Any] | JSONResponse:
    if feature != "all" and feature not in SYNC_FEATURES:
        return _bad_request(f"unknown feature: {feature}")
    kinds = list((payload.kinds if payload else None) or SYNC_KINDS)
    bad = [k for k in kinds if k not in SYNC_KINDS]
    if bad:
        return _bad_request(f"unknown kind: {', '.join(bad)}")
    features = list(SYNC_FEATURES) if feature == "all" else [feature]

    with SYNC_PROC_LOCK:
        if _is_sync_running():
            return JSONResponse({"ok": False, "error": "Sync already running"}, status_code=409)
        orc = _FACTORY(load_config(), _append_log)
        run_id = uuid.uuid4().hex[:12]
        _STATE.update(run_id=run_id, orchestrator=orc, started_at=time.time())
        th = threading.Thread(
            target=_run_thread,
            args=(orc, run_id, features, kinds),
            name=f"sync-{run_id}",
            daemon=True,
        )
        RUNNING_PROCS["SYNC"] = th
        th.start()
    _log.info(f"triggered sync run {run_id}: features={','.join(features)} kinds={','.join(kinds)}")
    return {"ok": True, "run_id": run_id, "features": features, "kinds": kinds}
