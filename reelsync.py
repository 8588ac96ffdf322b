# /reelsync.py
# ReelSync - library <-> Trakt reconciliation engine
from __future__ import annotations

import argparse
import time

import uvicorn
from fastapi import FastAPI, Request

from _logging import log
from api import register as register_api
from rs_platform import __version__
from rs_platform.config_base import config_path, load_config

_http_log = log.child("HTTP")


def create_app() -> FastAPI:
    app = FastAPI(title="ReelSync", version=__version__)

    @app.middleware("http")
    async def conditional_access_logger(request: Request, call_next):
        t0 = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            _http_log.error(f'"{request.method} {request.url.path}" failed: {type(e).__name__}: {e}')
            raise
        status = getattr(response, "status_code", 0) or 0
        if status >= 400:
            dt_ms = int((time.time() - t0) * 1000)
            _http_log.warn(f'"{request.method} {request.url.path}" {status} ({dt_ms} ms)')
        else:
            _http_log.debug(f'"{request.method} {request.url.path}" {status}')
        return response

    register_api(app)
    return app


app = create_app()


def main(host: str = "0.0.0.0", port: int = 8797) -> None:
    ap = argparse.ArgumentParser(description="ReelSync reconciliation service")
    ap.add_argument("--host", default=host)
    ap.add_argument("--port", type=int, default=port)
    args = ap.parse_args()

    cfg = load_config()
    log.configure(cfg)
    debug = bool((cfg.get("runtime") or {}).get("debug"))

    print("\nReelSync running:")
    print(f"  Local:   http://127.0.0.1:{args.port}")
    print(f"  Bind:    {args.host}:{args.port}")
    print(f"  Config:  {config_path()} (JSON)\n")

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=("debug" if debug else "warning"),
        access_log=debug,
    )


if __name__ == "__main__":
    main()
