# providers/auth/_auth_TRAKT.py
# ReelSync - Trakt token refresh and persistence
from __future__ import annotations

import time
from typing import Any, Mapping

import requests

from _logging import log as _real_log
from rs_platform.config_base import load_config, save_config
from rs_platform.errors import AuthExpiredError, TransportError

API = "https://api.trakt.tv"
OAUTH_TOKEN = f"{API}/oauth/token"

__VERSION__ = "1.1.0"
__all__ = ["refresh_tokens", "persist_tokens", "OAUTH_TOKEN"]


def log(msg: str, level: str = "INFO", module: str = "AUTH", **_: Any) -> None:
    _real_log(msg, level=level, module=module)


def _headers(client_id: str = "") -> dict[str, str]:
    h: dict[str, str] = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "trakt-api-version": "2",
    }
    if client_id:
        h["trakt-api-key"] = client_id
    return h


def _now() -> int:
    return int(time.time())


def refresh_tokens(
    client_id: str,
    client_secret: str,
    refresh_token: str,
    *,
    session: requests.Session | None = None,
    timeout: float = 30,
) -> dict[str, Any]:
    """Exchange a refresh token for a new token pair.

    Returns {"access_token", "refresh_token", "expires_at", ...}. A rejected refresh raises
    AuthExpiredError; a network failure raises TransportError.
    """
    cid = (client_id or "").strip()
    secr = (client_secret or "").strip()
    rt = (refresh_token or "").strip()
    if not (cid and secr and rt):
        log("TRAKT: missing client_id/client_secret/refresh_token for refresh", "ERROR")
        raise AuthExpiredError("cannot refresh: client_id, client_secret and refresh_token are required")

    payload: dict[str, Any] = {
        "refresh_token": rt,
        "client_id": cid,
        "client_secret": secr,
        "grant_type": "refresh_token",
    }
    post = session.post if session is not None else requests.post
    try:
        r = post(OAUTH_TOKEN, json=payload, headers=_headers(cid), timeout=timeout)
    except requests.RequestException as e:
        log(f"TRAKT: token refresh network error: {e}", "ERROR")
        raise TransportError(f"token refresh failed: {e}") from e

    if r.status_code >= 400:
        body: dict[str, Any] = {}
        try:
            body = r.json() or {}
        except ValueError:
            body = {}
        err = (
            str(body.get("error_description") or "")
            or str(body.get("error") or "")
            or (r.text or "")[:400]
        )
        log(f"TRAKT: token refresh failed {r.status_code}: {err}", "ERROR")
        raise AuthExpiredError(f"token refresh rejected ({r.status_code}): {err}")

    try:
        tok: dict[str, Any] = r.json() or {}
    except ValueError as e:
        raise AuthExpiredError(f"token refresh returned invalid JSON: {e}") from e

    acc = str(tok.get("access_token") or "").strip()
    if not acc:
        log("TRAKT: token refresh succeeded but no access_token in response", "ERROR")
        raise AuthExpiredError("token refresh returned no access_token")

    exp_in = int(tok.get("expires_in") or 0)
    log("TRAKT: token refreshed", "DEBUG")
    return {
        "access_token": acc,
        "refresh_token": str(tok.get("refresh_token") or rt).strip(),
        "expires_at": _now() + exp_in if exp_in > 0 else 0,
        "scope": tok.get("scope") or "public",
        "token_type": tok.get("token_type") or "bearer",
    }


def persist_tokens(tokens: Mapping[str, Any]) -> None:
    """Write rotated tokens back into config.json."""
    cfg = load_config()
    tr = dict(cfg.get("trakt") or {})
    for k in ("access_token", "refresh_token", "expires_at", "scope", "token_type"):
        if k in tokens:
            tr[k] = tokens[k]
    cfg["trakt"] = tr
    save_config(cfg)
    log("TRAKT: rotated tokens persisted", "DEBUG")
