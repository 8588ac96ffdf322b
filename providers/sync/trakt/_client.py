# /providers/sync/trakt/_client.py
# Trakt client context: lazy session, 401 -> refresh once -> retry once, transport errors typed.
from __future__ import annotations

import threading
import time
from typing import Any, Callable, Mapping, Optional

import requests

from providers.auth._auth_TRAKT import refresh_tokens
from rs_platform.errors import AuthExpiredError, TransportError

from .._mod_common import build_session, label_trakt, request_with_retries, safe_json
from .._log import enabled
from ._common import BASE, build_headers, _log

TokenSink = Callable[[Mapping[str, Any]], None]

# refresh this many seconds before the recorded expiry
_EXPIRY_SKEW = 60


class TraktClient:
    """Owns the HTTP session and the credentials of one gateway instance."""

    BASE = BASE

    def __init__(self, cfg: Any, *, ctx: Any = None, on_tokens: Optional[TokenSink] = None):
        self.cfg = cfg
        self.ctx = ctx
        self.on_tokens = on_tokens
        self._session: Optional[requests.Session] = None
        self._session_lock = threading.Lock()
        self._refresh_lock = threading.Lock()

    # --- session ----------------------------------------------------------------
    @property
    def session(self) -> requests.Session:
        with self._session_lock:
            if self._session is None:
                self._session = build_session("TRAKT", self.ctx, feature_label=label_trakt)
            return self._session

    def _drop_session(self) -> None:
        with self._session_lock:
            s, self._session = self._session, None
        if s is not None:
            s.close()

    def close(self) -> None:
        self._drop_session()

    # --- credentials --------------------------------------------------------------
    def headers(self) -> dict[str, str]:
        return build_headers(self.cfg.client_id, self.cfg.access_token)

    def _expired(self) -> bool:
        exp = int(getattr(self.cfg, "expires_at", 0) or 0)
        return bool(exp) and bool(self.cfg.refresh_token) and time.time() >= exp - _EXPIRY_SKEW

    def refresh(self, stale_token: str) -> None:
        """Rotate tokens unless another caller already did while we waited for the lock."""
        with self._refresh_lock:
            if self.cfg.access_token != stale_token:
                _log("auth", "debug", "token already rotated by another caller")
                return
            tok = refresh_tokens(
                self.cfg.client_id,
                self.cfg.client_secret,
                self.cfg.refresh_token,
                session=self.session,
                timeout=self.cfg.timeout,
            )
            self.cfg.access_token = tok["access_token"]
            self.cfg.refresh_token = tok["refresh_token"]
            self.cfg.expires_at = tok["expires_at"]
            _log("auth", "info", "access token refreshed")
            if self.on_tokens is not None:
                self.on_tokens(tok)

    # --- requests -----------------------------------------------------------------
    def _send(self, method: str, url: str, **kw: Any) -> requests.Response:
        try:
            r = request_with_retries(
                self.session,
                method,
                url,
                headers=self.headers(),
                timeout=self.cfg.timeout,
                max_retries=self.cfg.max_retries,
                **kw,
            )
        except requests.RequestException as e:
            self._drop_session()
            _log("http", "error", "transport failure", method=method, url=url, error=str(e))
            raise TransportError(f"{method} {url}: {e}") from e
        return r

    def request(self, method: str, path: str, **kw: Any) -> requests.Response:
        url = path if path.startswith("http") else f"{self.BASE}{path}"
        if self._expired():
            self.refresh(self.cfg.access_token)

        token = self.cfg.access_token
        r = self._send(method, url, **kw)
        if r.status_code == 401:
            _log("auth", "warn", "unauthorized; refreshing", method=method, url=url)
            self.refresh(token)
            r = self._send(method, url, **kw)
            if r.status_code == 401:
                raise AuthExpiredError(f"{method} {url}: still unauthorized after token refresh")

        if not (200 <= r.status_code < 300):
            body = (r.text or "")[:200]
            _log("http", "error", "request failed", method=method, url=url, status=r.status_code,
                 body=body if enabled("TRAKT", "debug") else None)
            raise TransportError(f"{method} {url}: HTTP {r.status_code} {body}")
        return r

    def get(self, path: str, **kw: Any) -> requests.Response:
        return self.request("GET", path, **kw)

    def post(self, path: str, **kw: Any) -> requests.Response:
        return self.request("POST", path, **kw)

    @staticmethod
    def json_of(r: requests.Response) -> Any:
        return safe_json(r)
