# /providers/sync/_mod_common.py
# ReelSync common sync module: labelled HTTP session, JSON decoding, retrying requests
from __future__ import annotations

import json
import os
import time
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

import requests

__VERSION__ = "0.4.0"
__all__ = [
    "HitSession",
    "make_emitter",
    "build_session",
    "safe_json",
    "request_with_retries",
    "default_feature_label",
    "label_trakt",
]

EmitFn = Callable[[str, Mapping[str, Any]], None]
FeatureLabelFn = Callable[[str, str, Mapping[str, Any]], str]


def make_emitter(ctx: Any) -> EmitFn:
    emit_fn: Callable[..., Any] | None = None
    if hasattr(ctx, "emit") and callable(getattr(ctx, "emit")):
        emit_fn = getattr(ctx, "emit")
    elif callable(ctx):
        emit_fn = ctx

    def _emit(event: str, payload: Mapping[str, Any]) -> None:
        if not emit_fn:
            return
        try:
            emit_fn(event, **dict(payload))
        except TypeError:
            emit_fn(event, dict(payload))

    return _emit


def default_feature_label(
    provider: str,
    method: str,
    url: str,
    kw: Mapping[str, Any],
) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    head = "/".join(segs[:3]) or "unknown"
    return head.lower()


def label_trakt(method: str, url: str, kw: Mapping[str, Any]) -> str:
    p = urlparse(url)
    segs = [s for s in (p.path or "/").split("/") if s]
    if segs[:2] == ["oauth", "token"]:
        return "auth:refresh"
    if len(segs) >= 2 and segs[0] == "sync" and segs[1] in ("collection", "history", "watched", "ratings"):
        feature = "history" if segs[1] == "watched" else segs[1]
        if len(segs) >= 3 and segs[2] == "remove":
            return f"{feature}:remove"
        if method.upper() == "POST":
            return f"{feature}:add"
        if len(segs) >= 3:
            return f"{feature}:index:{segs[2]}"
        return f"{feature}:index"
    return default_feature_label("TRAKT", method, url, kw)


class HitSession(requests.Session):
    def __init__(
        self,
        provider: str,
        emit: EmitFn,
        feature_label: FeatureLabelFn | None = None,
        emit_hits: bool | None = None,
    ):
        super().__init__()
        self._provider = provider
        self._emit = emit
        self._label = feature_label or (lambda m, u, kw: default_feature_label(provider, m, u, kw))
        self._emit_hits = bool(os.getenv("RS_API_HITS")) if emit_hits is None else bool(emit_hits)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        try:
            return super().request(method, url, **kwargs)
        finally:
            if self._emit_hits:
                self._emit("api:hit", {"provider": self._provider, "feature": self._label(method.upper(), url, kwargs)})


def build_session(
    provider: str,
    ctx: Any,
    *,
    feature_label: FeatureLabelFn | None = None,
    emit_hits: bool | None = None,
) -> HitSession:
    return HitSession(provider, make_emitter(ctx), feature_label, emit_hits)


def safe_json(resp: requests.Response) -> Any:
    try:
        if not (resp.text or "").strip():
            return {}
        ctype = (resp.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            return resp.json()
        return json.loads(resp.text)
    except ValueError:
        return {}


def request_with_retries(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = 10.0,
    max_retries: int = 3,
    retry_on: tuple[int, ...] = (429, 500, 502, 503, 504),
    backoff_base: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    """Retry throttled/5xx responses and connection errors with exponential backoff.

    The last retryable response is returned as-is once the budget is spent; a request that
    never got a response raises requests.RequestException.
    """
    last: Any = None
    for i in range(max(1, int(max_retries))):
        try:
            resp = session.request(method, url, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            last = e
            if i < max_retries - 1:
                time.sleep(backoff_base * (2**i))
                continue
            break
        if resp.status_code in retry_on and i < max_retries - 1:
            wait = backoff_base * (2**i)
            if resp.status_code == 429:
                ra = resp.headers.get("Retry-After")
                try:
                    wait = max(wait, float(ra)) if ra else wait
                except ValueError:
                    pass
            time.sleep(wait)
            last = resp
            continue
        return resp
    if isinstance(last, requests.Response):
        return last
    raise requests.RequestException(f"request failed after retries: {method} {url}: {last}")
