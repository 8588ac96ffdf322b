# ReelSync test scripts
from __future__ import annotations

import json

import pytest

from providers.sync._log import enabled, log


@pytest.fixture(autouse=True)
def plain_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("RS_LOG_LEVEL", "RS_TRAKT_LOG_LEVEL", "RS_DEBUG", "RS_TRAKT_DEBUG", "RS_LOG_FORMAT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("RS_LOG_COLOR", "0")


def test_kv_line_masks_credentials(capsys: pytest.CaptureFixture[str]) -> None:
    log("trakt", "auth", "info", "access token refreshed", access_token="abcdefghijkl", expires_at=1700000000)
    out = capsys.readouterr().out.strip()
    assert out.startswith("[TRAKT:auth] INFO access token refreshed")
    assert "abcdefghijkl" not in out
    assert "access_token=abcd…" in out
    assert "expires_at=1700000000" in out


def test_provider_level_overrides_global(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("RS_LOG_LEVEL", "error")
    monkeypatch.setenv("RS_TRAKT_LOG_LEVEL", "debug")
    assert enabled("TRAKT", "debug")
    assert not enabled("OTHER", "warn")
    log("OTHER", "x", "warn", "hidden")
    log("TRAKT", "ratings", "debug", "index", kind="movies")
    assert capsys.readouterr().out.strip() == "[TRAKT:ratings] DEBUG index kind=movies"


def test_json_format(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    monkeypatch.setenv("RS_LOG_FORMAT", "json")
    log("TRAKT", "Collection", "warn", "dropping item without ids", title="Home Movie", client_secret="s")
    doc = json.loads(capsys.readouterr().out)
    assert doc["provider"] == "TRAKT" and doc["feature"] == "collection" and doc["level"] == "WARN"
    assert doc["title"] == "Home Movie"
    assert doc["client_secret"] == "***"
