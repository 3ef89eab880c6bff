"""Tests for the server entry point's bind guard."""

from __future__ import annotations

import pytest

from atlas.core.config.settings import Settings
from atlas.core.server.main import _ensure_safe_bind, _is_loopback_host, run


@pytest.mark.parametrize("host", ["127.0.0.1", "localhost", "::1", "127.0.0.2"])
def test_loopback_hosts(host):
    assert _is_loopback_host(host)


@pytest.mark.parametrize("host", ["0.0.0.0", "192.168.1.10", "example.com", ""])
def test_non_loopback_hosts(host):
    assert not _is_loopback_host(host)


def test_refuses_public_bind(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ATLAS_HOST", "0.0.0.0")
    with pytest.raises(RuntimeError, match="non-loopback"):
        run()


def test_insecure_bind_override_passes_guard():
    settings = Settings(atlas_host="0.0.0.0", atlas_allow_insecure_bind=True)
    _ensure_safe_bind(settings)


def test_guard_names_rejected_host():
    with pytest.raises(RuntimeError, match="'192.168.1.10'"):
        _ensure_safe_bind(Settings(atlas_host="192.168.1.10"))
