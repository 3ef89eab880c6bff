"""Shared test fixtures for Atlas dosing tests."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

_ATLAS_ENV_VARS = (
    "ATLAS_HOST",
    "ATLAS_PORT",
    "ATLAS_LOG_LEVEL",
    "ATLAS_ALLOW_INSECURE_BIND",
    "DEFAULT_DOSE_HOUR",
    "DEFAULT_DOSE_MINUTE",
    "UPCOMING_DOSE_COUNT",
    "ROTATION_LOOKBACK",
    "ROTATION_STATS_LOOKBACK",
    "ROTATION_TIME_DECAY",
    "DEFAULT_LOW_STOCK_THRESHOLD",
    "MAX_VIAL_SIZE",
)


@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in _ATLAS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of Settings().
    monkeypatch.chdir(tmp_path)

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from atlas.domains.dosing.domain_logic.models import SiteHistoryEntry  # noqa: E402
from atlas.domains.dosing.domain_logic.sites import Site  # noqa: E402


# ---------------------------------------------------------------------------
# Clock and history helpers
# ---------------------------------------------------------------------------

# Wednesday 2026-01-14, 10:00 local (naive) time.
REFERENCE_NOW = datetime(2026, 1, 14, 10, 0)


def make_history(
    sites: list[Site],
    now: datetime = REFERENCE_NOW,
    spacing_days: float = 1.0,
) -> list[SiteHistoryEntry]:
    """History with ``sites[0]`` the most recent, each one ``spacing_days`` older."""
    return [
        SiteHistoryEntry(site=site, timestamp=now - timedelta(days=spacing_days * (i + 1)))
        for i, site in enumerate(sites)
    ]


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for deterministic schedule and rotation tests."""
    return REFERENCE_NOW


@pytest.fixture
def history_of():
    """Factory fixture: build a site history anchored at REFERENCE_NOW."""
    return make_history
