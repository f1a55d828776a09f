from __future__ import annotations

from datetime import datetime

import pytest
from pytz import utc

from circadiantime.almanac import SkyfieldOracle
from circadiantime.config import Settings
from circadiantime.models import GeoPosition

# ---------- Shared fixtures ----------


@pytest.fixture
def sandy() -> GeoPosition:
    """Sandy, Utah."""
    return GeoPosition(40.60710285372043, -111.85515699873065)


@pytest.fixture
def sandy_dawns() -> list[datetime]:
    """Three consecutive dawns, the middle one at 13:15:00 UTC."""
    return [
        datetime(2024, 3, 14, 13, 16, 20, tzinfo=utc),
        datetime(2024, 3, 15, 13, 15, 0, tzinfo=utc),
        datetime(2024, 3, 16, 13, 13, 41, tzinfo=utc),
    ]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No CIRCADIAN_* variables and no stray .env in the working directory."""
    for name in (
        "CIRCADIAN_DATA_DIR",
        "CIRCADIAN_EPHEMERIS",
        "CIRCADIAN_TWILIGHT",
        "CIRCADIAN_SEARCH_DAYS",
        "CIRCADIAN_STEP_DAYS",
    ):
        # setenv first so teardown also removes values loaded from .env
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(scope="session")
def skyfield_oracle() -> SkyfieldOracle:
    """Real oracle; skipped when the ephemeris cannot be loaded (e.g. offline)."""
    oracle = SkyfieldOracle(Settings.from_env())
    try:
        oracle._load()
    except Exception as exc:  # download or file errors
        pytest.skip(f"ephemeris unavailable: {exc}")
    return oracle
