from datetime import datetime, timedelta

import pytest
from pytz import utc

from circadiantime import cli
from circadiantime.circadian import Circadian, DawnNotFoundError
from circadiantime.geocode import GeocodingError
from circadiantime.models import GeoPosition, Twilight


@pytest.fixture
def fake_now(monkeypatch):
    calls = []

    def _now(position, oracle=None):
        calls.append((position, oracle))
        zone = Circadian(position, oracle=oracle, guess_zone=utc)
        return datetime(2024, 3, 15, 0, 0, 7, tzinfo=zone._resolved(timedelta(seconds=-47700)))

    monkeypatch.setattr(cli, "now", _now)
    return calls


def test_prints_time_for_default_position(clean_env, fake_now, capsys):
    assert cli.main([]) == 0
    assert capsys.readouterr().out == "00:00:07\n"
    position, oracle = fake_now[0]
    assert position == cli.DEFAULT_POSITION
    assert oracle.settings.twilight is Twilight.CIVIL


def test_custom_position_format_and_twilight(clean_env, fake_now, capsys):
    argv = ["--lat", "64.1", "--lon", "-21.9", "--format", "%H:%M %Z", "--twilight", "nautical"]
    assert cli.main(argv) == 0
    assert capsys.readouterr().out == "00:00 CRC\n"
    position, oracle = fake_now[0]
    assert position == GeoPosition(64.1, -21.9)
    assert oracle.settings.twilight is Twilight.NAUTICAL


def test_dotenv_file_is_loaded(clean_env, fake_now, tmp_path):
    (tmp_path / ".env").write_text("CIRCADIAN_SEARCH_DAYS=12\n")
    assert cli.main([]) == 0
    _, oracle = fake_now[0]
    assert oracle.settings.search_days == 12


def test_address_is_geocoded(clean_env, fake_now, monkeypatch):
    monkeypatch.setattr(cli, "geocode_address", lambda address: GeoPosition(1.0, 2.0))
    assert cli.main(["--address", "somewhere"]) == 0
    assert fake_now[0][0] == GeoPosition(1.0, 2.0)


def test_geocoding_failure_exits_1(clean_env, monkeypatch, capsys):
    def _fail(address):
        raise GeocodingError(f"Address not found: {address}")

    monkeypatch.setattr(cli, "geocode_address", _fail)
    assert cli.main(["--address", "Atlantis"]) == 1
    assert "Address not found: Atlantis" in capsys.readouterr().err


def test_missing_dawn_exits_1(clean_env, monkeypatch, capsys):
    def _now(position, oracle=None):
        raise DawnNotFoundError("No dawn at or before now")

    monkeypatch.setattr(cli, "now", _now)
    assert cli.main([]) == 1
    assert "No dawn" in capsys.readouterr().err


def test_bad_setting_exits_1(clean_env, monkeypatch, capsys):
    monkeypatch.setenv("CIRCADIAN_STEP_DAYS", "1e-12")
    assert cli.main([]) == 1
    assert "error: CIRCADIAN_STEP_DAYS must be at least one minute" in capsys.readouterr().err
