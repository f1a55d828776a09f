"""Runtime settings read from the environment.

Call ``dotenv.load_dotenv()`` before ``Settings.from_env()`` to pick up a
``.env`` file; the command line entry point does this.
"""

import math
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from circadiantime.models import Twilight

_ROOT = Path(__file__).parent.parent.parent
_MIN_STEP = timedelta(minutes=1)


@dataclass(frozen=True)
class Settings:
    """Where the ephemeris lives and how far back to look for dawn."""

    data_dir: Path = _ROOT / "resources"  # skyfield download/cache directory
    ephemeris: str = "de421.bsp"  # JPL ephemeris file name
    twilight: Twilight = Twilight.CIVIL
    search_days: int = 366  # Backward search horizon
    step_days: float = 1.0  # Window size of each backward step

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``CIRCADIAN_*`` variables, defaulting the rest."""
        env = os.environ if environ is None else environ
        defaults = cls()

        data_dir = env.get("CIRCADIAN_DATA_DIR")
        twilight = defaults.twilight
        if env.get("CIRCADIAN_TWILIGHT"):
            try:
                twilight = Twilight.from_name(env["CIRCADIAN_TWILIGHT"])
            except ValueError as exc:
                raise ValueError(f"CIRCADIAN_TWILIGHT: {exc}") from None

        settings = cls(
            data_dir=Path(data_dir).expanduser() if data_dir else defaults.data_dir,
            ephemeris=env.get("CIRCADIAN_EPHEMERIS") or defaults.ephemeris,
            twilight=twilight,
            search_days=_parse(env, "CIRCADIAN_SEARCH_DAYS", int, defaults.search_days),
            step_days=_parse(env, "CIRCADIAN_STEP_DAYS", float, defaults.step_days),
        )

        if settings.search_days <= 0:
            raise ValueError(
                f"CIRCADIAN_SEARCH_DAYS must be positive, got {settings.search_days}"
            )
        if not math.isfinite(settings.step_days):
            raise ValueError(
                f"CIRCADIAN_STEP_DAYS must be finite, got {settings.step_days}"
            )
        if settings.step_days > settings.search_days:
            raise ValueError(
                f"CIRCADIAN_STEP_DAYS must not exceed CIRCADIAN_SEARCH_DAYS, got {settings.step_days}"
            )
        if timedelta(days=settings.step_days) < _MIN_STEP:
            raise ValueError(
                f"CIRCADIAN_STEP_DAYS must be at least one minute, got {settings.step_days}"
            )
        return settings


def _parse(env: Mapping[str, str], name: str, kind: type, default):
    raw = env.get(name)
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ValueError(f"{name} must be {kind.__name__}, got {raw!r}") from None
