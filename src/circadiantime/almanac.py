"""Sun event oracle — the history of dawns, noons, dusks and midnights at a position.

The resolver only needs ``history()``; ``SkyfieldOracle`` is the concrete
implementation, searching JPL ephemeris data with ``skyfield.almanac``.
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from datetime import datetime, timedelta
from typing import Protocol

from pytz import utc
from skyfield import almanac
from skyfield.api import Loader, wgs84

from circadiantime.config import Settings
from circadiantime.models import GeoPosition, SunEvent, SunEventTime

logger = logging.getLogger(__name__)

_DAYLIGHT = 4  # dark_twilight_day state while the sun is above the horizon
_TWILIGHT_KINDS = frozenset(
    {SunEvent.DAWN, SunEvent.SUNRISE, SunEvent.SUNSET, SunEvent.DUSK}
)
_TRANSIT_KINDS = frozenset({SunEvent.NOON, SunEvent.MIDNIGHT})

# The shortest twilight phase (equator, equinox) lasts a bit over 20 minutes;
# sample finer than that so no phase is skipped between two samples.
_TWILIGHT_STEP_DAYS = 0.01


class SunEventOracle(Protocol):
    """Anything that can list past sun events, newest first."""

    def history(
        self,
        instant: datetime,
        position: GeoPosition,
        kinds: Iterable[SunEvent],
    ) -> Iterator[SunEventTime]: ...


def as_utc(dt: datetime) -> datetime:
    """Return ``dt`` as an aware UTC datetime. Naive values are taken as UTC."""
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=utc)
    return dt.astimezone(utc)


class SkyfieldOracle:
    """Sun events computed from a JPL ephemeris with skyfield.

    The ephemeris and timescale are loaded on first use from
    ``settings.data_dir`` (skyfield downloads them there if missing). Pass
    ``ephemeris``/``timescale`` to reuse already-loaded data.
    """

    def __init__(self, settings: Settings | None = None, ephemeris=None, timescale=None):
        self.settings = settings or Settings()
        self._eph = ephemeris
        self._ts = timescale
        self._lock = threading.Lock()

    def _load(self):
        with self._lock:
            if self._eph is None or self._ts is None:
                loader = Loader(str(self.settings.data_dir))
                logger.debug(
                    "Loading %s from %s", self.settings.ephemeris, self.settings.data_dir
                )
                if self._eph is None:
                    self._eph = loader(self.settings.ephemeris)
                if self._ts is None:
                    self._ts = loader.timescale()
            return self._eph, self._ts

    def events_between(
        self,
        start: datetime,
        end: datetime,
        position: GeoPosition,
        kinds: Iterable[SunEvent],
    ) -> list[SunEventTime]:
        """Return the events of the requested kinds between start and end, oldest first.

        Args:
            start: Beginning of the search window (naive = UTC).
            end: End of the search window (naive = UTC).
            position: Where the sun is observed from.
            kinds: Which sun events to report.

        Returns:
            List of SunEventTime sorted by time.
        """
        wanted = frozenset(kinds)
        eph, ts = self._load()
        topos = wgs84.latlon(
            latitude_degrees=position.latitude,
            longitude_degrees=position.longitude,
        )
        t0 = ts.from_datetime(as_utc(start))
        t1 = ts.from_datetime(as_utc(end))

        events: list[SunEventTime] = []
        if wanted & _TWILIGHT_KINDS:
            f = almanac.dark_twilight_day(eph, topos)
            f.step_days = _TWILIGHT_STEP_DAYS
            times, states = almanac.find_discrete(t0, t1, f)
            previous = int(f(ts.from_datetimes([as_utc(start)]))[0])
            for t, state in zip(times, states):
                state = int(state)
                for kind in self._classify(previous, state):
                    if kind in wanted:
                        events.append(SunEventTime(kind, t.utc_datetime()))
                previous = state

        if wanted & _TRANSIT_KINDS:
            f = almanac.meridian_transits(eph, eph["sun"], topos)
            times, states = almanac.find_discrete(t0, t1, f)
            for t, state in zip(times, states):
                kind = SunEvent.NOON if state == 1 else SunEvent.MIDNIGHT
                if kind in wanted:
                    events.append(SunEventTime(kind, t.utc_datetime()))

        events.sort(key=lambda e: e.utc_dt)
        return events

    def _classify(self, previous: int, state: int) -> list[SunEvent]:
        """Map one dark_twilight_day transition to the sun events it crosses."""
        level = self.settings.twilight.value
        kinds = []
        if previous < level <= state:
            kinds.append(SunEvent.DAWN)
        if previous < _DAYLIGHT <= state:
            kinds.append(SunEvent.SUNRISE)
        if state < _DAYLIGHT <= previous:
            kinds.append(SunEvent.SUNSET)
        if state < level <= previous:
            kinds.append(SunEvent.DUSK)
        return kinds

    def history(
        self,
        instant: datetime,
        position: GeoPosition,
        kinds: Iterable[SunEvent],
    ) -> Iterator[SunEventTime]:
        """Yield events at or before ``instant``, newest first.

        Walks backward ``settings.step_days`` at a time and stops after
        ``settings.search_days``; a position with no such event in that span
        yields nothing more.
        """
        kinds = frozenset(kinds)
        upper = as_utc(instant)
        horizon = upper - timedelta(days=self.settings.search_days)
        step = timedelta(days=self.settings.step_days)

        while upper > horizon:
            lower = max(upper - step, horizon)
            logger.debug(
                "Searching %s for %s from %s to %s",
                position,
                sorted(k.value for k in kinds),
                lower.isoformat(),
                upper.isoformat(),
            )
            for event in reversed(self.events_between(lower, upper, position, kinds)):
                if lower < event.utc_dt <= upper:
                    yield event
            upper = lower

        logger.debug(
            "No more events within %d days at %s", self.settings.search_days, position
        )
