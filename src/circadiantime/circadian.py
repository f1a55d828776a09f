"""The Circadian timezone — local time aligned to dawn instead of noon.

At the most recent dawn at a position the circadian clock reads 00:00:00.
The zone plugs into ``datetime`` the way ``pytz`` zones do: converting a UTC
instant (``astimezone``, ``datetime.now(tz)``) yields a datetime whose tzinfo
is a *resolved* ``Circadian`` carrying one fixed offset, and naive wall times
are attached with ``localize()``.
"""

import logging
import threading
from datetime import date, datetime, time, timedelta, tzinfo

from pytz import timezone, utc
from timezonefinder import TimezoneFinder
from tzlocal import get_localzone_name

from circadiantime.almanac import SkyfieldOracle, SunEventOracle, as_utc
from circadiantime.config import Settings
from circadiantime.models import GeoPosition, Located, SunEvent

logger = logging.getLogger(__name__)

LABEL = "CRC"
_ZERO = timedelta(0)
_tf = TimezoneFinder()

_default_oracle: SkyfieldOracle | None = None
_default_oracle_lock = threading.Lock()


class DawnNotFoundError(Exception):
    """The sun event oracle had no dawn at or before the requested instant."""


def default_oracle() -> SkyfieldOracle:
    """Return the process-wide skyfield oracle, configured from the environment."""
    global _default_oracle
    with _default_oracle_lock:
        if _default_oracle is None:
            _default_oracle = SkyfieldOracle(Settings.from_env())
        return _default_oracle


def resolve_offset_for_instant(
    reference_instant: datetime,
    position: GeoPosition,
    oracle: SunEventOracle | None = None,
) -> timedelta:
    """Return the UTC offset that makes the latest dawn read as midnight.

    Args:
        reference_instant: Moment to resolve for. Naive values are UTC.
        position: Where dawn is observed.
        oracle: Sun event source. Defaults to ``default_oracle()``.

    Returns:
        ``-s`` seconds, where ``s`` is how far into its UTC day (whole seconds)
        the latest dawn at or before ``reference_instant`` happened.

    Raises:
        DawnNotFoundError: The oracle history holds no dawn.
    """
    oracle = oracle or default_oracle()
    instant = as_utc(reference_instant)
    history = oracle.history(instant, position, (SunEvent.DAWN,))
    dawn = next((e for e in history if e.kind is SunEvent.DAWN), None)
    if dawn is None:
        raise DawnNotFoundError(
            f"No dawn at or before {instant.isoformat()} at {position}"
        )

    dawn_utc = as_utc(dawn.utc_dt)
    seconds = dawn_utc.hour * 3600 + dawn_utc.minute * 60 + dawn_utc.second
    offset = timedelta(seconds=-seconds)
    logger.debug(
        "Dawn at %s for %s -> offset %s", dawn_utc.isoformat(), position, offset
    )
    return offset


def local_zone():
    """Return the pytz zone this machine's clock is set to."""
    return timezone(get_localzone_name())


def civil_zone(position: GeoPosition):
    """Return the pytz zone in force at ``position``, or UTC over open ocean."""
    name = _tf.timezone_at(lat=position.latitude, lng=position.longitude)
    if name is None:
        logger.debug("No civil timezone at %s, using UTC", position)
        return utc
    return timezone(name)


class Circadian(tzinfo):
    """A timezone whose midnight is the most recent dawn at ``position``.

    An unresolved zone works out its offset per call. ``fromutc``,
    ``localize`` and the ``offset_for_*`` methods return resolved zones, which
    keep one fixed offset so a produced datetime formats and compares stably.

    ``guess_zone`` is the pytz zone used to read naive wall times before the
    dawn offset is recomputed. It defaults to the caller's local zone
    (``local_zone()``), looked up the first time a wall time is read; pass
    ``civil_zone(position)`` to read wall times as clocks at the position do.
    """

    def __init__(
        self,
        position: GeoPosition,
        oracle: SunEventOracle | None = None,
        guess_zone=None,
        offset: timedelta | None = None,
    ):
        self.position = position
        self.oracle = oracle
        self._guess_zone = guess_zone
        self._offset = offset

    @classmethod
    def for_location(cls, located: Located, oracle=None, guess_zone=None) -> "Circadian":
        """Build the zone for a kind of location (anything with ``position()``)."""
        return cls(located.position(), oracle=oracle, guess_zone=guess_zone)

    @property
    def guess_zone(self):
        if self._guess_zone is None:
            self._guess_zone = local_zone()
        return self._guess_zone

    @property
    def offset(self) -> timedelta | None:
        """Fixed offset of a resolved zone; None while unresolved."""
        return self._offset

    def _resolved(self, offset: timedelta) -> "Circadian":
        return Circadian(self.position, self.oracle, self._guess_zone, offset)

    def _local_offset(self, wall: datetime, is_dst: bool | None) -> timedelta:
        # Read the wall time in the guess zone, then recompute once from that
        # instant. The result is not fed back in.
        provisional = self.guess_zone.localize(wall.replace(tzinfo=None), is_dst=is_dst)
        return resolve_offset_for_instant(provisional, self.position, self.oracle)

    # --- offset resolution entry points ---

    def offset_for_utc_datetime(self, utc_dt: datetime) -> "Circadian":
        return self._resolved(
            resolve_offset_for_instant(utc_dt, self.position, self.oracle)
        )

    def offset_for_utc_date(self, utc_date: date) -> "Circadian":
        return self.offset_for_utc_datetime(datetime.combine(utc_date, time(), utc))

    def offset_for_local_datetime(
        self, local_dt: datetime, is_dst: bool | None = None
    ) -> "Circadian":
        """Resolve the offset for a wall time.

        Raises:
            pytz.AmbiguousTimeError: ``local_dt`` occurs twice in the guess
                zone and ``is_dst`` is None.
            pytz.NonExistentTimeError: ``local_dt`` is skipped in the guess
                zone and ``is_dst`` is None.
        """
        return self._resolved(self._local_offset(local_dt, is_dst))

    def offset_for_local_date(self, local_date: date, is_dst: bool | None = None) -> "Circadian":
        return self.offset_for_local_datetime(datetime.combine(local_date, time()), is_dst)

    # --- pytz-style helpers ---

    def localize(self, dt: datetime, is_dst: bool | None = None) -> datetime:
        """Attach this zone to a naive wall time."""
        if dt.tzinfo is not None:
            raise ValueError("Not naive datetime (tzinfo is already set)")
        return dt.replace(tzinfo=self.offset_for_local_datetime(dt, is_dst))

    def normalize(self, dt: datetime) -> datetime:
        """Re-resolve an aware datetime, e.g. after adding a timedelta."""
        if dt.tzinfo is None:
            raise ValueError("Naive time - no tzinfo set")
        return self.fromutc(dt.astimezone(utc).replace(tzinfo=self))

    # --- tzinfo interface ---

    def utcoffset(self, dt: datetime | None) -> timedelta | None:
        if self._offset is not None:
            return self._offset
        if dt is None:
            return None
        return self._local_offset(dt, is_dst=not dt.fold)

    def dst(self, dt: datetime | None) -> timedelta:
        return _ZERO

    def tzname(self, dt: datetime | None) -> str:
        return LABEL

    def fromutc(self, dt: datetime) -> datetime:
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        offset = resolve_offset_for_instant(
            dt.replace(tzinfo=utc), self.position, self.oracle
        )
        return (dt + offset).replace(tzinfo=self._resolved(offset))

    def __str__(self) -> str:
        return LABEL

    def __repr__(self) -> str:
        state = "unresolved" if self._offset is None else str(self._offset)
        return (
            f"<Circadian {self.position.latitude},{self.position.longitude} {state}>"
        )

    def __reduce__(self):
        return Circadian, (self.position, self.oracle, self._guess_zone, self._offset)

    # Copies share the oracle; it may hold loaded ephemeris data and a lock.
    def __copy__(self) -> "Circadian":
        return Circadian(self.position, self.oracle, self._guess_zone, self._offset)

    def __deepcopy__(self, memo) -> "Circadian":
        return self.__copy__()


def now(position: GeoPosition, oracle: SunEventOracle | None = None) -> datetime:
    """Return the current time on the circadian clock at ``position``."""
    return datetime.now(utc).astimezone(Circadian(position, oracle=oracle))
