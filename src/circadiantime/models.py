"""Data model definitions — positions, sun events, and the twilight setting."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


@dataclass(frozen=True)
class GeoPosition:
    """A point on the globe. Range checks are left to the sun event oracle."""

    latitude: float  # Decimal degrees, north positive
    longitude: float  # Decimal degrees, east positive


class Located(Protocol):
    """A kind of location. ``position()`` must not depend on instance state."""

    def position(self) -> GeoPosition: ...


class SunEvent(Enum):
    DAWN = "dawn"
    SUNRISE = "sunrise"
    NOON = "noon"
    SUNSET = "sunset"
    DUSK = "dusk"
    MIDNIGHT = "midnight"


@dataclass(frozen=True)
class SunEventTime:
    """A sun event and the moment it happens at some position."""

    kind: SunEvent
    utc_dt: datetime  # UTC datetime (with tzinfo=utc)


class Twilight(Enum):
    """Sun depression that defines dawn and dusk.

    The value is the ``skyfield.almanac.dark_twilight_day`` state the sun
    enters when it rises through that depression.
    """

    ASTRONOMICAL = 1  # 18°
    NAUTICAL = 2  # 12°
    CIVIL = 3  # 6°

    @classmethod
    def from_name(cls, name: str) -> "Twilight":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            choices = ", ".join(t.name.lower() for t in cls)
            raise ValueError(f"Unknown twilight {name!r} (expected one of: {choices})") from None
