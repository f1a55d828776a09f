"""circadian-now — print the current circadian time for a place."""

import argparse
import dataclasses
import logging
import sys

from dotenv import find_dotenv, load_dotenv

from circadiantime.almanac import SkyfieldOracle
from circadiantime.circadian import DawnNotFoundError, now
from circadiantime.config import Settings
from circadiantime.geocode import GeocodingError, geocode_address
from circadiantime.models import GeoPosition, Twilight

# Sandy, Utah
DEFAULT_POSITION = GeoPosition(40.60710285372043, -111.85515699873065)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        description="Print the time on a clock that reads 00:00 at the latest dawn",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    p.add_argument("--lat", type=float, default=DEFAULT_POSITION.latitude, help="Latitude")
    p.add_argument("--lon", type=float, default=DEFAULT_POSITION.longitude, help="Longitude")
    p.add_argument("--address", help="Place name to geocode instead of --lat/--lon")
    p.add_argument("--format", default="%T", help="strftime format")
    p.add_argument(
        "--twilight",
        choices=[t.name.lower() for t in Twilight],
        help="Depression defining dawn (default: CIRCADIAN_TWILIGHT or civil)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return p


def main(argv=None) -> int:
    load_dotenv(find_dotenv(usecwd=True))
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
    except ValueError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    if args.twilight:
        settings = dataclasses.replace(settings, twilight=Twilight.from_name(args.twilight))

    try:
        if args.address:
            position = geocode_address(args.address)
        else:
            position = GeoPosition(args.lat, args.lon)
        current = now(position, oracle=SkyfieldOracle(settings))
    except (DawnNotFoundError, GeocodingError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1

    print(current.strftime(args.format))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
