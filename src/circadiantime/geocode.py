"""Address lookup — turn a place name into a GeoPosition via Nominatim."""

import logging

import httpx

from circadiantime.models import GeoPosition

logger = logging.getLogger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "circadiantime/1.0 (dawn-aligned clock)"


class GeocodingError(Exception):
    """Geocoder call failure."""


def geocode_address(address: str, client: httpx.Client | None = None) -> GeoPosition:
    """Resolve an address string to the position of its best Nominatim match.

    Args:
        address: Address or place name in any language.
        client: Optional httpx client (module-level ``httpx.get`` when None).

    Returns:
        GeoPosition of the first search result.

    Raises:
        GeocodingError: When the address cannot be found.
        httpx.HTTPStatusError: When Nominatim answers with an error status.
    """
    params = {"q": address, "format": "json", "limit": 1}
    headers = {"User-Agent": USER_AGENT}
    get = client.get if client is not None else httpx.get
    resp = get(NOMINATIM_URL, params=params, headers=headers, timeout=10)
    resp.raise_for_status()
    results = resp.json()
    if not results:
        raise GeocodingError(f"Address not found: {address}")
    r = results[0]
    position = GeoPosition(latitude=float(r["lat"]), longitude=float(r["lon"]))
    logger.debug("Geocoded %r to %s (%s)", address, position, r.get("display_name"))
    return position
