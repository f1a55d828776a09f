import httpx
import pytest

from circadiantime import geocode
from circadiantime.geocode import GeocodingError, geocode_address
from circadiantime.models import GeoPosition


class StubClient:
    def __init__(self, status, payload):
        self.status = status
        self.payload = payload
        self.requests = []

    def get(self, url, params=None, headers=None, timeout=None):
        self.requests.append((url, params, headers, timeout))
        return httpx.Response(
            self.status, json=self.payload, request=httpx.Request("GET", url)
        )


def test_first_result_becomes_position():
    client = StubClient(
        200,
        [{"lat": "40.5649781", "lon": "-111.8389726", "display_name": "Sandy, Utah"}],
    )
    assert geocode_address("Sandy, Utah", client=client) == GeoPosition(
        40.5649781, -111.8389726
    )
    url, params, headers, timeout = client.requests[0]
    assert url == geocode.NOMINATIM_URL
    assert params == {"q": "Sandy, Utah", "format": "json", "limit": 1}
    assert headers["User-Agent"] == geocode.USER_AGENT
    assert timeout == 10


def test_empty_result_raises():
    with pytest.raises(GeocodingError, match="Address not found: Atlantis"):
        geocode_address("Atlantis", client=StubClient(200, []))


def test_http_error_propagates():
    with pytest.raises(httpx.HTTPStatusError):
        geocode_address("Sandy", client=StubClient(503, {"error": "busy"}))


def test_module_level_get_is_default(monkeypatch):
    stub = StubClient(200, [{"lat": "1.5", "lon": "2.5"}])
    monkeypatch.setattr(geocode.httpx, "get", stub.get)
    assert geocode_address("somewhere") == GeoPosition(1.5, 2.5)
