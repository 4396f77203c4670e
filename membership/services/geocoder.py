"""Postal code geocoding.

Users are located by their zip code. The production lookup calls the Google
Geocoding API; the ``test`` lookup answers from an in-memory table so the
suite never touches the network.
"""

import logging
import math
from dataclasses import dataclass

import httpx

from membership.core import config

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3958.8


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    state: str | None = None

    @property
    def coordinates(self) -> tuple[float, float]:
        return self.latitude, self.longitude


class Geocoder:
    """Resolves a free-form query (usually a zip code) to a location."""

    def lookup(self, query: str) -> GeocodeResult | None:
        raise NotImplementedError


class GoogleGeocoder(Geocoder):
    def __init__(self, api_key: str, url: str = config.GOOGLE_GEOCODING_URL, timeout: float = config.GEOCODER_TIMEOUT):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout

    def lookup(self, query: str) -> GeocodeResult | None:
        query = (query or '').strip()
        if not query:
            return None

        params = {'address': query}
        if self.api_key:
            params['key'] = self.api_key

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.get(self.url, params=params)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError):
            logger.exception('Geocoding request failed for %r', query)
            return None

        if not isinstance(payload, dict):
            logger.warning('Geocoding lookup for %r returned a non-object body', query)
            return None

        status = payload.get('status')
        if status == 'ZERO_RESULTS':
            return None
        if status != 'OK':
            logger.warning('Geocoding lookup for %r returned status %s: %s', query, status, payload.get('error_message', ''))
            return None

        results = payload.get('results')
        if not isinstance(results, list) or not results:
            logger.warning('Geocoding lookup for %r returned OK without results', query)
            return None

        try:
            return parse_google_result(results[0])
        except (KeyError, TypeError, ValueError):
            logger.warning('Geocoding lookup for %r returned a malformed result', query)
            return None


def parse_google_result(result: dict) -> GeocodeResult:
    location = result['geometry']['location']
    state = None
    for component in result.get('address_components', []):
        if 'administrative_area_level_1' in component.get('types', []):
            state = component.get('short_name')
            break
    return GeocodeResult(latitude=float(location['lat']), longitude=float(location['lng']), state=state)


class StubGeocoder(Geocoder):
    """In-memory lookup table keyed by query string."""

    def __init__(self, stubs: dict[str, GeocodeResult | None] | None = None, default: GeocodeResult | None = None):
        self.stubs = dict(stubs or {})
        self.default = default
        self.queries: list[str] = []

    def add_stub(self, query: str, result: GeocodeResult | None) -> None:
        self.stubs[query] = result

    def set_default_stub(self, result: GeocodeResult | None) -> None:
        self.default = result

    def lookup(self, query: str) -> GeocodeResult | None:
        self.queries.append(query)
        return self.stubs.get(query, self.default)


_geocoder: Geocoder | None = None


def build_geocoder() -> Geocoder:
    if config.GEOCODER_LOOKUP == 'test':
        return StubGeocoder()
    if config.GEOCODER_LOOKUP == 'google':
        return GoogleGeocoder(api_key=config.GOOGLE_GEOCODING_API_KEY)
    raise RuntimeError(f'Unknown GEOCODER_LOOKUP: {config.GEOCODER_LOOKUP}')


def get_geocoder() -> Geocoder:
    global _geocoder
    if _geocoder is None:
        _geocoder = build_geocoder()
    return _geocoder


def set_geocoder(geocoder: Geocoder | None) -> None:
    global _geocoder
    _geocoder = geocoder


def distance_miles(origin: tuple[float, float], destination: tuple[float, float]) -> float:
    lat1, lng1 = (math.radians(value) for value in origin)
    lat2, lng2 = (math.radians(value) for value in destination)

    a = (
        math.sin((lat2 - lat1) / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin((lng2 - lng1) / 2) ** 2
    )
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def latitude_bounds(latitude: float, radius_miles: float) -> tuple[float, float]:
    # Longitude is not bounded here; degrees of longitude shrink toward the poles
    # and wrap at the antimeridian, so callers filter those by exact distance.
    delta = math.degrees(radius_miles / EARTH_RADIUS_MILES)
    return latitude - delta, latitude + delta
