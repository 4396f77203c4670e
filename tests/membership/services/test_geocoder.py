import httpx
import pytest

from membership.services import geocoder as geocoder_module
from membership.services.geocoder import (
    GeocodeResult,
    GoogleGeocoder,
    StubGeocoder,
    distance_miles,
    get_geocoder,
    latitude_bounds,
    parse_google_result,
    set_geocoder,
)

DENVER_RESPONSE = {
    'status': 'OK',
    'results': [
        {
            'address_components': [
                {'long_name': '80203', 'short_name': '80203', 'types': ['postal_code']},
                {'long_name': 'Denver', 'short_name': 'Denver', 'types': ['locality', 'political']},
                {'long_name': 'Colorado', 'short_name': 'CO', 'types': ['administrative_area_level_1', 'political']},
                {'long_name': 'United States', 'short_name': 'US', 'types': ['country', 'political']},
            ],
            'geometry': {'location': {'lat': 39.7312095, 'lng': -104.9826965}},
        }
    ],
}


class _FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def __call__(self, *args, **kwargs):
        return self

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def get(self, url, params=None):
        self.requests.append((url, params))
        if self.error is not None:
            raise self.error
        return self.response


def _response(status_code: int, payload) -> httpx.Response:
    return httpx.Response(status_code, json=payload, request=httpx.Request('GET', 'https://geocode.test'))


def test_parse_google_result_extracts_state_short_name() -> None:
    result = parse_google_result(DENVER_RESPONSE['results'][0])

    assert result == GeocodeResult(39.7312095, -104.9826965, 'CO')


def test_google_geocoder_returns_first_result(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(response=_response(200, DENVER_RESPONSE))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    result = GoogleGeocoder(api_key='key', url='https://geocode.test').lookup(' 80203 ')

    assert result.coordinates == (39.7312095, -104.9826965)
    assert result.state == 'CO'
    assert fake_client.requests == [('https://geocode.test', {'address': '80203', 'key': 'key'})]


def test_google_geocoder_returns_none_for_zero_results(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(response=_response(200, {'status': 'ZERO_RESULTS', 'results': []}))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('bad zip code') is None


def test_google_geocoder_returns_none_for_error_status(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {'status': 'REQUEST_DENIED', 'error_message': 'The provided API key is invalid.', 'results': []}
    fake_client = _FakeClient(response=_response(200, payload))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='bad').lookup('80203') is None


def test_google_geocoder_returns_none_for_ok_without_results(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(response=_response(200, {'status': 'OK', 'results': []}))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('80203') is None


def test_google_geocoder_returns_none_for_non_object_body(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(response=_response(200, []))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('80203') is None


def test_google_geocoder_returns_none_for_result_without_location(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {'status': 'OK', 'results': [{'address_components': [], 'geometry': {}}]}
    fake_client = _FakeClient(response=_response(200, payload))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('80203') is None


def test_google_geocoder_swallows_transport_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(error=httpx.ConnectTimeout('timed out'))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('80203') is None


def test_google_geocoder_skips_blank_queries(monkeypatch: pytest.MonkeyPatch) -> None:
    fake_client = _FakeClient(response=_response(200, DENVER_RESPONSE))
    monkeypatch.setattr(geocoder_module.httpx, 'Client', fake_client)

    assert GoogleGeocoder(api_key='key').lookup('   ') is None
    assert fake_client.requests == []


def test_stub_geocoder_falls_back_to_default() -> None:
    default = GeocodeResult(45.505603, -122.6882145, 'OR')
    stub = StubGeocoder({'80203': GeocodeResult(39.7312095, -104.9826965, 'CO')}, default=default)

    assert stub.lookup('80203').state == 'CO'
    assert stub.lookup('anything') == default
    assert stub.queries == ['80203', 'anything']


def test_get_geocoder_builds_configured_lookup(monkeypatch: pytest.MonkeyPatch) -> None:
    set_geocoder(None)
    monkeypatch.setattr(geocoder_module.config, 'GEOCODER_LOOKUP', 'google')

    assert isinstance(get_geocoder(), GoogleGeocoder)
    assert get_geocoder() is get_geocoder()


def test_get_geocoder_rejects_unknown_lookup(monkeypatch: pytest.MonkeyPatch) -> None:
    set_geocoder(None)
    monkeypatch.setattr(geocoder_module.config, 'GEOCODER_LOOKUP', 'carrier-pigeon')

    with pytest.raises(RuntimeError):
        get_geocoder()


def test_distance_miles_between_portland_and_denver() -> None:
    distance = distance_miles((45.505603, -122.6882145), (39.7312095, -104.9826965))

    assert distance == pytest.approx(983, abs=15)
    assert distance_miles((30.285648, -97.742052), (30.285648, -97.742052)) == 0


def test_latitude_bounds_cover_radius() -> None:
    low, high = latitude_bounds(30.0, 69.09)

    assert low == pytest.approx(29.0, abs=0.01)
    assert high == pytest.approx(31.0, abs=0.01)
