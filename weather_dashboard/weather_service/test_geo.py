import httpx
import pytest

from weather_dashboard.weather_service.geo import (
    fetch_city_coordinates,
    fetch_city_suggestions,
)
from weather_dashboard.weather_service.weather import CityNotFoundError, ExternalAPIError

PARIS = {"name": "Paris", "country": "FR", "state": "Ile-de-France", "lat": 48.8589, "lon": 2.32}
PARIS_TX = {"name": "Paris", "country": "US", "lat": 33.66, "lon": -95.55}


def fake_response(status_code, json_data=None):
    return httpx.Response(
        status_code,
        json=json_data,
        request=httpx.Request("GET", "https://api.openweathermap.org/geo/1.0/direct"),
    )


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(
        "weather_dashboard.weather_service.retry.time.sleep", lambda delay: None
    )


def patch_get(monkeypatch, response):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append(params)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr("weather_dashboard.weather_service.weather.httpx.get", fake_get)
    return calls


def test_fetch_city_coordinates(monkeypatch):
    calls = patch_get(monkeypatch, fake_response(200, [PARIS]))
    assert fetch_city_coordinates("Paris") == (48.8589, 2.32)
    assert calls[0]["limit"] == 1


def test_fetch_city_coordinates_empty_result_is_retried(monkeypatch):
    calls = patch_get(monkeypatch, fake_response(200, []))
    with pytest.raises(CityNotFoundError):
        fetch_city_coordinates("Loooonnddonnn")
    assert len(calls) == 3


def test_fetch_city_coordinates_non_list_payload(monkeypatch):
    calls = patch_get(monkeypatch, fake_response(200, {"cod": "400"}))
    with pytest.raises(ExternalAPIError):
        fetch_city_coordinates("Paris")
    assert len(calls) == 3


def test_fetch_city_coordinates_upstream_failure(monkeypatch):
    calls = patch_get(monkeypatch, httpx.ConnectTimeout("slow"))
    with pytest.raises(ExternalAPIError):
        fetch_city_coordinates("Paris")
    assert len(calls) == 3


def test_suggestions(monkeypatch):
    calls = patch_get(monkeypatch, fake_response(200, [PARIS, PARIS_TX]))
    results = fetch_city_suggestions("Par")
    assert [(r.name, r.country, r.state) for r in results] == [
        ("Paris", "FR", "Ile-de-France"),
        ("Paris", "US", None),
    ]
    assert calls[0]["limit"] == 5


def test_suggestions_short_query_skips_request(monkeypatch):
    calls = patch_get(monkeypatch, fake_response(200, [PARIS]))
    assert fetch_city_suggestions("P") == []
    assert fetch_city_suggestions("") == []
    assert calls == []


def test_suggestions_swallow_failures(monkeypatch):
    patch_get(monkeypatch, fake_response(500))
    assert fetch_city_suggestions("Paris") == []
