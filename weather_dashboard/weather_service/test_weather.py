from datetime import datetime, timezone

import httpx
import pytest

from weather_dashboard.request_cache.cache import RequestCache
from weather_dashboard.weather_service.weather import (
    CityNotFoundError,
    ExternalAPIError,
    get_forecast,
    get_forecast_from_api,
    get_weather,
    get_weather_from_api,
)

CURRENT_PAYLOAD = {
    "name": "London",
    "dt": 1704067200,
    "main": {"temp": 10.5, "feels_like": 8.2, "humidity": 81},
    "wind": {"speed": 5.1},
    "weather": [{"main": "Clouds", "icon": "04d"}],
}


def ts(day, hour):
    return int(datetime(2024, 1, day, hour, tzinfo=timezone.utc).timestamp())


def forecast_item(day, hour, low, high, condition="Rain"):
    return {
        "dt": ts(day, hour),
        "main": {"temp_min": low, "temp_max": high},
        "weather": [{"main": condition, "icon": "10d"}],
    }


def fake_response(status_code, json_data=None, url="https://example.test"):
    return httpx.Response(
        status_code, json=json_data, request=httpx.Request("GET", url)
    )


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    delays = []
    monkeypatch.setattr(
        "weather_dashboard.weather_service.retry.time.sleep", delays.append
    )
    return delays


@pytest.fixture(autouse=True)
def fresh_cache(monkeypatch):
    cache = RequestCache()
    monkeypatch.setattr("weather_dashboard.weather_service.weather.request_cache", cache)
    return cache


def patch_get(monkeypatch, responses):
    calls = []

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        result = responses.pop(0) if len(responses) > 1 else responses[0]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr("weather_dashboard.weather_service.weather.httpx.get", fake_get)
    return calls


def test_get_weather_from_api(monkeypatch):
    calls = patch_get(monkeypatch, [fake_response(200, CURRENT_PAYLOAD)])
    weather = get_weather_from_api("London")
    assert weather.city == "London"
    assert weather.temperature == 10.5
    assert weather.condition == "Clouds"
    assert weather.icon_url == "https://openweathermap.org/img/wn/04d@2x.png"
    url, params = calls[0]
    assert url.endswith("/weather")
    assert params["q"] == "London"
    assert params["units"] == "metric"


def test_not_found_is_retried_like_other_errors(monkeypatch, no_sleep):
    calls = patch_get(monkeypatch, [fake_response(404, {"cod": "404"})])
    with pytest.raises(CityNotFoundError, match='City "Nowhere" not found'):
        get_weather_from_api("Nowhere")
    assert len(calls) == 3
    assert no_sleep == [1.0, 2.0]


def test_not_found_then_success(monkeypatch):
    calls = patch_get(
        monkeypatch, [fake_response(404, {"cod": "404"}), fake_response(200, CURRENT_PAYLOAD)]
    )
    assert get_weather_from_api("London").city == "London"
    assert len(calls) == 2


def test_transient_errors_are_retried(monkeypatch, no_sleep):
    calls = patch_get(
        monkeypatch,
        [
            fake_response(503),
            httpx.ConnectError("reset"),
            fake_response(200, CURRENT_PAYLOAD),
        ],
    )
    assert get_weather_from_api("London").city == "London"
    assert len(calls) == 3
    assert no_sleep == [1.0, 2.0]


def test_retries_exhausted(monkeypatch):
    calls = patch_get(monkeypatch, [fake_response(500)])
    with pytest.raises(ExternalAPIError, match="Failed to fetch weather data"):
        get_weather_from_api("London")
    assert len(calls) == 3


def test_client_errors_are_retried(monkeypatch):
    calls = patch_get(monkeypatch, [fake_response(401)])
    with pytest.raises(ExternalAPIError):
        get_weather_from_api("London")
    assert len(calls) == 3


def test_bad_payload(monkeypatch):
    patch_get(monkeypatch, [fake_response(200, {"name": "London"})])
    with pytest.raises(ExternalAPIError):
        get_weather_from_api("London")


def test_get_weather_is_cached(monkeypatch):
    calls = patch_get(monkeypatch, [fake_response(200, CURRENT_PAYLOAD)])
    get_weather("London")
    get_weather("london ")
    assert len(calls) == 1
    get_weather("London", refresh=True)
    assert len(calls) == 2


def test_forecast_picks_noon_and_five_days(monkeypatch):
    items = []
    for day in range(1, 8):
        items.append(forecast_item(day, 9, day, day + 10))
        items.append(forecast_item(day, 12, day + 1, day + 11, condition="Clear"))
        items.append(forecast_item(day, 15, day + 2, day + 12))
    payload = {"city": {"name": "London"}, "list": items}
    patch_get(monkeypatch, [fake_response(200, payload)])

    forecast = get_forecast_from_api("London")
    assert forecast.city == "London"
    assert [item.date for item in forecast.forecast] == [
        "2024-01-01",
        "2024-01-02",
        "2024-01-03",
        "2024-01-04",
        "2024-01-05",
    ]
    first = forecast.forecast[0]
    assert first.condition == "Clear"
    assert (first.min_temp, first.max_temp) == (2, 12)


def test_forecast_partial_day_keeps_closest_entry(monkeypatch):
    payload = {
        "city": {"name": "Oslo"},
        "list": [forecast_item(1, 21, -3, 0), forecast_item(1, 18, -2, 1)],
    }
    patch_get(monkeypatch, [fake_response(200, payload)])
    forecast = get_forecast("Oslo")
    assert len(forecast.forecast) == 1
    assert forecast.forecast[0].max_temp == 1


def test_forecast_not_found(monkeypatch):
    patch_get(monkeypatch, [fake_response(404, {"cod": "404"})])
    with pytest.raises(CityNotFoundError):
        get_forecast("Atlantis")
