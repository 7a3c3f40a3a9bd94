"""Weather service integration, caching, and retry logic."""

from typing import Any, Callable, Optional, TypeVar

import httpx

from weather_dashboard.config import (
    DEFAULT_UNITS,
    FORECAST_TTL_S,
    OPENWEATHER_API_KEY,
    OPENWEATHER_BASE_URL,
    REQUEST_TIMEOUT_S,
    WEATHER_TTL_S,
)
from weather_dashboard.logging_config import logger
from weather_dashboard.models.weather import ForecastData, WeatherData
from weather_dashboard.request_cache.cache import (
    forecast_key,
    request_cache,
    weather_key,
)
from weather_dashboard.weather_service.retry import retry_with_backoff

T = TypeVar("T")


class WeatherServiceError(Exception):
    """Base exception for weather service failures."""
    pass


class CityNotFoundError(WeatherServiceError):
    """Raised when the API cannot resolve a city name."""
    pass


class ExternalAPIError(WeatherServiceError):
    """Raised when the external weather APIs fail."""
    pass


def request_json(
    *,
    url: str,
    params: dict,
    event_prefix: str,
    log_context: dict,
    error_message: str,
    not_found_message: str,
    parse: Optional[Callable[[Any], T]] = None,
):
    """Execute an HTTP GET with retry/backoff and return the decoded body.

    Every failure inside an attempt is retried the same way, including a
    404 and any error raised by ``parse``.

    Args:
        url: The URL to call.
        params: Query parameters to include in the request.
        event_prefix: Log event prefix for consistent names.
        log_context: Extra log fields for all events.
        error_message: Message for the ExternalAPIError raised on failure.
        not_found_message: Message for the CityNotFoundError raised on 404.
        parse: Applied to the JSON payload inside each attempt.

    Returns:
        The JSON payload, or what ``parse`` made of it.

    Raises:
        CityNotFoundError: When the API still answers 404 after retries.
        ExternalAPIError: When the request fails after retries.
    """

    def attempt():
        response = httpx.get(url, params=params, timeout=REQUEST_TIMEOUT_S)
        logger.info(
            f"{event_prefix}_RESPONSE", **log_context, status=response.status_code
        )
        if response.status_code == 404:
            raise CityNotFoundError(not_found_message)
        response.raise_for_status()
        data = response.json()
        return parse(data) if parse is not None else data

    try:
        return retry_with_backoff(
            attempt,
            event_prefix=event_prefix,
            log_context=log_context,
        )
    except httpx.HTTPStatusError as exc:
        logger.error(
            f"{event_prefix}_BAD_STATUS",
            **log_context,
            status=exc.response.status_code,
        )
        raise ExternalAPIError(error_message) from exc
    except httpx.RequestError as exc:
        logger.error(f"{event_prefix}_REQUEST_FAILED", **log_context, error=str(exc))
        raise ExternalAPIError(error_message) from exc
    except ValueError as exc:
        logger.error(f"{event_prefix}_BAD_PAYLOAD", **log_context, error=str(exc))
        raise ExternalAPIError(error_message) from exc


def _city_params(city_name: str) -> dict:
    return {"q": city_name, "appid": OPENWEATHER_API_KEY, "units": DEFAULT_UNITS}


def get_weather_from_api(city_name: str) -> WeatherData:
    """Fetch current conditions for a city.

    Args:
        city_name: City name to look up.

    Returns:
        A WeatherData model.

    Raises:
        CityNotFoundError: If the city is unknown to the API.
        ExternalAPIError: If the request or payload is invalid.
    """
    data = request_json(
        url=f"{OPENWEATHER_BASE_URL}/weather",
        params=_city_params(city_name),
        event_prefix="WEATHER",
        log_context={"city": city_name},
        error_message="Failed to fetch weather data",
        not_found_message=f'City "{city_name}" not found',
    )
    try:
        return WeatherData.from_api_response(data)
    except (TypeError, KeyError, IndexError, ValueError) as exc:
        logger.error("WEATHER_BAD_PAYLOAD", city=city_name, error=str(exc))
        raise ExternalAPIError("Failed to fetch weather data") from exc


def get_forecast_from_api(city_name: str) -> ForecastData:
    """Fetch the 5-day forecast for a city.

    Args:
        city_name: City name to look up.

    Returns:
        A ForecastData model with one entry per day.

    Raises:
        CityNotFoundError: If the city is unknown to the API.
        ExternalAPIError: If the request or payload is invalid.
    """
    data = request_json(
        url=f"{OPENWEATHER_BASE_URL}/forecast",
        params=_city_params(city_name),
        event_prefix="FORECAST",
        log_context={"city": city_name},
        error_message="Failed to fetch forecast data",
        not_found_message=f'City "{city_name}" not found',
    )
    try:
        return ForecastData.from_api_response(data)
    except (TypeError, KeyError, IndexError, ValueError) as exc:
        logger.error("FORECAST_BAD_PAYLOAD", city=city_name, error=str(exc))
        raise ExternalAPIError("Failed to fetch forecast data") from exc


def get_weather(city_name: str, refresh: bool = False) -> WeatherData:
    """Return current conditions, cached for ``WEATHER_TTL_S`` seconds."""
    return request_cache.get_or_fetch(
        weather_key(city_name),
        lambda: get_weather_from_api(city_name),
        ttl_s=WEATHER_TTL_S,
        refresh=refresh,
    )


def get_forecast(city_name: str, refresh: bool = False) -> ForecastData:
    """Return the forecast, cached for ``FORECAST_TTL_S`` seconds."""
    return request_cache.get_or_fetch(
        forecast_key(city_name),
        lambda: get_forecast_from_api(city_name),
        ttl_s=FORECAST_TTL_S,
        refresh=refresh,
    )
