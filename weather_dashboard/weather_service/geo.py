"""City geocoding: coordinates and autocomplete suggestions."""

from typing import Any, Callable, TypeVar

from weather_dashboard.config import OPENWEATHER_API_KEY, OPENWEATHER_GEO_URL
from weather_dashboard.logging_config import logger
from weather_dashboard.models.city import CitySearchResult
from weather_dashboard.weather_service.weather import (
    CityNotFoundError,
    ExternalAPIError,
    WeatherServiceError,
    request_json,
)

MIN_QUERY_LENGTH = 2
DEFAULT_SUGGESTION_LIMIT = 5

T = TypeVar("T")


def _as_list(data: Any) -> list:
    if not isinstance(data, list):
        raise ValueError("Geocoding response is not a list")
    return data


def _direct_lookup(
    query: str, limit: int, event_prefix: str, parse: Callable[[list], T]
) -> T:
    return request_json(
        url=f"{OPENWEATHER_GEO_URL}/direct",
        params={"q": query, "limit": limit, "appid": OPENWEATHER_API_KEY},
        event_prefix=event_prefix,
        log_context={"query": query},
        error_message="Failed to fetch city coordinates",
        not_found_message=f'City "{query}" not found',
        parse=lambda data: parse(_as_list(data)),
    )


def fetch_city_coordinates(city_name: str) -> tuple[float, float]:
    """Resolve a city name to coordinates.

    An empty result counts as a failed attempt and is retried like any
    other error.

    Args:
        city_name: Free-text city name.

    Returns:
        ``(lat, lon)`` of the best match.

    Raises:
        CityNotFoundError: If the geocoder still returns no match after retries.
        ExternalAPIError: If the lookup fails.
    """

    def first_match(results: list) -> tuple[float, float]:
        if not results:
            raise CityNotFoundError(f'City "{city_name}" not found')
        return results[0]["lat"], results[0]["lon"]

    try:
        return _direct_lookup(city_name, 1, "CITY_LOOKUP", first_match)
    except (TypeError, KeyError) as exc:
        logger.error("CITY_LOOKUP_BAD_PAYLOAD", city=city_name, error=str(exc))
        raise ExternalAPIError("Failed to fetch city coordinates") from exc


def fetch_city_suggestions(
    query: str, limit: int = DEFAULT_SUGGESTION_LIMIT
) -> list[CitySearchResult]:
    """Return autocomplete suggestions, or an empty list on any failure."""
    if not query or len(query) < MIN_QUERY_LENGTH:
        return []
    try:
        return _direct_lookup(
            query,
            limit,
            "CITY_SUGGESTIONS",
            lambda results: [CitySearchResult.from_api_response(item) for item in results],
        )
    except (WeatherServiceError, TypeError, KeyError, ValueError) as exc:
        logger.error("CITY_SUGGESTIONS_FAILED", query=query, error=str(exc))
        return []
