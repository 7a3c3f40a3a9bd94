"""Health checks for city storage and the external weather API."""

import httpx
from redis.exceptions import RedisError

from weather_dashboard.city_store.storage import CityStorage
from weather_dashboard.config import (
    DEFAULT_LOCATION,
    OPENWEATHER_API_KEY,
    OPENWEATHER_BASE_URL,
)
from weather_dashboard.logging_config import logger
from weather_dashboard.models.health import Reachability


def check_city_storage(storage: CityStorage) -> Reachability:
    """Ping the saved-city storage backend.

    Returns:
        Reachability.reachable when the backend can be read and written.
    """
    try:
        storage.ping()
    except (OSError, ValueError, RedisError) as exc:
        logger.error("CITY_STORAGE_UNREACHABLE", backend=type(storage).__name__, error=str(exc))
        return Reachability.unreachable
    logger.info("CITY_STORAGE_REACHABLE", backend=type(storage).__name__)
    return Reachability.reachable


async def check_weather_api() -> Reachability:
    """Ask the weather API for the default location's current conditions.

    Returns:
        Reachability.reachable if the API answers with weather data.
    """
    try:
        async with httpx.AsyncClient(timeout=5) as client:
            response = await client.get(
                f"{OPENWEATHER_BASE_URL}/weather",
                params={"q": DEFAULT_LOCATION, "appid": OPENWEATHER_API_KEY},
            )
            ok = response.status_code == 200 and "main" in response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.error("WEATHER_API_UNREACHABLE", error=str(exc))
        return Reachability.unreachable
    return Reachability.from_bool(ok)
