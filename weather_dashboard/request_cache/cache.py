"""In-process request cache with TTL expiry and single-flight fetches."""

import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Optional

from weather_dashboard.logging_config import logger


def normalize_city_name(city_name: str):
    """Normalize city names for stable cache keys.

    Args:
        city_name: Raw city name string.

    Returns:
        Normalized city name for cache keys.
    """
    return city_name.lower().strip().replace(" ", "_")


def weather_key(city_name: str) -> str:
    return f"weather-{normalize_city_name(city_name)}"


def forecast_key(city_name: str) -> str:
    return f"forecast-{normalize_city_name(city_name)}"


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class RequestCache:
    """Cache of fetch results keyed by request signature.

    Concurrent callers asking for the same missing key share one in-flight
    fetch. Failed fetches are never stored.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._in_flight: dict[str, Future] = {}
        self._lock = threading.Lock()

    def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Any],
        ttl_s: float,
        refresh: bool = False,
    ):
        """Return a fresh cached value or fetch it once.

        Args:
            key: Request signature.
            fetch: Zero-argument callable producing the value.
            ttl_s: Seconds the fetched value stays fresh.
            refresh: Skip a fresh entry and revalidate.

        Returns:
            The cached or freshly fetched value.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not refresh and self._clock() < entry.expires_at:
                logger.info("CACHE_HIT", key=key)
                return entry.value
            future = self._in_flight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self._in_flight[key] = future

        if not owner:
            logger.info("CACHE_JOIN_IN_FLIGHT", key=key)
            return future.result()

        logger.info("CACHE_MISS", key=key, refresh=refresh)
        try:
            value = fetch()
        except Exception as exc:
            with self._lock:
                self._in_flight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self._entries[key] = CacheEntry(value, self._clock() + ttl_s)
            self._in_flight.pop(key, None)
        future.set_result(value)
        return value

    def peek(self, key: str) -> Optional[Any]:
        """Return the last successful value for a key, fresh or not."""
        with self._lock:
            entry = self._entries.get(key)
        return entry.value if entry else None

    def invalidate(self, key: str):
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_city(self, city_name: str):
        """Drop every cached response for a city."""
        self.invalidate(weather_key(city_name))
        self.invalidate(forecast_key(city_name))

    def clear(self):
        with self._lock:
            self._entries.clear()


request_cache = RequestCache()
