"""Saved city list with selection, ordering and persistence."""

import threading
import uuid
from typing import Callable, Optional

from weather_dashboard.city_store.storage import CityStorage
from weather_dashboard.config import (
    DEFAULT_LOCATION,
    DEFAULT_LOCATION_COORDS,
    MAX_SAVED_CITIES,
)
from weather_dashboard.logging_config import logger
from weather_dashboard.models.city import City


class CityStoreError(Exception):
    """Base exception for city store misuse."""
    pass


class CityLimitReachedError(CityStoreError):
    """Raised when adding beyond the saved city limit."""
    pass


class InvalidReorderError(CityStoreError):
    """Raised when a reorder index is out of range."""
    pass


class UnknownCityError(CityStoreError):
    """Raised when selecting a city id that is not saved."""
    pass


def _new_id() -> str:
    return str(uuid.uuid4())


class CityStore:
    """Ordered collection of saved cities.

    Every mutation is written through to ``storage`` before returning. The
    selected city is kept in memory only.
    """

    def __init__(
        self,
        storage: CityStorage,
        max_cities: int = MAX_SAVED_CITIES,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.storage = storage
        self.max_cities = max_cities
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._cities = sorted(storage.load(), key=lambda city: city.order)
        self._selected: Optional[str] = None
        logger.info("CITY_STORE_LOADED", count=len(self._cities))

    @property
    def cities(self) -> list[City]:
        with self._lock:
            return [city.model_copy() for city in self._cities]

    @property
    def selected_city(self) -> Optional[str]:
        return self._selected

    def get_city(self, city_id: str) -> Optional[City]:
        with self._lock:
            return next((c.model_copy() for c in self._cities if c.id == city_id), None)

    def get_next_order(self) -> int:
        with self._lock:
            if not self._cities:
                return 0
            return max(city.order for city in self._cities) + 1

    def _persist(self):
        self.storage.save(self._cities)

    def add_city(self, name: str, lat: float, lon: float) -> Optional[City]:
        """Add a city unless one with the same name is already saved.

        Args:
            name: Display name.
            lat: Latitude.
            lon: Longitude.

        Returns:
            The new City, or None for a case-insensitive duplicate.

        Raises:
            CityLimitReachedError: If the list is already full.
        """
        with self._lock:
            if any(city.name.lower() == name.lower() for city in self._cities):
                logger.info("CITY_DUPLICATE", city=name)
                return None
            if len(self._cities) >= self.max_cities:
                raise CityLimitReachedError(
                    f"Cannot save more than {self.max_cities} cities"
                )

            city = City(
                id=self._id_factory(),
                name=name,
                lat=lat,
                lon=lon,
                order=self.get_next_order(),
            )
            self._cities.append(city)
            self._persist()
            if len(self._cities) == 1 or self._selected is None:
                self._selected = city.id
            logger.info("CITY_ADDED", city=name, city_id=city.id, order=city.order)
            return city.model_copy()

    def remove_city(self, city_id: str) -> bool:
        """Remove a city by id and renumber the remaining orders densely.

        The selection moves to the first remaining city if the removed one
        was selected.

        Returns:
            True if a city was removed.
        """
        with self._lock:
            remaining = [city for city in self._cities if city.id != city_id]
            removed = len(remaining) != len(self._cities)
            self._cities = [
                city.model_copy(update={"order": index})
                for index, city in enumerate(remaining)
            ]
            self._persist()
            if self._selected == city_id:
                self._selected = self._cities[0].id if self._cities else None
            logger.info("CITY_REMOVED", city_id=city_id, removed=removed)
            return removed

    def reorder_cities(self, start_index: int, end_index: int):
        """Move one city and renumber every order to match its position.

        Raises:
            InvalidReorderError: If either index is out of range.
        """
        with self._lock:
            count = len(self._cities)
            if not (0 <= start_index < count and 0 <= end_index < count):
                raise InvalidReorderError(
                    f"Cannot move city from {start_index} to {end_index} "
                    f"in a list of {count}"
                )
            result = list(self._cities)
            moved = result.pop(start_index)
            result.insert(end_index, moved)
            self._cities = [
                city.model_copy(update={"order": index})
                for index, city in enumerate(result)
            ]
            self._persist()
            logger.info("CITIES_REORDERED", start=start_index, end=end_index)

    def select_city(self, city_id: Optional[str]):
        """Select a saved city, or clear the selection with None.

        Raises:
            UnknownCityError: If ``city_id`` is not saved.
        """
        with self._lock:
            if city_id is not None and not any(c.id == city_id for c in self._cities):
                raise UnknownCityError(f"Unknown city id: {city_id}")
            self._selected = city_id

    def initialize(
        self,
        default_name: str = DEFAULT_LOCATION,
        default_coords: tuple[float, float] = DEFAULT_LOCATION_COORDS,
    ):
        """Seed the default location or select the first saved city."""
        with self._lock:
            if not self._cities:
                self.add_city(default_name, *default_coords)
            elif self._selected is None:
                self._selected = self._cities[0].id
