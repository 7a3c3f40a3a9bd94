"""Persistence backends for the saved city list."""

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from pydantic import TypeAdapter, ValidationError
from redis import Redis
from redis.exceptions import RedisError

from weather_dashboard import config
from weather_dashboard.logging_config import logger
from weather_dashboard.models.city import City

CITY_LIST = TypeAdapter(list[City])


class CityStorage(Protocol):
    """A single slot holding the serialized city list."""

    def load(self) -> list[City]: ...

    def save(self, cities: list[City]) -> None: ...

    def ping(self) -> None:
        """Raise if the backend cannot be read or written."""
        ...


def _parse(raw: Optional[str]) -> list[City]:
    return CITY_LIST.validate_json(raw) if raw else []


def _dump(cities: list[City]) -> str:
    return CITY_LIST.dump_json(cities).decode()


class InMemoryCityStorage:
    """Storage kept in process memory, mostly for tests."""

    def __init__(self, cities: Optional[list[City]] = None):
        self.raw = _dump(cities) if cities else None
        self.saves = 0

    def load(self) -> list[City]:
        return _parse(self.raw)

    def save(self, cities: list[City]) -> None:
        self.raw = _dump(cities)
        self.saves += 1

    def ping(self) -> None:
        return None


class JsonFileCityStorage:
    """Local device storage: a JSON file mapping slot keys to values."""

    def __init__(self, path, key: str = config.CITY_STORAGE_KEY):
        self.path = Path(path)
        self.key = key

    def _read_slots(self) -> dict:
        if not self.path.exists():
            return {}
        slots = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(slots, dict):
            raise ValueError(
                f"Expected a JSON object in {self.path}, got {type(slots).__name__}"
            )
        return slots

    def load(self) -> list[City]:
        """Read the city list, falling back to an empty list on any error."""
        try:
            return _parse(self._read_slots().get(self.key))
        except (OSError, ValueError, ValidationError) as exc:
            logger.error(
                "STORAGE_LOAD_FAILED", path=str(self.path), key=self.key, error=str(exc)
            )
            return []

    def save(self, cities: list[City]) -> None:
        """Write the city list into its slot, keeping other slots intact."""
        try:
            try:
                slots = self._read_slots()
            except ValueError:
                slots = {}
            slots[self.key] = _dump(cities)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_name(f"{self.path.name}.tmp")
            tmp_path.write_text(json.dumps(slots), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            logger.error(
                "STORAGE_SAVE_FAILED", path=str(self.path), key=self.key, error=str(exc)
            )

    def ping(self) -> None:
        """Read every slot and check the directory accepts writes.

        Raises:
            OSError: If the file or its directory is not usable.
            ValueError: If the file does not hold a JSON object.
        """
        self._read_slots()
        directory = self.path.parent
        if directory.exists() and not os.access(directory, os.W_OK):
            raise PermissionError(f"{directory} is not writable")


class RedisCityStorage:
    """City list stored under a single Redis key."""

    def __init__(self, client, key: str = config.CITY_STORAGE_KEY):
        self.redis_client: Redis = client
        self.key = key

    def load(self) -> list[City]:
        try:
            raw = self.redis_client.get(self.key)
            return _parse(raw)
        except (RedisError, ValidationError) as exc:
            logger.error("REDIS_LOAD_CITIES_FAILED", key=self.key, error=str(exc))
            return []

    def save(self, cities: list[City]) -> None:
        try:
            self.redis_client.set(self.key, _dump(cities))
        except RedisError as exc:
            logger.error("REDIS_SAVE_CITIES_FAILED", key=self.key, error=str(exc))

    def ping(self) -> None:
        self.redis_client.ping()


def redis_client() -> Redis:
    return Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        db=config.REDIS_DB,
        decode_responses=True,
    )


def build_city_storage(kind: str = config.CITY_STORAGE) -> CityStorage:
    """Create the storage backend named by configuration.

    Args:
        kind: ``"file"`` or ``"redis"``.

    Returns:
        A CityStorage implementation.

    Raises:
        ValueError: If the backend name is unknown.
    """
    if kind == "file":
        return JsonFileCityStorage(config.CITY_STORAGE_PATH)
    if kind == "redis":
        return RedisCityStorage(redis_client())
    raise ValueError(f"Unknown city storage backend: {kind}")
