"""Dashboard health report models."""

from enum import Enum

from pydantic import BaseModel, computed_field


class Reachability(str, Enum):
    """Whether a dashboard dependency answered its check."""

    reachable = "reachable"
    unreachable = "unreachable"

    @classmethod
    def from_bool(cls, ok: bool) -> "Reachability":
        return cls.reachable if ok else cls.unreachable


class DashboardDependencies(BaseModel):
    """The upstream weather API and the saved-city storage."""

    weather_api: Reachability
    city_storage: Reachability


class DashboardHealth(BaseModel):
    """Health report for the dashboard service.

    ``status`` is ``"ok"`` when every dependency is reachable and
    ``"degraded"`` otherwise; the service itself keeps answering either way.
    """

    dependencies: DashboardDependencies
    saved_cities: int

    @computed_field
    @property
    def status(self) -> str:
        states = (self.dependencies.weather_api, self.dependencies.city_storage)
        return "ok" if all(s is Reachability.reachable for s in states) else "degraded"
