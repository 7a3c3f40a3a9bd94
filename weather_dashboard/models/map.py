"""Map view payload for the saved cities."""

from typing import Optional

from pydantic import BaseModel

from weather_dashboard.config import (
    MAP_ATTRIBUTION,
    MAP_DEFAULT_ZOOM,
    MAP_MARKER_ICON,
    MAP_MARKER_SHADOW,
    MAP_TILE_URL,
)
from weather_dashboard.models.city import City


class MapMarker(BaseModel):
    """Marker placed on a saved city."""

    city_id: str
    name: str
    lat: float
    lon: float
    selected: bool
    icon_url: str = MAP_MARKER_ICON
    shadow_url: str = MAP_MARKER_SHADOW


class MapView(BaseModel):
    """Tile source, viewport and markers for the map panel."""

    tile_url: str = MAP_TILE_URL
    attribution: str = MAP_ATTRIBUTION
    zoom: int = MAP_DEFAULT_ZOOM
    center: Optional[tuple[float, float]] = None
    markers: list[MapMarker]

    @classmethod
    def for_cities(cls, cities: list[City], selected_city: Optional[str]) -> "MapView":
        """Build the map view, centred on the selected city.

        Args:
            cities: Saved cities in display order.
            selected_city: Id of the selected city, if any.

        Returns:
            A MapView with one marker per city. ``center`` is None when no
            city is selected.
        """
        markers = [
            MapMarker(
                city_id=city.id,
                name=city.name,
                lat=city.lat,
                lon=city.lon,
                selected=city.id == selected_city,
            )
            for city in cities
        ]
        center = next(
            ((m.lat, m.lon) for m in markers if m.selected),
            None,
        )
        return cls(center=center, markers=markers)
