"""City models for the saved dashboard list and geocoding results."""

from typing import Optional

from pydantic import BaseModel, Field


class City(BaseModel):
    """A saved dashboard entry."""

    id: str
    name: str
    lat: float
    lon: float
    order: int


class CitySearchResult(BaseModel):
    """City suggestion returned by the geocoding API."""

    name: str
    country: str
    state: Optional[str] = None
    lat: float
    lon: float

    @classmethod
    def from_api_response(cls, api_data: dict) -> "CitySearchResult":
        """Create a suggestion from one geocoding result.

        Args:
            api_data: A single entry of the geocoding response list.

        Returns:
            A populated CitySearchResult.
        """
        return cls(
            name=api_data["name"],
            country=api_data["country"],
            state=api_data.get("state"),
            lat=api_data["lat"],
            lon=api_data["lon"],
        )


class AddCityRequest(BaseModel):
    """Body for adding a city, with optional pre-resolved coordinates."""

    name: str = Field(min_length=2, max_length=50)
    lat: Optional[float] = None
    lon: Optional[float] = None


class ReorderRequest(BaseModel):
    start_index: int
    end_index: int


class SelectCityRequest(BaseModel):
    city_id: Optional[str] = None


class CityListResponse(BaseModel):
    """Saved cities plus the current selection."""

    cities: list[City]
    selected_city: Optional[str] = None
