"""Current weather and forecast models."""

from datetime import datetime, timezone

from pydantic import BaseModel, computed_field

from weather_dashboard.config import OPENWEATHER_ICON_URL

FORECAST_DAYS = 5
FORECAST_TARGET_HOUR = 12


def build_icon_url(icon: str) -> str:
    """Return the large icon URL for an OpenWeatherMap icon code."""
    return f"{OPENWEATHER_ICON_URL}/{icon}@2x.png"


class WeatherData(BaseModel):
    """Current conditions for a city."""

    city: str
    temperature: float
    feels_like: float
    humidity: int
    wind_speed: float
    condition: str
    condition_icon: str
    timestamp: int

    @computed_field
    @property
    def icon_url(self) -> str:
        return build_icon_url(self.condition_icon)

    @classmethod
    def from_api_response(cls, api_data: dict) -> "WeatherData":
        """Create a WeatherData model from the current-weather payload.

        Args:
            api_data: Payload returned by the ``/weather`` endpoint.

        Returns:
            A populated WeatherData model.
        """
        main = api_data["main"]
        condition = api_data["weather"][0]
        return cls(
            city=api_data["name"],
            temperature=main["temp"],
            feels_like=main["feels_like"],
            humidity=main["humidity"],
            wind_speed=api_data["wind"]["speed"],
            condition=condition["main"],
            condition_icon=condition["icon"],
            timestamp=api_data["dt"],
        )


class ForecastItem(BaseModel):
    """One day of the forecast."""

    date: str
    min_temp: float
    max_temp: float
    condition: str
    condition_icon: str

    @computed_field
    @property
    def icon_url(self) -> str:
        return build_icon_url(self.condition_icon)


class ForecastData(BaseModel):
    """Daily forecast for a city."""

    city: str
    forecast: list[ForecastItem]

    @classmethod
    def from_api_response(cls, api_data: dict) -> "ForecastData":
        """Reduce the 3-hourly forecast payload to one entry per day.

        For each UTC date the entry closest to noon is kept, and only the
        first five dates are returned.

        Args:
            api_data: Payload returned by the ``/forecast`` endpoint.

        Returns:
            A populated ForecastData model.
        """
        by_date: dict[str, tuple[datetime, dict]] = {}
        for item in api_data["list"]:
            moment = datetime.fromtimestamp(item["dt"], tz=timezone.utc)
            day = moment.date().isoformat()
            current = by_date.get(day)
            if current is None or _noon_distance(moment) < _noon_distance(current[0]):
                by_date[day] = (moment, item)

        forecast = []
        for day, (_, item) in list(by_date.items())[:FORECAST_DAYS]:
            condition = item["weather"][0]
            forecast.append(
                ForecastItem(
                    date=day,
                    min_temp=item["main"]["temp_min"],
                    max_temp=item["main"]["temp_max"],
                    condition=condition["main"],
                    condition_icon=condition["icon"],
                )
            )
        return cls(city=api_data["city"]["name"], forecast=forecast)


def _noon_distance(moment: datetime) -> int:
    return abs(moment.hour - FORECAST_TARGET_HOUR)
