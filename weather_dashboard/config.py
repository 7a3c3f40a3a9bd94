"""Environment-driven settings for the dashboard service."""

import os

OPENWEATHER_API_KEY = os.getenv("OPENWEATHER_API_KEY", "")
OPENWEATHER_BASE_URL = os.getenv(
    "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"
)
OPENWEATHER_GEO_URL = os.getenv(
    "OPENWEATHER_GEO_URL", "https://api.openweathermap.org/geo/1.0"
)
OPENWEATHER_ICON_URL = "https://openweathermap.org/img/wn"
DEFAULT_UNITS = "metric"
REQUEST_TIMEOUT_S = float(os.getenv("REQUEST_TIMEOUT", "5"))

MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
INITIAL_DELAY_S = float(os.getenv("INITIAL_DELAY", "1.0"))

WEATHER_TTL_S = int(os.getenv("WEATHER_TTL", "300"))
FORECAST_TTL_S = int(os.getenv("FORECAST_TTL", "3600"))

CITY_STORAGE = os.getenv("CITY_STORAGE", "file")
CITY_STORAGE_PATH = os.getenv("CITY_STORAGE_PATH", "weather_dashboard.json")
CITY_STORAGE_KEY = "weatherDashboard-cities"
REDIS_HOST = os.getenv("REDIS_HOST", "redis")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_DB = int(os.getenv("REDIS_DB", "0"))

DEFAULT_LOCATION = "London"
DEFAULT_LOCATION_COORDS = (51.5074, -0.1278)
MAX_SAVED_CITIES = int(os.getenv("MAX_SAVED_CITIES", "10"))

SITE_NAME = "Weather Dashboard"
SITE_DESCRIPTION = "A modern weather dashboard application"

MAP_TILE_URL = (
    "https://tiles.stadiamaps.com/tiles/alidade_smooth_dark/{z}/{x}/{y}{r}.png"
)
MAP_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a>'
)
MAP_MARKER_ICON = (
    "https://raw.githubusercontent.com/pointhi/leaflet-color-markers/master/img/"
    "marker-icon-2x-blue.png"
)
MAP_MARKER_SHADOW = (
    "https://cdnjs.cloudflare.com/ajax/libs/leaflet/0.7.7/images/marker-shadow.png"
)
MAP_DEFAULT_ZOOM = 10
