"""FastAPI application routes, middleware, and metrics."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from structlog.contextvars import bind_contextvars, clear_contextvars

from weather_dashboard.city_store.storage import build_city_storage
from weather_dashboard.city_store.store import (
    CityLimitReachedError,
    CityStore,
    InvalidReorderError,
    UnknownCityError,
)
from weather_dashboard.config import SITE_DESCRIPTION, SITE_NAME
from weather_dashboard.health.health_check import check_city_storage, check_weather_api
from weather_dashboard.logging_config import logger
from weather_dashboard.models.city import (
    AddCityRequest,
    CityListResponse,
    CitySearchResult,
    ReorderRequest,
    SelectCityRequest,
)
from weather_dashboard.models.health import (
    DashboardDependencies,
    DashboardHealth,
    Reachability,
)
from weather_dashboard.models.map import MapView
from weather_dashboard.models.weather import ForecastData, WeatherData
from weather_dashboard.request_cache.cache import RequestCache, request_cache
from weather_dashboard.weather_service.geo import (
    fetch_city_coordinates,
    fetch_city_suggestions,
)
from weather_dashboard.weather_service.weather import (
    CityNotFoundError,
    ExternalAPIError,
    WeatherServiceError,
    get_forecast,
    get_weather,
)


class CityStoreUnavailableError(RuntimeError):
    """Raised when the city store is used before the app configured one."""
    pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    if getattr(app.state, "city_store", None) is None:
        app.state.city_store = CityStore(build_city_storage())
    app.state.city_store.initialize()
    logger.info("APP_STARTED", cities=len(app.state.city_store.cities))
    yield


app = FastAPI(lifespan=lifespan)

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status_code"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "HTTP request duration in seconds", ["path"]
)


def get_city_store(request: Request) -> CityStore:
    """Return the application's city store.

    Raises:
        CityStoreUnavailableError: If no store has been configured.
    """
    store = getattr(request.app.state, "city_store", None)
    if store is None:
        raise CityStoreUnavailableError(
            "get_city_store must be used within an app that has a city store"
        )
    return store


def get_request_cache() -> RequestCache:
    return request_cache


def city_list(store: CityStore) -> CityListResponse:
    return CityListResponse(cities=store.cities, selected_city=store.selected_city)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    """Log request details, attach a request ID, and record metrics.

    Args:
        request: Incoming HTTP request.
        call_next: FastAPI handler for the next middleware/app.

    Returns:
        The response produced by the downstream handler.
    """
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    bind_contextvars(request_id=request_id)
    start = time.perf_counter()
    response = None
    try:
        response = await call_next(request)
        response.headers["x-request-id"] = request_id
        return response
    finally:
        duration_s = time.perf_counter() - start
        duration_ms = round(duration_s * 1000, 2)
        status_code = getattr(response, "status_code", 500)
        logger.info(
            "HTTP_REQUEST",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
        REQUEST_COUNT.labels(
            method=request.method, path=request.url.path, status_code=status_code
        ).inc()
        REQUEST_LATENCY.labels(path=request.url.path).observe(duration_s)
        clear_contextvars()


@app.exception_handler(CityNotFoundError)
async def city_not_found_handler(request: Request, exc: CityNotFoundError):
    """Convert city lookup errors into 404 responses."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ExternalAPIError)
async def external_api_error_handler(request: Request, exc: ExternalAPIError):
    """Convert external API errors into 502 responses."""
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(WeatherServiceError)
async def weather_service_error_handler(request: Request, exc: WeatherServiceError):
    """Convert unexpected weather service errors into 500 responses."""
    return JSONResponse(status_code=500, content={"detail": "Unexpected error"})


@app.exception_handler(CityLimitReachedError)
async def city_limit_handler(request: Request, exc: CityLimitReachedError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(InvalidReorderError)
async def invalid_reorder_handler(request: Request, exc: InvalidReorderError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(UnknownCityError)
async def unknown_city_handler(request: Request, exc: UnknownCityError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(CityStoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: CityStoreUnavailableError):
    """Report a missing city store as a server error."""
    logger.error("CITY_STORE_UNAVAILABLE", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "City store unavailable"})


@app.get("/")
async def root():
    """Return a basic liveness response."""
    return {"name": SITE_NAME, "description": SITE_DESCRIPTION}


@app.get("/cities", response_model=CityListResponse)
def list_cities(store: CityStore = Depends(get_city_store)) -> CityListResponse:
    """Return saved cities and the current selection."""
    return city_list(store)


@app.post("/cities", response_model=CityListResponse)
def add_city(
    body: AddCityRequest,
    response: Response,
    store: CityStore = Depends(get_city_store),
) -> CityListResponse:
    """Add a city, geocoding it first when no coordinates are given.

    Returns 201 when the city was added and 200 when it was already saved.
    """
    if body.lat is None or body.lon is None:
        lat, lon = fetch_city_coordinates(body.name)
    else:
        lat, lon = body.lat, body.lon
    added = store.add_city(body.name, lat, lon)
    response.status_code = 201 if added else 200
    return city_list(store)


@app.delete("/cities/{city_id}", response_model=CityListResponse)
def remove_city(
    city_id: str,
    store: CityStore = Depends(get_city_store),
    cache: RequestCache = Depends(get_request_cache),
) -> CityListResponse:
    """Remove a saved city and drop its cached responses."""
    city = store.get_city(city_id)
    store.remove_city(city_id)
    if city is not None:
        cache.invalidate_city(city.name)
    return city_list(store)


@app.post("/cities/reorder", response_model=CityListResponse)
def reorder_cities(
    body: ReorderRequest, store: CityStore = Depends(get_city_store)
) -> CityListResponse:
    store.reorder_cities(body.start_index, body.end_index)
    return city_list(store)


@app.put("/cities/selected", response_model=CityListResponse)
def select_city(
    body: SelectCityRequest, store: CityStore = Depends(get_city_store)
) -> CityListResponse:
    store.select_city(body.city_id)
    return city_list(store)


@app.get("/cities/suggestions", response_model=list[CitySearchResult])
def city_suggestions(
    q: str = "", limit: int = Query(5, ge=1, le=10)
) -> list[CitySearchResult]:
    """Return autocomplete suggestions for a partial city name."""
    return fetch_city_suggestions(q, limit)


@app.get("/weather", response_model=WeatherData)
def get_weather_for_city(city_name: str, refresh: bool = False) -> WeatherData:
    """Fetch current conditions for the requested city.

    Args:
        city_name: City name string from the query parameter.
        refresh: Revalidate even when a fresh cached value exists.

    Returns:
        A WeatherData model populated from cached or external data.
    """
    return get_weather(city_name, refresh=refresh)


@app.get("/forecast", response_model=ForecastData)
def get_forecast_for_city(city_name: str, refresh: bool = False) -> ForecastData:
    """Fetch the 5-day forecast for the requested city."""
    return get_forecast(city_name, refresh=refresh)


@app.get("/map", response_model=MapView)
def map_view(store: CityStore = Depends(get_city_store)) -> MapView:
    """Return tiles, viewport and markers for the saved cities."""
    return MapView.for_cities(store.cities, store.selected_city)


@app.get("/health", response_model=DashboardHealth)
async def health(request: Request) -> DashboardHealth:
    """Report whether the weather API and city storage are reachable.

    Returns:
        A DashboardHealth report, ``"degraded"`` when any check fails.
    """
    weather_api = await check_weather_api()
    store: Optional[CityStore] = getattr(request.app.state, "city_store", None)
    if store is None:
        city_storage, saved_cities = Reachability.unreachable, 0
    else:
        city_storage, saved_cities = check_city_storage(store.storage), len(store.cities)
    return DashboardHealth(
        dependencies=DashboardDependencies(
            weather_api=weather_api, city_storage=city_storage
        ),
        saved_cities=saved_cities,
    )


@app.get("/metrics")
async def metrics():
    """Expose Prometheus metrics for scraping."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
