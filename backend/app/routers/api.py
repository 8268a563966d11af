"""
AirSure API Router
==================

All the endpoints the frontend talks to.

ALL ENDPOINTS:
-------------
GET /api/health              - Is the API up?
GET /api/stations            - Configured monitoring stations
GET /api/wards               - Configured city wards
GET /api/aqi/latest?id=      - AQI for one station (first station by default)
GET /api/aqi/stations        - AQI for every station, one after another
GET /api/aqi/aggregate       - Citywide AQI (worst station wins)
GET /api/weather?lat=&lon=   - Current weather (defaults to central Delhi)
GET /api/satellite/fires     - Active fire points from NASA FIRMS

ERRORS:
------
Every error body is {"error": "...", "details": "..."}.
- 400 when there are no stations configured
- 404 {"error": "Route not found"} for unknown /api paths
- 500 for everything else

Per-station AQI problems (missing API key, OpenAQ down, ...) are NOT
HTTP errors: the endpoint answers 200 and the result's "error" field
says what went wrong.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.models import (
    CityAggregate,
    ConfigListResponse,
    ErrorResponse,
    FiresResponse,
    HealthResponse,
    StationResultResponse,
    StationsResponse,
    WeatherSnapshot,
)
from app.services import (
    AGGREGATE_VERSION,
    AQIAggregator,
    FirmsService,
    OpenAQService,
    StationRegistry,
    WeatherService,
)
from app.utils.errors import ApiError
from app.utils.validation import to_number

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/api",
    tags=["api"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)

SERVICE_NAME = "AirSure API"

# Central Delhi
DEFAULT_LAT = 28.6139
DEFAULT_LON = 77.2090

NO_STATIONS_ERROR = "No stations found in stations.json"


# =============================================================================
# DEPENDENCY INJECTION
# =============================================================================
# The services are built in main.py's lifespan and handed to us here.

_services: dict = {}


def set_services(
    registry: StationRegistry,
    openaq_service: OpenAQService,
    aggregator: AQIAggregator,
    weather_service: WeatherService,
    firms_service: FirmsService,
):
    """Called when the app starts to give the router its services."""
    _services.update(
        registry=registry,
        openaq_service=openaq_service,
        aggregator=aggregator,
        weather_service=weather_service,
        firms_service=firms_service,
    )


def clear_services():
    """Called on shutdown."""
    _services.clear()


def _require(name: str):
    service = _services.get(name)
    if service is None:
        raise ApiError(500, "Server not fully started yet")
    return service


def get_registry() -> StationRegistry:
    return _require("registry")


def get_openaq_service() -> OpenAQService:
    return _require("openaq_service")


def get_aggregator() -> AQIAggregator:
    return _require("aggregator")


def get_weather_service() -> WeatherService:
    return _require("weather_service")


def get_firms_service() -> FirmsService:
    return _require("firms_service")


# =============================================================================
# STATUS & CONFIGURATION ENDPOINTS
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def api_health():
    """Health check with service name and version."""
    return HealthResponse(
        status="ok",
        service=SERVICE_NAME,
        version=AGGREGATE_VERSION,
        time=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    )


@router.get("/stations", response_model=ConfigListResponse)
async def list_stations(registry: StationRegistry = Depends(get_registry)):
    """All configured monitoring stations."""
    data = registry.stations_snapshot()
    return ConfigListResponse(count=len(data), data=data)


@router.get("/wards", response_model=ConfigListResponse)
async def list_wards(registry: StationRegistry = Depends(get_registry)):
    """All configured wards."""
    data = registry.wards_snapshot()
    return ConfigListResponse(count=len(data), data=data)


# =============================================================================
# AQI ENDPOINTS
# =============================================================================

@router.get("/aqi/latest", response_model=StationResultResponse)
async def aqi_latest(
    id: Optional[str] = Query(None, description="Station id from /api/stations"),
    registry: StationRegistry = Depends(get_registry),
    openaq_service: OpenAQService = Depends(get_openaq_service),
):
    """
    AQI for one station.

    Pick the station with ?id=rk-puram. Without it (or with an id we
    don't know) you get the first station.
    """
    station = registry.find_station(id)
    if station is None:
        raise ApiError(400, NO_STATIONS_ERROR)

    try:
        result = await openaq_service.fetch_station_latest(station)
        return StationResultResponse(station_meta=station, **result.model_dump())
    except Exception as e:
        logger.error(f"AQI latest failed: {e}", exc_info=True)
        raise ApiError(500, "Failed to fetch AQI", str(e))


@router.get("/aqi/stations", response_model=StationsResponse)
async def aqi_stations(
    registry: StationRegistry = Depends(get_registry),
    aggregator: AQIAggregator = Depends(get_aggregator),
):
    """
    AQI for every station. Handy for debugging.

    Stations are fetched one after another to avoid burst traffic.
    """
    if not registry.stations:
        raise ApiError(400, NO_STATIONS_ERROR)

    try:
        results = await aggregator.all_stations()
        return StationsResponse(version=AGGREGATE_VERSION, count=len(results), data=results)
    except Exception as e:
        logger.error(f"AQI stations failed: {e}", exc_info=True)
        raise ApiError(500, "Failed to fetch station AQI", str(e))


@router.get("/aqi/aggregate", response_model=CityAggregate)
async def aqi_aggregate(
    registry: StationRegistry = Depends(get_registry),
    aggregator: AQIAggregator = Depends(get_aggregator),
):
    """
    Citywide AQI: the station with the highest AQI decides.

    Always includes diagnostics[] with one entry per station, even for
    stations that failed.
    """
    if not registry.stations:
        raise ApiError(400, NO_STATIONS_ERROR)

    try:
        return await aggregator.aggregate()
    except Exception as e:
        logger.error(f"AQI aggregate failed: {e}", exc_info=True)
        raise ApiError(500, "Failed to aggregate AQI", str(e))


# =============================================================================
# WEATHER & SATELLITE ENDPOINTS
# =============================================================================

@router.get("/weather", response_model=WeatherSnapshot)
async def weather(
    lat: Optional[str] = Query(None, description="Latitude (default 28.6139)"),
    lon: Optional[str] = Query(None, description="Longitude (default 77.2090)"),
    weather_service: WeatherService = Depends(get_weather_service),
):
    """Current weather. Bad or missing lat/lon fall back to central Delhi."""
    lat_num = to_number(lat)
    lon_num = to_number(lon)

    try:
        return await weather_service.fetch_current(
            DEFAULT_LAT if lat_num is None else lat_num,
            DEFAULT_LON if lon_num is None else lon_num,
        )
    except Exception as e:
        logger.error(f"Weather failed: {e}")
        raise ApiError(500, "Failed to fetch weather", str(e))


@router.get("/satellite/fires", response_model=FiresResponse)
async def satellite_fires(firms_service: FirmsService = Depends(get_firms_service)):
    """Active fire points near the configured area."""
    try:
        fires = await firms_service.fetch_fires()
        return FiresResponse(count=len(fires), data=fires)
    except Exception as e:
        logger.error(f"FIRMS fires failed: {e}")
        raise ApiError(500, "Failed to fetch FIRMS fires", str(e))


# =============================================================================
# FALLBACK (must stay last)
# =============================================================================

@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    include_in_schema=False,
)
async def api_not_found(path: str):
    """Anything under /api we don't know about."""
    raise ApiError(404, "Route not found")
