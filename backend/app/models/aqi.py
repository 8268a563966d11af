"""
AQI Models
==========
Pydantic models for the AQI pipeline, weather and satellite responses.

This module defines all data structures used throughout the application:
- Configuration models: Stations and wards loaded from app/data/*.json
- Pipeline models: Readings, measurements, sub-indices and aggregates
- Response models: What the backend returns to the frontend

FIELD NAMES:
    Python code uses snake_case. The frontend expects camelCase JSON
    (e.g. "locationId", "subIndexes"), so pipeline models serialize
    by alias. FastAPI does this automatically for response models.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Any, Optional, Union
from enum import Enum


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase JSON keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENUMS
# =============================================================================

class ErrorKind(str, Enum):
    """
    Where a failure came from.

    - CONFIGURATION: Missing API key or similar setup problem
    - UPSTREAM: A third-party API returned an error or was unreachable
    - DATA: Bad or missing input data (e.g. no numeric locationId)
    - INTERNAL: Anything else raised inside our own code
    """
    CONFIGURATION = "configuration"
    UPSTREAM = "upstream"
    DATA = "data"
    INTERNAL = "internal"


# =============================================================================
# CONFIGURATION MODELS - Loaded once from app/data/*.json
# =============================================================================

class Station(CamelModel):
    """
    A monitoring station we aggregate over.

    locationId is OpenAQ's identifier for the monitoring site. It is kept
    loosely typed because it comes straight from a hand-edited JSON file;
    the pipeline validates it before use.

    Example:
        {"id": "rk-puram", "name": "R K Puram", "locationId": 8118}
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    id: Optional[Union[str, int]] = Field(None, description="Station slug used by ?id=")
    name: Optional[str] = Field(None, description="Human-readable station name")
    location_id: Optional[Union[int, float, str]] = Field(
        None, description="OpenAQ location id"
    )


class Ward(CamelModel):
    """A city ward. Only echoed back to the frontend."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    id: Optional[Union[str, int]] = None
    name: Optional[str] = None


# =============================================================================
# PIPELINE MODELS
# =============================================================================

class RawReading(CamelModel):
    """One row of /locations/{id}/latest, not yet classified by pollutant."""
    sensor_id: int = Field(..., description="OpenAQ sensor id")
    value: Optional[float] = Field(None, description="Raw reported value")
    timestamp: Optional[str] = Field(None, description="UTC timestamp of the reading")


class Measurement(CamelModel):
    """A reading resolved to a pollutant name with a finite value."""
    parameter: str = Field(..., description="Normalized parameter, e.g. pm25")
    value: float = Field(..., description="Concentration in µg/m³")
    last_updated: Optional[str] = Field(None, description="UTC timestamp of the reading")


class SubIndex(CamelModel):
    """Standardized index for one pollutant."""
    parameter: str
    index: int = Field(..., ge=0, le=500)
    category: str


class StationAggregate(CamelModel):
    """
    Dominant-pollutant AQI for one station.

    aqi is None and category is "Unknown" when no sub-index could be computed.
    """
    aqi: Optional[int] = None
    category: str = "Unknown"
    dominant: Optional[str] = None
    sub_indexes: list[SubIndex] = Field(default_factory=list)


class StationDebug(CamelModel):
    """Counters describing how a station result was built."""
    cache_hit: Optional[bool] = None
    latest_rows: Optional[int] = None
    unique_sensors: Optional[int] = None
    mapped_sensors: Optional[int] = None
    parsed_count: Optional[int] = None
    pm_count: Optional[int] = None
    sensor_map_preview: Optional[list[tuple[int, str]]] = None
    note: Optional[str] = None


class StationResult(CamelModel):
    """
    Full result of the per-station pipeline.

    Always has the same shape. On failure error is set, error_kind says
    which layer failed and the data fields are empty.
    """
    version: str
    station: Optional[Union[str, int]] = None
    location_id: Optional[int] = None
    available_parameters: list[str] = Field(default_factory=list)
    measurements: list[Measurement] = Field(default_factory=list)
    aggregated: StationAggregate = Field(default_factory=StationAggregate)
    debug: StationDebug = Field(default_factory=StationDebug)
    source: str = "openaq_v3"
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None


class StationDiagnostic(CamelModel):
    """One entry of CityAggregate.diagnostics (always one per station)."""
    id: Optional[Union[str, int]] = None
    name: Optional[str] = None
    location_id: Optional[int] = None
    aqi: Optional[int] = None
    dominant: Optional[str] = None
    measurements_count: int = 0
    available_parameters: list[str] = Field(default_factory=list)
    debug: Optional[StationDebug] = None
    error: Optional[str] = None
    source: Optional[str] = None
    service_version: Optional[str] = None


class CityAggregate(CamelModel):
    """The highest-AQI station's aggregate plus per-station diagnostics."""
    version: str
    aggregated: StationAggregate
    dominant_station: Optional[Station] = None
    count: int
    note: Optional[str] = None
    diagnostics: list[StationDiagnostic] = Field(default_factory=list)


# =============================================================================
# RESPONSE MODELS - What backend returns to frontend
# =============================================================================

class StationResultResponse(StationResult):
    """A StationResult tagged with the station config it was built from."""
    station_meta: Station


class StationsResponse(BaseModel):
    """Response of GET /api/aqi/stations."""
    version: str
    count: int
    data: list[StationResultResponse]


class ConfigListResponse(BaseModel):
    """Response of GET /api/stations and GET /api/wards."""
    count: int
    data: list[dict[str, Any]]


class HealthResponse(BaseModel):
    """Response of GET /api/health."""
    status: str
    service: str
    version: str
    time: str


class ErrorResponse(BaseModel):
    """Shape of every API error body."""
    error: str
    details: Optional[str] = None


# =============================================================================
# WEATHER & SATELLITE MODELS
# =============================================================================

class WeatherSnapshot(BaseModel):
    """
    Current weather at a coordinate, flattened from WeatherAPI.com.

    Data Source:
        HTTP GET https://api.weatherapi.com/v1/current.json
    """
    model_config = ConfigDict(populate_by_name=True)

    source: str = "weatherapi"
    location: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    temp_c: Optional[float] = None
    feelslike_c: Optional[float] = None
    humidity: Optional[float] = None
    wind_kph: Optional[float] = None
    wind_degree: Optional[float] = None
    wind_dir: Optional[str] = None
    condition: Optional[str] = None
    condition_icon: Optional[str] = None
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    raw: Optional[dict[str, Any]] = None


class FireDetection(BaseModel):
    """
    One active-fire point from NASA FIRMS.

    Data Source:
        HTTP GET https://firms.modaps.eosdis.nasa.gov/api/area/json/...
    """
    lat: float
    lon: float
    bright_ti4: Optional[float] = None
    acq_date: Optional[str] = None
    acq_time: Optional[Union[str, int, float]] = None
    satellite: Optional[Union[str, int, float]] = None
    confidence: Optional[Union[str, int, float]] = None
    source: str = "nasa_firms"


class FiresResponse(BaseModel):
    """Response of GET /api/satellite/fires."""
    count: int
    data: list[FireDetection]
