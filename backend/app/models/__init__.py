"""
Models Package
==============

This is where all our data models live.
Import from here instead of the individual files.

Example:
    from app.models import Station, Measurement, StationAggregate
"""

from .aqi import (
    # Failure classification
    ErrorKind,

    # Static configuration
    Station,
    Ward,

    # Pipeline data
    RawReading,
    Measurement,
    SubIndex,
    StationAggregate,
    StationDebug,
    StationResult,
    StationDiagnostic,
    CityAggregate,

    # What we send back to the frontend
    StationResultResponse,
    StationsResponse,
    ConfigListResponse,
    HealthResponse,
    ErrorResponse,
    WeatherSnapshot,
    FireDetection,
    FiresResponse,
)

__all__ = [
    "ErrorKind",
    "Station",
    "Ward",
    "RawReading",
    "Measurement",
    "SubIndex",
    "StationAggregate",
    "StationDebug",
    "StationResult",
    "StationDiagnostic",
    "CityAggregate",
    "StationResultResponse",
    "StationsResponse",
    "ConfigListResponse",
    "HealthResponse",
    "ErrorResponse",
    "WeatherSnapshot",
    "FireDetection",
    "FiresResponse",
]
