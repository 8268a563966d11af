"""
Services Package
================

These are the "workers" that do the actual work.

- OpenAQService: Latest readings, sensor/parameter lookups, station AQI
- AQIAggregator: Runs every station and picks the citywide AQI
- StationRegistry: The static station and ward lists
- WeatherService: Current weather from WeatherAPI.com
- FirmsService: Satellite fire points from NASA FIRMS
- TTLCache: The in-memory caches OpenAQService leans on
"""

from .ttl_cache import TTLCache
from .aqi_calculator import (
    AQI_BREAKPOINTS,
    normalize_parameter,
    compute_sub_index,
    aggregate_aqi,
)
from .openaq_service import OpenAQService, SERVICE_VERSION
from .aqi_aggregator import AQIAggregator, AGGREGATE_VERSION
from .station_registry import StationRegistry
from .weather_service import WeatherService
from .satellite_service import FirmsService

__all__ = [
    "TTLCache",
    "AQI_BREAKPOINTS",
    "normalize_parameter",
    "compute_sub_index",
    "aggregate_aqi",
    "OpenAQService",
    "SERVICE_VERSION",
    "AQIAggregator",
    "AGGREGATE_VERSION",
    "StationRegistry",
    "WeatherService",
    "FirmsService",
]
