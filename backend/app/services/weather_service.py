"""
Weather Service
===============

Current weather for a coordinate, from WeatherAPI.com.

One call, no caching: GET /v1/current.json?key=...&q=lat,lon&aqi=no
The response is flattened into a WeatherSnapshot the frontend can show
directly (temperature, humidity, wind, condition).

To get a key: https://www.weatherapi.com/signup.aspx
Put it in .env as WEATHER_API_KEY.
"""

import logging
from typing import Any, Optional

import httpx

from app.models import WeatherSnapshot
from app.utils.errors import ConfigurationError, DataError, upstream_error
from app.utils.payload import first_defined
from app.utils.validation import is_placeholder_key, to_number, validate_coordinates

logger = logging.getLogger(__name__)


class WeatherService:
    """Fetches and normalizes current weather."""

    CURRENT_URL = "https://api.weatherapi.com/v1/current.json"

    def __init__(
        self,
        api_key: Optional[str],
        request_timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            api_key: WeatherAPI.com key (WEATHER_API_KEY)
            request_timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests use MockTransport)
        """
        self.api_key = api_key
        self.http_client = httpx.AsyncClient(
            timeout=request_timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    @staticmethod
    def parse_response(data: dict, lat: float, lon: float) -> WeatherSnapshot:
        """Flatten a current.json body. Missing fields become None."""
        location = data.get("location") or {}
        current = data.get("current") or {}
        condition = current.get("condition") or {}

        return WeatherSnapshot(
            location=location.get("name"),
            region=location.get("region"),
            country=location.get("country"),
            lat=first_defined([location.get("lat"), lat]),
            lon=first_defined([location.get("lon"), lon]),
            temp_c=current.get("temp_c"),
            feelslike_c=current.get("feelslike_c"),
            humidity=current.get("humidity"),
            wind_kph=current.get("wind_kph"),
            wind_degree=current.get("wind_degree"),
            wind_dir=current.get("wind_dir"),
            condition=condition.get("text"),
            condition_icon=condition.get("icon"),
            updated_at=current.get("last_updated"),
            raw=data or None,
        )

    async def fetch_current(self, lat: Any, lon: Any) -> WeatherSnapshot:
        """
        Current weather at (lat, lon).

        Raises:
            ConfigurationError: WEATHER_API_KEY missing or still the placeholder
            DataError: lat/lon not numeric or out of range
            UpstreamError: WeatherAPI.com failed ("Weather API error 401: ...")
        """
        if is_placeholder_key(self.api_key):
            raise ConfigurationError("Weather API key missing. Set WEATHER_API_KEY in .env")

        if not validate_coordinates(lat, lon):
            raise DataError("Invalid lat/lon. Provide numeric lat and lon values.")
        lat_num = to_number(lat)
        lon_num = to_number(lon)

        try:
            response = await self.http_client.get(
                self.CURRENT_URL,
                params={"key": self.api_key, "q": f"{lat_num},{lon_num}", "aqi": "no"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            error = upstream_error(
                "Weather API",
                e,
                "Failed to fetch weather",
                message_paths=(("error", "message"), ("message",)),
            )
            logger.error(error.message)
            raise error from e

        return self.parse_response(data if isinstance(data, dict) else {}, lat_num, lon_num)

    async def close(self):
        """Close the HTTP client on shutdown."""
        await self.http_client.aclose()
