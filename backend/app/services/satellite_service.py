"""
NASA FIRMS Satellite Fire Service
=================================

Active fire detections near the city, from NASA FIRMS.

Crop-residue burning upwind is a big driver of PM2.5 spikes, so the
frontend shows fire points next to the AQI.

    GET https://firms.modaps.eosdis.nasa.gov/api/area/json/<MAP_KEY>/<PRODUCT>/<AREA>

Settings (.env):
    NASA_FIRMS_MAP_KEY   - required, get one at https://firms.modaps.eosdis.nasa.gov/api/
    NASA_FIRMS_AREA      - area name FIRMS accepts (default "Delhi")
    NASA_FIRMS_PRODUCT   - VIIRS_SNPP_NRT (default), VIIRS_NOAA20_NRT, MODIS_NRT, ...

FIRMS sometimes answers with a plain list of points and sometimes with a
GeoJSON-like {"features": [{"properties": {...}}]}. Both are handled.
"""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from app.models import FireDetection
from app.utils.errors import ConfigurationError, upstream_error
from app.utils.payload import first_field
from app.utils.validation import is_placeholder_key, to_number

logger = logging.getLogger(__name__)


class FirmsService:
    """Fetches and normalizes FIRMS fire points."""

    AREA_URL = "https://firms.modaps.eosdis.nasa.gov/api/area/json"

    def __init__(
        self,
        map_key: Optional[str],
        area: str = "Delhi",
        product: str = "VIIRS_SNPP_NRT",
        request_timeout: float = 12.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.map_key = map_key
        self.area = area
        self.product = product
        self.http_client = httpx.AsyncClient(
            timeout=request_timeout,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def build_url(self) -> str:
        return f"{self.AREA_URL}/{self.map_key}/{self.product}/{quote(self.area, safe='')}"

    @staticmethod
    def extract_points(data: Any) -> list[dict]:
        """Raw point dicts from either response shape."""
        if isinstance(data, list):
            points = data
        elif isinstance(data, dict) and isinstance(data.get("features"), list):
            points = [(feature or {}).get("properties") or {} for feature in data["features"]]
        else:
            points = []
        return [point for point in points if isinstance(point, dict)]

    @staticmethod
    def parse_point(point: dict) -> Optional[FireDetection]:
        """One fire point, or None if it has no usable coordinates."""
        lat = to_number(first_field(point, ("latitude", "lat", "LATITUDE")))
        lon = to_number(first_field(point, ("longitude", "lon", "LONGITUDE")))
        if lat is None or lon is None:
            return None

        return FireDetection(
            lat=lat,
            lon=lon,
            bright_ti4=to_number(first_field(point, ("bright_ti4", "BRIGHT_TI4", "bright_ti5"))),
            acq_date=first_field(point, ("acq_date", "ACQ_DATE")),
            acq_time=first_field(point, ("acq_time", "ACQ_TIME")),
            satellite=first_field(point, ("satellite", "SATELLITE")),
            confidence=first_field(point, ("confidence", "CONFIDENCE")),
        )

    async def fetch_fires(self) -> list[FireDetection]:
        """
        Active fires in the configured area.

        Raises:
            ConfigurationError: NASA_FIRMS_MAP_KEY missing or still the placeholder
            UpstreamError: FIRMS failed ("FIRMS error 400: ...")
        """
        if is_placeholder_key(self.map_key):
            raise ConfigurationError("NASA FIRMS key missing. Set NASA_FIRMS_MAP_KEY in .env")

        try:
            response = await self.http_client.get(self.build_url())
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            error = upstream_error("FIRMS", e, "Failed to fetch FIRMS fires")
            logger.error(error.message)
            raise error from e

        fires = []
        for point in self.extract_points(data):
            fire = self.parse_point(point)
            if fire is not None:
                fires.append(fire)

        logger.info(f"FIRMS returned {len(fires)} fire points for {self.area}")
        return fires

    async def close(self):
        """Close the HTTP client on shutdown."""
        await self.http_client.aclose()
