"""
OpenAQ Service
==============

This is the brains of the AQI side of the app.

WHAT THIS DOES:
--------------
1. Grabs the latest readings for one OpenAQ location
2. Figures out which pollutant each sensor measures
3. Turns the readings into PM2.5/PM10 measurements
4. Computes the station's AQI

THE DATA FLOW:
-------------
    GET /locations/{id}/latest
            |
            | rows keyed by sensorsId (no pollutant name!)
            v
    [Sensor -> Parameter Resolver]
            |   batch GET /sensors?ids=...
            |   then one by one GET /sensors/{id}
            |   parameter ids resolved via GET /parameters/{id}
            v
    [Measurements: pm25 / pm10]
            |
            v
    [aggregate_aqi() -> StationAggregate]

WHY ALL THE CACHING?
-------------------
The latest endpoint only gives sensor ids. Looking up what each sensor
measures costs extra requests, and OpenAQ answers bursts with HTTP 429.
Sensor and parameter lookups are cached for days, latest readings for a
minute. See ttl_cache.py.

FAILURE RULES:
-------------
- The resolvers never raise. A failed lookup means "try the next way",
  and when every way fails the sensor is cached as unknown (None).
- fetch_latest_by_location() DOES raise on HTTP errors.
- fetch_station_latest() never raises. Every failure ends up in the
  result's error / error_kind fields.
"""

import logging
from typing import Any, Iterable, Optional, Union

import httpx

from app.models import (
    ErrorKind,
    Measurement,
    RawReading,
    Station,
    StationDebug,
    StationResult,
)
from app.services.aqi_calculator import aggregate_aqi, is_supported, normalize_parameter
from app.services.ttl_cache import TTLCache
from app.utils.errors import format_http_error
from app.utils.payload import (
    LATEST_ROW_SENSOR_ID_FIELDS,
    PARAMETER_LIST_NAME_FIELDS,
    PARAMETER_NAME_FIELDS,
    SENSOR_DIRECT_NAME_FIELDS,
    SENSOR_OBJECT_ID_FIELDS,
    SENSOR_PARAMETER_ID_PATHS,
    extract_array,
    field,
    first_field,
    first_of,
    first_record,
)
from app.utils.validation import to_int_id, to_number

logger = logging.getLogger(__name__)


SERVICE_VERSION = "aqi-v3-latest-sensor-map-v2"
SOURCE = "openaq_v3"

# How many sensor -> parameter pairs go into debug.sensorMapPreview
SENSOR_MAP_PREVIEW_SIZE = 10

# Errors that mean "this lookup didn't work, try something else"
LOOKUP_ERRORS = (httpx.HTTPError, ValueError)


class OpenAQService:
    """
    Everything we need from the OpenAQ v3 API.

    HOW TO USE:
    ----------
    service = OpenAQService(
        api_key="...",
        latest_cache=TTLCache(60),
        sensor_cache=TTLCache(7 * 24 * 3600),
        param_cache=TTLCache(30 * 24 * 3600),
    )

    result = await service.fetch_station_latest(station)
    if result.error:
        print("Something went wrong:", result.error)
    else:
        print(result.aggregated.aqi, result.aggregated.dominant)
    """

    DEFAULT_BASE_URL = "https://api.openaq.org/v3"

    def __init__(
        self,
        api_key: Optional[str],
        latest_cache: TTLCache,
        sensor_cache: TTLCache,
        param_cache: TTLCache,
        base_url: str = DEFAULT_BASE_URL,
        request_timeout: float = 12.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Set up the service.

        Args:
            api_key: OpenAQ v3 API key. Without it every station result is
                     a configuration error.
            latest_cache: location id -> raw latest payload
            sensor_cache: sensor id -> parameter name (or None)
            param_cache: parameter id -> parameter name (or None)
            base_url: OpenAQ API root (OPENAQ_BASE)
            request_timeout: Per-request timeout in seconds
            transport: Custom httpx transport (tests use MockTransport)
        """
        self.api_key = api_key
        self.latest_cache = latest_cache
        self.sensor_cache = sensor_cache
        self.param_cache = param_cache
        self.base_url = base_url.rstrip("/")

        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"

        # One client for all OpenAQ calls so connections get reused
        self.http_client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=request_timeout,
            headers=headers,
            transport=transport,
        )

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        response = await self.http_client.get(path, params=params)
        response.raise_for_status()
        return response.json()

    # =========================================================================
    # PARAMETER EXTRACTION
    # =========================================================================

    @staticmethod
    def extract_parameter_from_object(param_obj: Any) -> Optional[str]:
        """
        Canonical name out of a sensor's "parameter" field.

        The field can be a plain string ("pm25") or an object like
        {"id": 2, "name": "pm25", "displayName": "PM2.5"}.
        A bare number is an id, not a name, so it gives None here.
        """
        if not param_obj or isinstance(param_obj, bool):
            return None
        if isinstance(param_obj, str):
            return normalize_parameter(param_obj) or None
        if isinstance(param_obj, dict):
            return normalize_parameter(first_field(param_obj, PARAMETER_NAME_FIELDS)) or None
        return None

    async def extract_sensor_parameter(self, sensor_obj: Any) -> Optional[str]:
        """
        Figure out what a sensor object measures.

        Tries, in order:
            1. The nested parameter object (name, code, ...)
            2. Direct name fields (parameter_name, parameterName)
            3. A parameter id, looked up through fetch_parameter_by_id()
        """
        if not isinstance(sensor_obj, dict):
            return None

        nested = self.extract_parameter_from_object(sensor_obj.get("parameter"))
        if nested:
            return nested

        direct = normalize_parameter(first_field(sensor_obj, SENSOR_DIRECT_NAME_FIELDS))
        if direct:
            return direct

        param_id = to_int_id(
            first_of(sensor_obj, [field(*path) for path in SENSOR_PARAMETER_ID_PATHS])
        )
        if param_id is not None:
            return await self.fetch_parameter_by_id(param_id)

        return None

    # =========================================================================
    # PARAMETER-ID RESOLVER
    # =========================================================================

    async def fetch_parameter_by_id(self, param_id: int) -> Optional[str]:
        """
        Parameter name for an OpenAQ parameter id (e.g. 2 -> "pm25").

        Checks the 30-day cache first. Then tries /parameters/{id},
        /parameter/{id} and finally /parameters?id={id}. Whatever comes
        out (a name or None) is cached. Never raises.
        """
        if self.param_cache.contains(param_id):
            return self.param_cache.get(param_id)

        for path in (f"/parameters/{param_id}", f"/parameter/{param_id}"):
            try:
                data = await self._get_json(path)
            except LOOKUP_ERRORS as e:
                logger.debug(f"Parameter lookup {path} failed: {e}")
                continue

            record = first_record(data)
            raw = first_field(record, PARAMETER_NAME_FIELDS) if isinstance(record, dict) else None
            param = normalize_parameter(raw) or None
            self.param_cache.set(param_id, param)
            return param

        try:
            data = await self._get_json(
                "/parameters",
                params={"id": str(param_id), "limit": 1, "page": 1},
            )
        except LOOKUP_ERRORS as e:
            logger.debug(f"Parameter list lookup for {param_id} failed: {e}")
            self.param_cache.set(param_id, None)
            return None

        records = extract_array(data)
        record = records[0] if records else None
        raw = first_field(record, PARAMETER_LIST_NAME_FIELDS) if isinstance(record, dict) else None
        param = normalize_parameter(raw) or None
        self.param_cache.set(param_id, param)
        return param

    # =========================================================================
    # SENSOR-PARAMETER RESOLVER
    # =========================================================================

    async def fetch_sensors_batch(self, sensor_ids: list[int]) -> Optional[list]:
        """
        One request for many sensors: GET /sensors?ids=1,2,3.

        Returns the sensor objects, or None if the call failed or came
        back empty (not every deployment supports it).
        """
        try:
            data = await self._get_json(
                "/sensors",
                params={
                    "ids": ",".join(str(sensor_id) for sensor_id in sensor_ids),
                    "limit": len(sensor_ids),
                    "page": 1,
                },
            )
        except LOOKUP_ERRORS as e:
            logger.debug(f"Batch sensor lookup failed: {e}")
            return None

        records = extract_array(data)
        return records or None

    async def fetch_sensor_individually(self, sensor_id: int) -> Optional[Any]:
        """
        Sensor object for one id.

        Tries /sensors/{id}, /sensor/{id}, then /sensors?id={id}.
        Stops at the first request that succeeds.
        """
        for path in (f"/sensors/{sensor_id}", f"/sensor/{sensor_id}"):
            try:
                data = await self._get_json(path)
            except LOOKUP_ERRORS as e:
                logger.debug(f"Sensor lookup {path} failed: {e}")
                continue
            return first_record(data)

        try:
            data = await self._get_json(
                "/sensors",
                params={"id": str(sensor_id), "limit": 1, "page": 1},
            )
        except LOOKUP_ERRORS as e:
            logger.debug(f"Sensor list lookup for {sensor_id} failed: {e}")
            return None

        records = extract_array(data)
        return records[0] if records else None

    async def build_sensor_parameter_map(self, sensor_ids: Iterable[int]) -> dict[int, str]:
        """
        Map sensor ids to parameter names.

        STEPS:
            1. Sensors in the cache are answered from it. A cached None
               means "known unresolvable": it is left out and not fetched.
            2. Everything else is asked for in one batch request.
            3. Whatever is still missing is fetched one sensor at a time.
               This is sequential on purpose, to stay under the rate limit.

        Every outcome is cached, including None. Never raises; the map
        may be partial.
        """
        id_to_param: dict[int, str] = {}
        to_fetch: list[int] = []

        for sensor_id in sensor_ids:
            if self.sensor_cache.contains(sensor_id):
                cached = self.sensor_cache.get(sensor_id)
                if cached:
                    id_to_param[sensor_id] = cached
                continue
            to_fetch.append(sensor_id)

        if not to_fetch:
            return id_to_param

        batched = await self.fetch_sensors_batch(to_fetch)
        if batched:
            for sensor_obj in batched:
                sensor_id = to_int_id(first_field(sensor_obj, SENSOR_OBJECT_ID_FIELDS))
                if sensor_id is None:
                    continue

                param = await self.extract_sensor_parameter(sensor_obj)
                self.sensor_cache.set(sensor_id, param)
                if param:
                    id_to_param[sensor_id] = param

        for sensor_id in to_fetch:
            if sensor_id in id_to_param:
                continue

            sensor_obj = await self.fetch_sensor_individually(sensor_id)
            param = await self.extract_sensor_parameter(sensor_obj) if sensor_obj else None
            self.sensor_cache.set(sensor_id, param)
            if param:
                id_to_param[sensor_id] = param

        return id_to_param

    # =========================================================================
    # LATEST READINGS
    # =========================================================================

    async def fetch_latest_by_location(self, location_id: int) -> tuple[Any, bool]:
        """
        Raw latest payload for a location, cached for a short time.

        Returns:
            (payload, cache_hit)

        Raises:
            httpx.HTTPError if the request fails. Nothing is cached then.
        """
        if self.latest_cache.contains(location_id):
            return self.latest_cache.get(location_id), True

        data = await self._get_json(f"/locations/{location_id}/latest")
        self.latest_cache.set(location_id, data)
        return data, False

    @staticmethod
    def parse_latest_rows(rows: list) -> list[RawReading]:
        """
        Keep rows that have a usable sensor id.

        Values are not checked here; a row with a bad value stays so the
        debug counters still see it.
        """
        readings = []
        for row in rows:
            if not isinstance(row, dict):
                continue
            sensor_id = to_int_id(first_field(row, LATEST_ROW_SENSOR_ID_FIELDS))
            if sensor_id is None:
                continue

            stamp = row.get("datetime")
            if isinstance(stamp, dict):
                stamp = stamp.get("utc") or stamp.get("local")
            readings.append(
                RawReading(
                    sensor_id=sensor_id,
                    value=to_number(row.get("value")),
                    timestamp=str(stamp) if stamp else None,
                )
            )
        return readings

    # =========================================================================
    # STATION PIPELINE
    # =========================================================================

    @staticmethod
    def _station_label(station: Station) -> Optional[Union[str, int]]:
        return station.id if station.id is not None else station.name

    def _failed_result(
        self,
        station: Station,
        error: str,
        kind: ErrorKind,
        note: str,
        location_id: Optional[int] = None,
    ) -> StationResult:
        return StationResult(
            version=SERVICE_VERSION,
            station=self._station_label(station),
            location_id=location_id,
            aggregated=aggregate_aqi([]),
            debug=StationDebug(note=note),
            source=SOURCE,
            error=error,
            error_kind=kind,
        )

    async def fetch_station_latest(self, station: Station) -> StationResult:
        """
        THE MAIN FUNCTION - full AQI result for one station.

        Args:
            station: Station config (needs a numeric locationId)

        Returns:
            StationResult. Never raises: a missing API key, a missing
            locationId or a failed request all come back as a result
            with error set.
        """
        label = self._station_label(station)

        if not self.api_key:
            logger.warning(f"[{label}] OPENAQ_API_KEY not set")
            return self._failed_result(
                station,
                error="Missing OPENAQ_API_KEY in .env (required for OpenAQ v3).",
                kind=ErrorKind.CONFIGURATION,
                note="Missing OPENAQ_API_KEY",
            )

        location_id = to_int_id(station.location_id)
        if location_id is None:
            logger.warning(f"[{label}] No numeric locationId")
            return self._failed_result(
                station,
                error="Missing numeric locationId in stations.json.",
                kind=ErrorKind.DATA,
                note="No numeric station.locationId",
            )

        try:
            data, cache_hit = await self.fetch_latest_by_location(location_id)

            rows = extract_array(data)
            readings = self.parse_latest_rows(rows)
            sensor_ids = list(dict.fromkeys(reading.sensor_id for reading in readings))

            id_to_param = await self.build_sensor_parameter_map(sensor_ids)

            parsed = [
                Measurement(
                    parameter=normalize_parameter(id_to_param[reading.sensor_id]),
                    value=reading.value,
                    last_updated=reading.timestamp,
                )
                for reading in readings
                if id_to_param.get(reading.sensor_id) and reading.value is not None
            ]

            available_parameters = sorted({m.parameter for m in parsed})
            measurements = [m for m in parsed if is_supported(m)]
            aggregated = aggregate_aqi(measurements)

            logger.info(
                f"[{label}] AQI {aggregated.aqi} ({aggregated.category}), "
                f"{len(measurements)} pm readings, cache_hit={cache_hit}"
            )

            return StationResult(
                version=SERVICE_VERSION,
                station=label if label is not None else location_id,
                location_id=location_id,
                available_parameters=available_parameters,
                measurements=measurements,
                aggregated=aggregated,
                debug=StationDebug(
                    cache_hit=cache_hit,
                    latest_rows=len(rows),
                    unique_sensors=len(sensor_ids),
                    mapped_sensors=len(id_to_param),
                    parsed_count=len(parsed),
                    pm_count=len(measurements),
                    sensor_map_preview=list(id_to_param.items())[:SENSOR_MAP_PREVIEW_SIZE],
                ),
                source=SOURCE,
                error=None,
            )

        except httpx.HTTPError as e:
            message = format_http_error(e)
            logger.error(f"[{label}] OpenAQ latest failed: {message}")
            return self._failed_result(
                station,
                error=f"OpenAQ latest failed: {message}",
                kind=ErrorKind.UPSTREAM,
                note="request failed",
                location_id=location_id,
            )
        except Exception as e:
            logger.error(f"[{label}] Station pipeline error: {e}", exc_info=True)
            return self._failed_result(
                station,
                error=f"OpenAQ latest failed: {e}",
                kind=ErrorKind.INTERNAL,
                note="request failed",
                location_id=location_id,
            )

    async def close(self):
        """
        Clean up when we're done.

        Called when the server shuts down.
        """
        await self.http_client.aclose()
