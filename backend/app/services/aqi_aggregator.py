"""
AQI Aggregator
==============

Runs the station pipeline for every configured station and picks the
citywide number.

HOW THE CITY AQI IS PICKED:
--------------------------
The city's AQI is the worst station's AQI. If R K Puram reads 120 and
Anand Vihar reads 80, the city is 120 and R K Puram is the
"dominant station". Stations that failed simply don't compete, but they
still show up in the diagnostics so you can see why.

ONE STATION AT A TIME:
---------------------
Stations are fetched one after another, not in parallel. Firing every
station at OpenAQ at once gets us HTTP 429s. The limit is a setting
(OPENAQ_STATION_CONCURRENCY, default 1) so it can be raised if OpenAQ
ever allows it.
"""

import asyncio
import logging
import math
from typing import Optional

from app.models import (
    CityAggregate,
    Station,
    StationAggregate,
    StationDiagnostic,
    StationResult,
    StationResultResponse,
)
from app.services.aqi_calculator import UNKNOWN_CATEGORY
from app.services.openaq_service import OpenAQService

logger = logging.getLogger(__name__)


AGGREGATE_VERSION = "routes-seq-aggregate-v2"

NO_AQI_NOTE = (
    "No station returned a numeric AQI. Check diagnostics[].error and "
    "diagnostics[].availableParameters (need pm25/pm10)."
)


class AQIAggregator:
    """
    Citywide AQI across all stations.

    HOW TO USE:
    ----------
    aggregator = AQIAggregator(openaq_service, stations, station_concurrency=1)

    city = await aggregator.aggregate()
    print(city.aggregated.aqi, city.dominant_station)
    """

    def __init__(
        self,
        openaq_service: OpenAQService,
        stations: list[Station],
        station_concurrency: int = 1,
    ):
        """
        Args:
            openaq_service: Runs the per-station pipeline
            stations: Stations to aggregate over, in display order
            station_concurrency: Max stations fetched at once (1 = sequential)
        """
        self.openaq_service = openaq_service
        self.stations = list(stations)
        self.station_concurrency = max(1, int(station_concurrency))

    async def run_stations(self) -> list[StationResult]:
        """
        Pipeline result for every station, in station order.

        With a concurrency of 1 this is a plain loop: the next station
        starts only after the previous one is done.
        """
        if self.station_concurrency == 1:
            results = []
            for station in self.stations:
                results.append(await self.openaq_service.fetch_station_latest(station))
            return results

        semaphore = asyncio.Semaphore(self.station_concurrency)

        async def _limited(station: Station) -> StationResult:
            async with semaphore:
                return await self.openaq_service.fetch_station_latest(station)

        return list(await asyncio.gather(*(_limited(station) for station in self.stations)))

    async def all_stations(self) -> list[StationResultResponse]:
        """Every station's result tagged with its station config."""
        results = await self.run_stations()
        return [
            StationResultResponse(station_meta=station, **result.model_dump())
            for station, result in zip(self.stations, results)
        ]

    @staticmethod
    def build_diagnostic(station: Station, result: StationResult) -> StationDiagnostic:
        """Summary of one station's result for CityAggregate.diagnostics."""
        return StationDiagnostic(
            id=station.id,
            name=station.name,
            location_id=result.location_id,
            aqi=result.aggregated.aqi,
            dominant=result.aggregated.dominant,
            measurements_count=len(result.measurements),
            available_parameters=result.available_parameters,
            debug=result.debug,
            error=result.error,
            source=result.source,
            service_version=result.version,
        )

    @staticmethod
    def pick_dominant(results: list[StationResult]) -> Optional[int]:
        """
        Index of the station with the highest finite AQI.

        Ties go to the station listed first. None if no station has one.
        """
        best: Optional[int] = None
        for idx, result in enumerate(results):
            aqi = result.aggregated.aqi
            if aqi is None or not math.isfinite(aqi):
                continue
            if best is None or aqi > results[best].aggregated.aqi:
                best = idx
        return best

    async def aggregate(self) -> CityAggregate:
        """
        THE MAIN FUNCTION - citywide AQI.

        Returns:
            The worst station's aggregate, the station itself and one
            diagnostics entry per station. If no station produced an AQI,
            an "Unknown" aggregate with a note instead.
        """
        results = await self.run_stations()
        diagnostics = [
            self.build_diagnostic(station, result)
            for station, result in zip(self.stations, results)
        ]

        top = self.pick_dominant(results)
        if top is None:
            failed = sum(1 for result in results if result.error)
            logger.warning(
                f"No station returned a numeric AQI ({failed}/{len(results)} failed)"
            )
            return CityAggregate(
                version=AGGREGATE_VERSION,
                aggregated=StationAggregate(
                    aqi=None, category=UNKNOWN_CATEGORY, dominant=None, sub_indexes=[]
                ),
                count=len(results),
                note=NO_AQI_NOTE,
                diagnostics=diagnostics,
            )

        dominant_station = self.stations[top]
        logger.info(
            f"City AQI {results[top].aggregated.aqi} from station "
            f"{dominant_station.id or dominant_station.name}"
        )
        return CityAggregate(
            version=AGGREGATE_VERSION,
            aggregated=results[top].aggregated,
            dominant_station=dominant_station,
            count=len(results),
            diagnostics=diagnostics,
        )
