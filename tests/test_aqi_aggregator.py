import asyncio

from app.models import ErrorKind, Station, StationDebug, StationResult
from app.services import AQIAggregator, aggregate_aqi
from app.services.openaq_service import SERVICE_VERSION


def run(coro):
    return asyncio.run(coro)


STATIONS = [
    Station(id="a", name="Station A", location_id=1),
    Station(id="b", name="Station B", location_id=2),
    Station(id="c", name="Station C", location_id=3),
]


def ok_result(station: Station, pm25: float) -> StationResult:
    measurements = [{"parameter": "pm25", "value": pm25}]
    return StationResult(
        version=SERVICE_VERSION,
        station=station.id,
        location_id=station.location_id,
        available_parameters=["pm25"],
        measurements=measurements,
        aggregated=aggregate_aqi(measurements),
        debug=StationDebug(cache_hit=False, latest_rows=1),
    )


def failed_result(station: Station, message: str) -> StationResult:
    return StationResult(
        version=SERVICE_VERSION,
        station=station.id,
        location_id=station.location_id,
        aggregated=aggregate_aqi([]),
        debug=StationDebug(note="request failed"),
        error=message,
        error_kind=ErrorKind.UPSTREAM,
    )


class StubOpenAQ:
    """Hands out canned results and tracks how many run at once."""

    def __init__(self, results: dict):
        self.results = results
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch_station_latest(self, station):
        self.calls.append(station.id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0.01)
        self.in_flight -= 1
        return self.results[station.id]


def city_stub():
    # pm25 of 90 -> 200, 60 -> 100
    return StubOpenAQ({
        "a": ok_result(STATIONS[0], 90),
        "b": ok_result(STATIONS[1], 60),
        "c": failed_result(STATIONS[2], "OpenAQ latest failed: HTTP 500: boom"),
    })


def test_city_aqi_is_the_worst_station():
    stub = city_stub()
    city = run(AQIAggregator(stub, STATIONS).aggregate())

    assert city.aggregated == stub.results["a"].aggregated
    assert city.aggregated.aqi == 200
    assert city.dominant_station == STATIONS[0]
    assert city.count == 3
    assert city.note is None


def test_diagnostics_cover_every_station():
    city = run(AQIAggregator(city_stub(), STATIONS).aggregate())

    assert [d.id for d in city.diagnostics] == ["a", "b", "c"]
    failed = city.diagnostics[2]
    assert failed.error == "OpenAQ latest failed: HTTP 500: boom"
    assert failed.aqi is None
    assert failed.measurements_count == 0
    assert failed.service_version == SERVICE_VERSION
    assert failed.source == "openaq_v3"

    first = city.diagnostics[0]
    assert first.name == "Station A"
    assert first.location_id == 1
    assert first.dominant == "pm25"
    assert first.measurements_count == 1
    assert first.available_parameters == ["pm25"]
    assert first.debug.latest_rows == 1


def test_no_station_with_aqi_gives_unknown():
    stub = StubOpenAQ({s.id: failed_result(s, "nope") for s in STATIONS})
    city = run(AQIAggregator(stub, STATIONS).aggregate())

    assert city.aggregated.aqi is None
    assert city.aggregated.category == "Unknown"
    assert city.dominant_station is None
    assert "diagnostics" in city.note
    assert len(city.diagnostics) == 3


def test_tie_goes_to_first_station():
    stub = StubOpenAQ({
        "a": ok_result(STATIONS[0], 60),
        "b": ok_result(STATIONS[1], 60),
        "c": ok_result(STATIONS[2], 10),
    })
    city = run(AQIAggregator(stub, STATIONS).aggregate())
    assert city.dominant_station.id == "a"


def test_stations_run_one_at_a_time_by_default():
    stub = city_stub()
    run(AQIAggregator(stub, STATIONS).aggregate())

    assert stub.calls == ["a", "b", "c"]
    assert stub.max_in_flight == 1


def test_concurrency_knob_allows_parallel_fetches_in_order():
    stub = city_stub()
    aggregator = AQIAggregator(stub, STATIONS, station_concurrency=2)

    results = run(aggregator.run_stations())

    assert [r.station for r in results] == ["a", "b", "c"]
    assert stub.max_in_flight == 2


def test_all_stations_tags_results_with_station_meta():
    results = run(AQIAggregator(city_stub(), STATIONS).all_stations())

    assert [r.station_meta.id for r in results] == ["a", "b", "c"]
    body = results[0].model_dump(by_alias=True)
    assert body["stationMeta"]["locationId"] == 1
    assert body["aggregated"]["aqi"] == 200
