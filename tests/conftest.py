"""
Shared test helpers.

OpenAQ, WeatherAPI.com and FIRMS are never hit for real: every service
gets an httpx.MockTransport whose handler answers from a dict of routes
and records every request it sees.
"""

import httpx
import pytest

from app.models import Station
from app.services import OpenAQService, TTLCache

OPENAQ_BASE = "https://openaq.test/v3"


class FakeClock:
    """Manually advanced clock for TTLCache."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeOpenAQ:
    """
    Routes requests by path (without the /v3 prefix).

    routes maps a path to either a JSON body, an int status code (error
    with an empty body) or a callable taking the request.
    """

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[str]:
        return [request.url.path.removeprefix("/v3") for request in self.requests]

    def count(self, path: str) -> int:
        return self.paths().count(path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/v3")
        answer = self.routes.get(path, 404)
        if callable(answer):
            answer = answer(request)
        if isinstance(answer, httpx.Response):
            return answer
        if isinstance(answer, int):
            return httpx.Response(answer, json={"message": f"status {answer}"})
        return httpx.Response(200, json=answer)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def make_openaq_service(fake: FakeOpenAQ, api_key="test-key", clock=None) -> OpenAQService:
    clock = clock or FakeClock()
    return OpenAQService(
        api_key=api_key,
        latest_cache=TTLCache(60, clock=clock, name="latest"),
        sensor_cache=TTLCache(7 * 24 * 3600, clock=clock, name="sensor"),
        param_cache=TTLCache(30 * 24 * 3600, clock=clock, name="parameter"),
        base_url=OPENAQ_BASE,
        transport=fake.transport(),
    )


def latest_payload(*rows):
    """Body of /locations/{id}/latest for (sensor_id, value) pairs."""
    return {
        "results": [
            {
                "sensorsId": sensor_id,
                "value": value,
                "datetime": {"utc": "2026-10-19T06:00:00Z", "local": "2026-10-19T11:30:00+05:30"},
            }
            for sensor_id, value in rows
        ]
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def station():
    return Station(id="rk-puram", name="R K Puram", location_id=8118)
