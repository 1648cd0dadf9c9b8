"""Shared test fixtures - fake HTTP transports, settings and a temp cache."""

from pathlib import Path
from typing import Callable

import httpx
import pytest

from plandata.services.cache import CacheStore
from plandata.services.client import RequestExecutor
from plandata.settings import Settings

PLANIT_RECORD = {
    "uid": "APP-001",
    "name": "APP/2024/001",
    "reference": "APP/2024/001",
    "address": "123 Test Street, London SW1A 1AA",
    "postcode": "SW1A 1AA",
    "description": "Single storey rear extension",
    "lat": 51.5074,
    "lng": -0.1278,
    "link": "https://example.com/app/001",
    "url": "https://example.com/app/001",
    "authority_name": "Test Council",
    "area_name": "Test Area",
    "start_date": "2024-01-15",
    "decided_date": "2024-03-11",
    "app_type": "Full",
    "app_state": "Permitted",
}

CONSERVATION_ENTITY = {
    "entity": 12345,
    "name": "Test Conservation Area",
    "reference": "CA-001",
    "description": "Historic conservation area",
    "designation-date": "1990-01-01",
}


class SleepRecorder:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)

    @property
    def total(self) -> float:
        return sum(self.delays)


def json_response(data, status_code: int = 200, headers: dict | None = None):
    return httpx.Response(status_code, json=data, headers=headers)


class FakeApis:
    """
    Routes requests to PlanIt and the Planning Data Platform.

    planit / constraints can be replaced with callables returning a
    response (or raising) to simulate failures.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.planit: Callable[[httpx.Request], httpx.Response] = (
            lambda request: json_response({"records": [PLANIT_RECORD], "count": 1})
        )
        self.constraints: Callable[[httpx.Request], httpx.Response] = (
            lambda request: json_response({"entities": [], "count": 0})
        )
        self.health: Callable[[httpx.Request], httpx.Response] = (
            lambda request: json_response({"records": []})
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/applics/json":
            return self.planit(request)
        if request.url.path == "/entity.json":
            return self.constraints(request)
        if request.url.path == "/api/areas/json":
            return self.health(request)
        return httpx.Response(404)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        cache_database_url=f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}",
    )


@pytest.fixture()
def fake_apis() -> FakeApis:
    return FakeApis()


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
async def http_client(fake_apis: FakeApis):
    client = httpx.AsyncClient(transport=httpx.MockTransport(fake_apis))
    yield client
    await client.aclose()


@pytest.fixture()
def executor(settings: Settings, http_client, sleep_recorder) -> RequestExecutor:
    return RequestExecutor(settings, http_client=http_client, sleep=sleep_recorder)


@pytest.fixture()
async def cache(settings: Settings):
    store = CacheStore(settings.cache_database_url)
    yield store
    await store.close()
