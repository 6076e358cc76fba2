"""
Integration tests for the dashboard pipeline.

Resolver, provider, snapshot cache and UVService wired together as the
web page does it. Upstream HTTP is served by httpx.MockTransport.
"""
import asyncio

import httpx
import pytest
from jsonschema import validate

from app.cities import find_city
from app.config import Coordinate, Settings
from providers.base import get_provider
from services import DEFAULT_FALLBACK, LocationResolver, SnapshotCache, UVService
from services.geolocation import Position, StaticGeolocationSource


class Upstream:
    """Open-Meteo stand-in that can be switched into failure mode."""

    def __init__(self, current, hourly):
        self.current = current
        self.hourly = hourly
        self.current_status = 200
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if "hourly" in request.url.params:
            return httpx.Response(200, json=self.hourly)
        if self.current_status != 200:
            return httpx.Response(self.current_status, text="unavailable")
        return httpx.Response(200, json=self.current)

    def fetched_latitudes(self):
        return {float(r.url.params["latitude"]) for r in self.requests}


@pytest.fixture
def upstream(load_fixture):
    return Upstream(load_fixture("openmeteo_current.json"), load_fixture("openmeteo_hourly.json"))


@pytest.fixture
def cache():
    return SnapshotCache()


def _service(upstream, cache, source):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    provider = get_provider("openmeteo", client=client, cache=cache, settings=Settings(_env_file=None))
    return UVService(provider, LocationResolver(source, timeout_s=0.05))


class SilentSource:
    def get_current_position(self, on_success, on_failure, options):
        pass


class TestDashboardPipeline:

    def test_located_viewer_gets_snapshot(self, upstream, cache, snapshot_schema):
        source = StaticGeolocationSource(Position(57.7089, 11.9746, label="Gothenburg"))
        service = _service(upstream, cache, source)

        state = asyncio.run(service.load())

        assert state.ok
        assert not state.using_default_location
        assert state.coordinate == Coordinate(57.7089, 11.9746, "Gothenburg")
        assert upstream.fetched_latitudes() == {57.7089}
        validate(instance=state.snapshot.to_dict(), schema=snapshot_schema)

    def test_geolocation_timeout_uses_stockholm(self, upstream, cache):
        """
        GIVEN: The position never arrives
        WHEN: Loading the dashboard
        THEN: Stockholm is fetched and the default-location notice is set
        """
        service = _service(upstream, cache, SilentSource())

        state = asyncio.run(service.load())

        assert state.ok
        assert state.using_default_location
        assert state.coordinate is DEFAULT_FALLBACK
        assert upstream.fetched_latitudes() == {59.3293}

    def test_reload_within_five_minutes_is_cached(self, upstream, cache):
        service = _service(upstream, cache, None)

        async def run():
            first = await service.load()
            second = await service.load()
            return first, second

        first, second = asyncio.run(run())

        assert second.snapshot is first.snapshot
        assert len(upstream.requests) == 2

    def test_city_switch_and_back_refetches(self, upstream, cache):
        service = _service(upstream, cache, None)
        malmo = find_city("Malmö")

        async def run():
            await service.load()
            await service.load(malmo)
            await service.load()

        asyncio.run(run())
        assert len(upstream.requests) == 6

    def test_failure_then_retry(self, upstream, cache):
        service = _service(upstream, cache, None)

        async def run():
            upstream.current_status = 500
            failed = await service.load()
            upstream.current_status = 200
            retried = await service.load()
            return failed, retried

        failed, retried = asyncio.run(run())

        assert failed.can_retry
        assert "HTTP 500" in failed.error
        assert cache.get(DEFAULT_FALLBACK) is retried.snapshot
        assert retried.ok
        assert retried.snapshot.current.value == 4.85
