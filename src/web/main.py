"""
Main entry point for the UV dashboard web UI.

Run with: python -m web.main (with src/ on the path)
"""
from __future__ import annotations

import logging
import uuid
from typing import Optional

import httpx
from nicegui import Client, app, ui
from starlette.responses import PlainTextResponse

from app.config import Settings
from providers.base import BaseUVProvider, get_provider
from services.geolocation import (
    GeolocationSource,
    IpGeolocationSource,
    Position,
    PositionOptions,
    StaticGeolocationSource,
)
from services.location import LocationResolver
from services.snapshot_cache import SnapshotCache
from services.uv_service import UVService

logger = logging.getLogger("web")

settings = Settings()

# Shared across all pages; one provider and one snapshot cache per process.
snapshot_cache = SnapshotCache(ttl_seconds=settings.cache_ttl_s)
_http_client: Optional[httpx.AsyncClient] = None
_provider: Optional[BaseUVProvider] = None


def get_shared_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.http_timeout_s)
    return _http_client


def get_shared_provider() -> BaseUVProvider:
    """Create the configured provider on first use."""
    global _provider
    if _provider is None:
        _provider = get_provider(
            settings.provider,
            client=get_shared_http_client(),
            cache=snapshot_cache,
            settings=settings,
        )
        logger.info("Using UV provider '%s'", settings.provider)
    return _provider


def build_geolocation_source(client: Client) -> Optional[GeolocationSource]:
    """Geolocation source per UV_GEOLOCATION_SOURCE (None: always the fallback)."""
    if settings.geolocation_source == "ip":
        return IpGeolocationSource(client=get_shared_http_client())
    if settings.geolocation_source == "static":
        home = settings.get_home()
        if home is None:
            logger.warning("UV_GEOLOCATION_SOURCE=static without UV_HOME_LATITUDE/UV_HOME_LONGITUDE")
            return None
        return StaticGeolocationSource(Position(home.latitude, home.longitude, label=home.label))
    from web.geolocation import BrowserGeolocationSource
    return BrowserGeolocationSource(client)


def build_service(client: Client) -> UVService:
    """One resolver per connected browser, shared provider and cache."""
    resolver = LocationResolver(
        build_geolocation_source(client),
        fallback=settings.get_fallback(),
        timeout_s=settings.geolocation_timeout_s,
        options=PositionOptions(maximum_age_s=settings.geolocation_max_age_s),
    )
    return UVService(get_shared_provider(), resolver)


@ui.page("/")
async def dashboard_page(client: Client) -> None:
    """UV dashboard."""
    from web.pages.dashboard import render_dashboard
    await render_dashboard(build_service(client), client)


# Unique server instance ID - changes on every restart.
SERVER_INSTANCE_ID = str(uuid.uuid4())


@app.get("/_health")
async def health_check():
    return PlainTextResponse(SERVER_INSTANCE_ID)


async def close_provider() -> None:
    """Close the shared HTTP client on shutdown."""
    global _http_client, _provider
    _provider = None
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


app.on_shutdown(close_provider)


def run() -> None:
    """Start the web UI server."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ui.run(
        title="UV Index Tracker",
        port=settings.port,
        reload=False,
        show=False,
    )


if __name__ in {"__main__", "__mp_main__"}:
    run()
