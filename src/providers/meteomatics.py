"""
Meteomatics UV Provider.

Queries the Meteomatics time-series API for the UV index parameter
``uv:idx``. Current value and the next 24 hours come from two separate
URLs, which are requested concurrently.

API Documentation: https://www.meteomatics.com/en/api/getting-started/

Response shape (both requests):
    {"data": [{"parameter": "uv:idx",
               "coordinates": [{"lat": .., "lon": ..,
                                "dates": [{"date": "...Z", "value": 3.2}]}]}]}
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any, List

import httpx

from app.models import FORECAST_HOURS, UVReading, UVSnapshot, build_forecast
from providers.base import (
    CONFIGURATION,
    MALFORMED_RESPONSE,
    BaseUVProvider,
    FetchError,
    dig,
    parse_timestamp,
    uv_value,
)

if TYPE_CHECKING:
    from app.config import Coordinate

logger = logging.getLogger("meteomatics")

BASE_URL = "https://api.meteomatics.com"
PARAMETER = "uv:idx"


def _format_time(ts: datetime) -> str:
    """Meteomatics wants second precision with a literal Z."""
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _dates(body: Any) -> Any:
    return dig(body, "data", 0, "coordinates", 0, "dates")


def parse_forecast(body: Any, now: datetime) -> List[UVReading]:
    """Map forecast dates to readings; entries without a value are skipped."""
    dates = _dates(body)
    if not isinstance(dates, list):
        return []
    readings = []
    for item in dates:
        if not isinstance(item, dict) or item.get("value") is None:
            continue
        readings.append(
            UVReading(
                value=uv_value(item.get("value")),
                observed_at=parse_timestamp(item.get("date"), now),
            )
        )
    return readings


class MeteomaticsProvider(BaseUVProvider):
    """
    Provider for Meteomatics professional weather data.

    Authenticates with HTTP basic auth from
    UV_METEOMATICS_USERNAME / UV_METEOMATICS_PASSWORD.
    """

    name = "meteomatics"
    source_label = "Meteomatics Professional Weather Data"

    def __init__(self, base_url: str = BASE_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.base_url = base_url

    def build_urls(self, coordinate: "Coordinate", now: datetime) -> tuple[str, str]:
        """Return (current_url, forecast_url) for a coordinate."""
        location = f"{coordinate.latitude},{coordinate.longitude}"
        start = _format_time(now)
        end = _format_time(now + timedelta(hours=FORECAST_HOURS))
        current_url = f"{self.base_url}/{start}/{PARAMETER}/{location}/json"
        forecast_url = f"{self.base_url}/{start}--{end}:PT1H/{PARAMETER}/{location}/json"
        return current_url, forecast_url

    async def _fetch(self, coordinate: "Coordinate") -> UVSnapshot:
        settings = self.settings()
        if not settings.has_meteomatics_credentials():
            raise FetchError(self.name, CONFIGURATION, detail="Meteomatics credentials not configured")

        now = datetime.now(timezone.utc).replace(microsecond=0)
        current_url, forecast_url = self.build_urls(coordinate, now)
        auth = httpx.BasicAuth(settings.meteomatics_username, settings.meteomatics_password)

        logger.info("Fetching Meteomatics UV for %s", coordinate)
        current_response, forecast_response = await asyncio.gather(
            self._client.get(current_url, auth=auth),
            self._client.get(forecast_url, auth=auth),
            return_exceptions=True,
        )

        current_body = self._primary_json(current_response)
        first = dig(_dates(current_body), 0)
        if not isinstance(first, dict):
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="no current UV value in response")
        current = UVReading(
            value=uv_value(first.get("value")),
            observed_at=parse_timestamp(first.get("date"), now),
        )

        forecast = None
        forecast_body = self._secondary_json(forecast_response)
        if forecast_body is not None:
            forecast = build_forecast(parse_forecast(forecast_body, now))
            if not forecast:
                logger.warning("Forecast response has no dates, omitting forecast")

        return UVSnapshot.assemble(current, self.source_label, forecast=forecast)
