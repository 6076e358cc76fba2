"""
OpenWeatherMap UV Provider (One Call API 3.0).

One request returns current conditions, hourly (48 h) and daily blocks.
The hourly block feeds the 24 h forecast; the daily block only supplies
the day's maximum when the hourly block is missing.

API Documentation: https://openweathermap.org/api/one-call-3
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional

from app.models import UVReading, UVSnapshot, build_forecast
from providers.base import (
    CONFIGURATION,
    MALFORMED_RESPONSE,
    BaseUVProvider,
    FetchError,
    dig,
    parse_timestamp,
    safe_float,
    uv_value,
)

if TYPE_CHECKING:
    from app.config import Coordinate

logger = logging.getLogger("openweathermap")

API_URL = "https://api.openweathermap.org/data/3.0/onecall"


def parse_hourly(body: Any, now: datetime) -> List[UVReading]:
    """Map ``hourly[].{dt, uvi}`` to readings; entries without uvi are skipped."""
    hourly = dig(body, "hourly")
    if not isinstance(hourly, list):
        return []
    return [
        UVReading(value=uv_value(item["uvi"]), observed_at=parse_timestamp(item.get("dt"), now))
        for item in hourly
        if isinstance(item, dict) and safe_float(item.get("uvi")) is not None
    ]


def parse_daily_max(body: Any, now: datetime) -> Optional[UVReading]:
    """Today's maximum from ``daily[0]``, None if absent."""
    value = safe_float(dig(body, "daily", 0, "uvi"))
    if value is None:
        return None
    return UVReading(value=max(0.0, value), observed_at=parse_timestamp(dig(body, "daily", 0, "dt"), now))


class OpenWeatherMapProvider(BaseUVProvider):
    """
    Provider for OpenWeatherMap One Call data.

    API key from UV_OPENWEATHERMAP_API_KEY.
    """

    name = "openweathermap"
    source_label = "OpenWeatherMap"

    def __init__(self, api_url: str = API_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_url = api_url

    async def _fetch(self, coordinate: "Coordinate") -> UVSnapshot:
        api_key = self.settings().openweathermap_api_key
        if not api_key:
            raise FetchError(self.name, CONFIGURATION, detail="OpenWeatherMap API key not configured")

        now = datetime.now(timezone.utc).replace(microsecond=0)
        params = {
            "lat": coordinate.latitude,
            "lon": coordinate.longitude,
            "exclude": "minutely,alerts",
            "units": "metric",
            "appid": api_key,
        }
        logger.info("Fetching OpenWeatherMap UV for %s", coordinate)
        response = await self._client.get(self.api_url, params=params)
        body = self._primary_json(response)

        current = dig(body, "current")
        if not isinstance(current, dict):
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="no current block in response")
        reading = UVReading(
            value=uv_value(current.get("uvi")),
            observed_at=parse_timestamp(current.get("dt"), now),
        )

        # Hourly and daily blocks are secondary data: their absence only drops the forecast.
        forecast = build_forecast(parse_hourly(body, now))
        if not forecast:
            logger.warning("No hourly UV in response, omitting forecast")
        return UVSnapshot.assemble(
            reading,
            self.source_label,
            forecast=forecast,
            independent_max=parse_daily_max(body, now),
        )
