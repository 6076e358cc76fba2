"""
Open-Meteo UV Provider (Air Quality API, Copernicus CAMS).

No weather model on Open-Meteo provides UV; the air-quality endpoint
serves CAMS global hourly UV without an API key. Current value and the
next 24 hours are requested concurrently.

API Documentation: https://open-meteo.com/en/docs/air-quality-api
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List

from app.models import FORECAST_HOURS, UVReading, UVSnapshot, build_forecast
from providers.base import (
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

logger = logging.getLogger("openmeteo")

AIR_QUALITY_HOST = "https://air-quality-api.open-meteo.com"
AIR_QUALITY_ENDPOINT = "/v1/air-quality"


def parse_hourly(body: Any, now: datetime) -> List[UVReading]:
    """Zip ``hourly.time`` with ``hourly.uv_index``; null values are skipped."""
    times = dig(body, "hourly", "time")
    values = dig(body, "hourly", "uv_index")
    if not isinstance(times, list) or not isinstance(values, list):
        return []
    readings = []
    for time_str, value in zip(times, values):
        number = safe_float(value)
        if number is None:
            continue
        readings.append(UVReading(value=max(0.0, number), observed_at=parse_timestamp(time_str, now)))
    return readings


class OpenMeteoProvider(BaseUVProvider):
    """Keyless provider for CAMS UV via Open-Meteo."""

    name = "openmeteo"
    source_label = "Open-Meteo Air Quality (Copernicus CAMS)"

    def __init__(self, base_host: str = AIR_QUALITY_HOST, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.url = f"{base_host}{AIR_QUALITY_ENDPOINT}"

    async def _fetch(self, coordinate: "Coordinate") -> UVSnapshot:
        now = datetime.now(timezone.utc).replace(microsecond=0)
        base_params = {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "timezone": "UTC",
        }
        current_params = {**base_params, "current": "uv_index"}
        forecast_params = {**base_params, "hourly": "uv_index", "forecast_hours": FORECAST_HOURS}

        logger.info("Fetching Open-Meteo UV for %s", coordinate)
        current_response, forecast_response = await asyncio.gather(
            self._client.get(self.url, params=current_params),
            self._client.get(self.url, params=forecast_params),
            return_exceptions=True,
        )

        current_body = self._primary_json(current_response)
        current = dig(current_body, "current")
        if not isinstance(current, dict):
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="no current block in response")
        reading = UVReading(
            value=uv_value(current.get("uv_index")),
            observed_at=parse_timestamp(current.get("time"), now),
        )

        forecast = None
        forecast_body = self._secondary_json(forecast_response)
        if forecast_body is not None:
            forecast = build_forecast(parse_hourly(forecast_body, now))
            if not forecast:
                logger.warning("Forecast response has no hourly UV, omitting forecast")

        return UVSnapshot.assemble(reading, self.source_label, forecast=forecast)
