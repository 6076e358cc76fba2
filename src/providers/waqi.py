"""
World Air Quality Index (WAQI) UV Provider.

WAQI aggregates station data, including UV from Copernicus/CAMS. A geo
lookup finds the nearest station, then the station feed is read.
Both requests are needed for the current value and run sequentially.

API Documentation: https://aqicn.org/json-api/doc/
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, List, Optional

from app.models import UVReading, UVSnapshot, build_forecast
from providers.base import (
    CONFIGURATION,
    MALFORMED_RESPONSE,
    UPSTREAM_STATUS,
    BaseUVProvider,
    FetchError,
    dig,
    parse_timestamp,
    safe_float,
)

if TYPE_CHECKING:
    from app.config import Coordinate

logger = logging.getLogger("waqi")

API_URL = "https://api.waqi.info"


def parse_current(data: Any, now: datetime) -> Optional[UVReading]:
    """
    Current UV from a station feed ``data`` block.

    Prefers the live ``iaqi.uvi`` reading, then today's daily forecast
    (avg, else max). None if the feed carries no UV at all.
    """
    live = dig(data, "iaqi", "uvi")
    if isinstance(live, dict):
        value = safe_float(live.get("v"))
        return UVReading(
            value=max(0.0, value or 0.0),
            observed_at=parse_timestamp(dig(data, "time", "iso"), now),
        )

    today = dig(data, "forecast", "daily", "uvi", 0)
    if isinstance(today, dict):
        value = safe_float(today.get("avg")) or safe_float(today.get("max")) or 0.0
        return UVReading(value=max(0.0, value), observed_at=parse_timestamp(today.get("day"), now))
    return None


def parse_hourly(data: Any, now: datetime) -> List[UVReading]:
    """Hourly ``forecast.hourly.uvi[].{t, v}``; some stations publish it."""
    hourly = dig(data, "forecast", "hourly", "uvi")
    if not isinstance(hourly, list):
        return []
    readings = []
    for item in hourly:
        if not isinstance(item, dict):
            continue
        value = safe_float(item.get("v"))
        if value is None:
            continue
        readings.append(UVReading(value=max(0.0, value), observed_at=parse_timestamp(item.get("t"), now)))
    return readings


def parse_daily_max(data: Any, now: datetime) -> Optional[UVReading]:
    today = dig(data, "forecast", "daily", "uvi", 0)
    if not isinstance(today, dict):
        return None
    value = safe_float(today.get("max"))
    if value is None:
        return None
    return UVReading(value=max(0.0, value), observed_at=parse_timestamp(today.get("day"), now))


class WaqiProvider(BaseUVProvider):
    """
    Provider for WAQI station feeds.

    Token from UV_WAQI_TOKEN.
    """

    name = "waqi"
    source_label = "WAQI (with data from Copernicus and other sources)"

    def __init__(self, api_url: str = API_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_url = api_url

    def _feed_data(self, response: Any) -> Any:
        """Decode a feed response; WAQI reports errors in the body with HTTP 200."""
        body = self._primary_json(response)
        if dig(body, "status") != "ok":
            raise FetchError(
                self.name,
                UPSTREAM_STATUS,
                detail=str(dig(body, "data", default="status not ok")),
            )
        data = dig(body, "data")
        if not isinstance(data, dict):
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="feed without data block")
        return data

    async def _fetch(self, coordinate: "Coordinate") -> UVSnapshot:
        token = self.settings().waqi_token
        if not token:
            raise FetchError(self.name, CONFIGURATION, detail="WAQI token not configured")

        now = datetime.now(timezone.utc).replace(microsecond=0)
        params = {"token": token}

        logger.info("Looking up nearest WAQI station for %s", coordinate)
        geo_url = f"{self.api_url}/feed/geo:{coordinate.latitude};{coordinate.longitude}/"
        station = self._feed_data(await self._client.get(geo_url, params=params))
        station_id = station.get("idx")
        if station_id is None:
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="no station id in geo feed")

        detail_url = f"{self.api_url}/feed/@{station_id}/"
        data = self._feed_data(await self._client.get(detail_url, params=params))

        current = parse_current(data, now)
        if current is None:
            raise FetchError(self.name, MALFORMED_RESPONSE, detail=f"station {station_id} reports no UV")

        forecast = build_forecast(parse_hourly(data, now))
        return UVSnapshot.assemble(
            current,
            self.source_label,
            forecast=forecast,
            independent_max=parse_daily_max(data, now),
        )
