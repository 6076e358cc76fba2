"""
Geolocation sources.

A source reports a position through callbacks, mirroring the browser's
``navigator.geolocation.getCurrentPosition(onSuccess, onFailure, options)``.
Callbacks must be invoked on the event loop thread. LocationResolver
adds the bounding timeout and fallback on top.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Protocol, Set, runtime_checkable

import httpx

logger = logging.getLogger("geolocation")

IP_LOOKUP_URL = "https://ipapi.co/json/"


@dataclass(frozen=True)
class Position:
    """A position fix as reported by a source."""

    latitude: float
    longitude: float
    accuracy_m: Optional[float] = None
    label: Optional[str] = None


@dataclass(frozen=True)
class PositionOptions:
    """Hints passed to the source (browser semantics)."""

    timeout_s: float = 8.0
    maximum_age_s: float = 3600
    high_accuracy: bool = False


class GeolocationErrorCode(IntEnum):
    """W3C GeolocationPositionError codes."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


_ERROR_MESSAGES = {
    GeolocationErrorCode.PERMISSION_DENIED: (
        "Permission denied. Please enable location access in your browser settings."
    ),
    GeolocationErrorCode.POSITION_UNAVAILABLE: (
        "Location unavailable. Your device couldn't determine your position."
    ),
    GeolocationErrorCode.TIMEOUT: "Location request timed out. Please try again.",
}


@dataclass(frozen=True)
class GeolocationError:
    """Failure reported to the on_failure callback."""

    code: int
    message: str = ""

    def describe(self) -> str:
        try:
            return _ERROR_MESSAGES[GeolocationErrorCode(self.code)]
        except ValueError:
            return f"Geolocation error: {self.message or 'Unknown error'}"


class GeolocationUnsupported(Exception):
    """Raised synchronously by a source that cannot geolocate at all."""


SuccessCallback = Callable[[Position], None]
FailureCallback = Callable[[GeolocationError], None]


@runtime_checkable
class GeolocationSource(Protocol):
    """Callback-style position source."""

    def get_current_position(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        ...


def valid_lat_lon(lat_value: Any, lon_value: Any) -> Optional[tuple[float, float]]:
    """Parse and range-check a latitude/longitude pair."""
    try:
        lat = float(lat_value)
        lon = float(lon_value)
    except (TypeError, ValueError):
        return None
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        return None
    return lat, lon


class StaticGeolocationSource:
    """Reports a fixed position, e.g. a configured home location."""

    def __init__(self, position: Position) -> None:
        self._position = position

    def get_current_position(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        on_success(self._position)


class IpGeolocationSource:
    """
    Approximate position from the server's public IP.

    Used when no browser is attached. City-level accuracy at best.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        url: str = IP_LOOKUP_URL,
    ) -> None:
        self._client = client or httpx.AsyncClient()
        self._url = url
        self._tasks: Set[asyncio.Task] = set()

    def get_current_position(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        try:
            task = asyncio.get_running_loop().create_task(
                self._lookup(on_success, on_failure, options)
            )
        except RuntimeError as e:
            raise GeolocationUnsupported("IP lookup needs a running event loop") from e
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _lookup(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        try:
            response = await self._client.get(self._url, timeout=options.timeout_s)
        except httpx.TimeoutException:
            on_failure(GeolocationError(GeolocationErrorCode.TIMEOUT, "IP lookup timed out"))
            return
        except httpx.RequestError as e:
            on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, str(e)))
            return

        if not response.is_success:
            on_failure(GeolocationError(
                GeolocationErrorCode.POSITION_UNAVAILABLE, f"IP lookup returned {response.status_code}"
            ))
            return
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict) or payload.get("error"):
            on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "IP lookup failed"))
            return

        coords = valid_lat_lon(payload.get("latitude"), payload.get("longitude"))
        if coords is None:
            on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "IP lookup without coordinates"))
            return

        label_parts = [
            str(part).strip()
            for part in (payload.get("city"), payload.get("country_name"))
            if part and str(part).strip()
        ]
        on_success(Position(
            latitude=coords[0],
            longitude=coords[1],
            label=", ".join(label_parts) or None,
        ))
