"""
Browser geolocation through the connected NiceGUI client.

Runs navigator.geolocation.getCurrentPosition in the browser and maps
the outcome onto the GeolocationSource callbacks. The first call
triggers the browser's permission prompt.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Set

from nicegui import Client

from services.geolocation import (
    FailureCallback,
    GeolocationError,
    GeolocationErrorCode,
    Position,
    PositionOptions,
    SuccessCallback,
    valid_lat_lon,
)

logger = logging.getLogger("browser_geolocation")

# Never rejects: failures come back as {error, message} so the server sees the W3C code.
_GEOLOCATION_JS = """
return await new Promise((resolve) => {
    if (!navigator.geolocation) {
        resolve({error: 2, message: "Geolocation is not supported by this browser"});
        return;
    }
    navigator.geolocation.getCurrentPosition(
        (position) => resolve({
            latitude: position.coords.latitude,
            longitude: position.coords.longitude,
            accuracy: position.coords.accuracy,
        }),
        (error) => resolve({error: error.code, message: error.message}),
        %s
    );
});
"""


def build_script(options: PositionOptions) -> str:
    """JS snippet with the options object filled in (milliseconds)."""
    js_options = json.dumps({
        "enableHighAccuracy": options.high_accuracy,
        "timeout": int(options.timeout_s * 1000),
        "maximumAge": int(options.maximum_age_s * 1000),
    })
    return _GEOLOCATION_JS % js_options


def handle_result(result: Any, on_success: SuccessCallback, on_failure: FailureCallback) -> None:
    """Dispatch the browser's answer to the matching callback."""
    if not isinstance(result, dict):
        on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "empty browser response"))
        return
    if "error" in result:
        try:
            code = int(result["error"])
        except (TypeError, ValueError):
            code = GeolocationErrorCode.POSITION_UNAVAILABLE
        on_failure(GeolocationError(code, str(result.get("message") or "")))
        return
    coords = valid_lat_lon(result.get("latitude"), result.get("longitude"))
    if coords is None:
        on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, "invalid coordinates"))
        return
    on_success(Position(latitude=coords[0], longitude=coords[1], accuracy_m=result.get("accuracy")))


class BrowserGeolocationSource:
    """GeolocationSource backed by the viewer's browser."""

    def __init__(self, client: Client) -> None:
        self._client = client
        self._tasks: Set[asyncio.Task] = set()

    def get_current_position(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        task = asyncio.get_running_loop().create_task(self._query(on_success, on_failure, options))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _query(
        self,
        on_success: SuccessCallback,
        on_failure: FailureCallback,
        options: PositionOptions,
    ) -> None:
        try:
            result = await self._client.run_javascript(
                build_script(options), timeout=options.timeout_s + 1.0
            )
        except TimeoutError:
            on_failure(GeolocationError(GeolocationErrorCode.TIMEOUT, "browser did not answer"))
            return
        except RuntimeError as e:
            logger.warning("Browser geolocation failed: %s", e)
            on_failure(GeolocationError(GeolocationErrorCode.POSITION_UNAVAILABLE, str(e)))
            return
        handle_result(result, on_success, on_failure)
