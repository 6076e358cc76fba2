"""
Location resolver - best available coordinate with bounded wait.

resolve() never fails: a position fix wins if it arrives before the
bounding timeout, anything else (explicit failure, timeout, unsupported
source) resolves to the fallback coordinate.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from app.config import Coordinate
from services.geolocation import (
    GeolocationError,
    GeolocationSource,
    GeolocationUnsupported,
    Position,
    PositionOptions,
)

logger = logging.getLogger("location_resolver")

# Stockholm, Sweden
DEFAULT_FALLBACK = Coordinate(latitude=59.3293, longitude=18.0686, label="Stockholm")
DEFAULT_TIMEOUT_S = 5.0
FALLBACK_TOLERANCE = 1e-4


class LocationResolver:
    """
    Resolves and memoizes the viewer's coordinate.

    Example:
        >>> resolver = LocationResolver(StaticGeolocationSource(pos))
        >>> coordinate = await resolver.resolve()
    """

    def __init__(
        self,
        source: Optional[GeolocationSource],
        fallback: Coordinate = DEFAULT_FALLBACK,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        options: Optional[PositionOptions] = None,
    ) -> None:
        """
        Args:
            source: Position source, None if geolocation is unavailable
            fallback: Coordinate used whenever no fix arrives in time
            timeout_s: Bounding wait for the source
            options: Hints forwarded to the source
        """
        self._source = source
        self._fallback = fallback
        self._timeout_s = timeout_s
        self._options = options or PositionOptions()
        self._resolved: Optional[Coordinate] = None
        self._pending: Optional[asyncio.Task] = None

    @property
    def fallback(self) -> Coordinate:
        return self._fallback

    @property
    def resolved(self) -> Optional[Coordinate]:
        """Memoized coordinate, None before the first resolution."""
        return self._resolved

    def is_fallback(self, coordinate: Coordinate, tolerance: float = FALLBACK_TOLERANCE) -> bool:
        """Whether a coordinate is the fallback (drives the default-location notice)."""
        return coordinate.same_point(self._fallback, tolerance)

    async def resolve(self, force_refresh: bool = False) -> Coordinate:
        """
        Return the viewer's coordinate.

        Args:
            force_refresh: Ignore the memoized value and ask the source again.
                Joins an attempt that is already in flight.

        Returns:
            Resolved coordinate, or the fallback
        """
        if self._pending is None:
            if self._resolved is not None and not force_refresh:
                return self._resolved
            self._pending = asyncio.ensure_future(self._resolve_once())
        return await asyncio.shield(self._pending)

    async def _resolve_once(self) -> Coordinate:
        try:
            coordinate = await self._locate()
            self._resolved = coordinate
            return coordinate
        finally:
            self._pending = None

    async def _locate(self) -> Coordinate:
        if self._source is None:
            logger.warning("Geolocation is not available, using fallback location")
            return self._fallback

        outcome: asyncio.Future = asyncio.get_running_loop().create_future()

        def on_success(position: Position) -> None:
            if outcome.done():
                logger.debug("Discarding late position fix %s", position)
                return
            try:
                coordinate = Coordinate(
                    latitude=float(position.latitude),
                    longitude=float(position.longitude),
                    label=position.label,
                )
            except (AttributeError, TypeError, ValueError):
                logger.warning("Invalid position fix %r, using fallback location", position)
                outcome.set_result(self._fallback)
                return
            outcome.set_result(coordinate)

        def on_failure(error: GeolocationError) -> None:
            if outcome.done():
                logger.debug("Discarding late geolocation failure: %s", error.describe())
                return
            logger.warning("%s Using fallback location", error.describe())
            outcome.set_result(self._fallback)

        try:
            self._source.get_current_position(on_success, on_failure, self._options)
        except GeolocationUnsupported as e:
            logger.warning("Geolocation is not supported (%s), using fallback location", e)
            return self._fallback
        except Exception as e:
            logger.warning("Geolocation source failed (%s), using fallback location", e)
            return self._fallback

        try:
            return await asyncio.wait_for(outcome, timeout=self._timeout_s)
        except asyncio.TimeoutError:
            logger.warning(
                "Geolocation timed out after %.1fs, using fallback location", self._timeout_s
            )
            return self._fallback
