"""
UV service - composes location resolution and a UV provider.

Turns provider results into view state for the dashboard. Nothing
raised by a provider crosses this boundary: failures become an error
state with a retry affordance.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from app.config import Coordinate
from app.models import UVSeverity, UVSnapshot
from providers.base import CONFIGURATION, MALFORMED_RESPONSE, TRANSPORT, UPSTREAM_STATUS, FetchError

if TYPE_CHECKING:
    from providers.base import UVProvider
    from services.location import LocationResolver

logger = logging.getLogger("uv_service")


@dataclass(frozen=True)
class DashboardState:
    """What the page renders: a snapshot, or an error with retry."""

    coordinate: Coordinate
    snapshot: Optional[UVSnapshot] = None
    error: Optional[str] = None
    using_default_location: bool = False

    @property
    def ok(self) -> bool:
        return self.snapshot is not None

    @property
    def severity(self) -> Optional[UVSeverity]:
        return self.snapshot.severity if self.snapshot is not None else None

    @property
    def can_retry(self) -> bool:
        return self.error is not None


def describe_error(error: FetchError) -> str:
    """User-facing message for a failed fetch."""
    if error.reason == UPSTREAM_STATUS:
        status = f" (HTTP {error.status})" if error.status is not None else ""
        return f"The UV data service is not responding{status}. Please try again."
    if error.reason == MALFORMED_RESPONSE:
        return "The UV data service returned no usable UV index for this location."
    if error.reason == TRANSPORT:
        return "Could not reach the UV data service. Check your connection and try again."
    if error.reason == CONFIGURATION:
        return "The UV data service is not configured (missing credentials)."
    return "Unable to fetch UV index data."


class UVService:
    """
    Service for loading dashboard state.

    Example:
        >>> service = UVService(get_provider("openmeteo"), resolver)
        >>> state = await service.load()
    """

    def __init__(self, provider: "UVProvider", resolver: "LocationResolver") -> None:
        self._provider = provider
        self._resolver = resolver

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def resolver(self) -> "LocationResolver":
        return self._resolver

    async def load(
        self,
        coordinate: Optional[Coordinate] = None,
        *,
        refresh_location: bool = False,
    ) -> DashboardState:
        """
        Resolve a coordinate (unless given) and fetch its snapshot.

        Args:
            coordinate: Explicit location, e.g. a selected city
            refresh_location: Ask the geolocation source again

        Returns:
            DashboardState, never raises for provider failures
        """
        using_default = False
        if coordinate is None:
            coordinate = await self._resolver.resolve(force_refresh=refresh_location)
            using_default = self._resolver.is_fallback(coordinate)

        try:
            snapshot = await self._provider.fetch_snapshot(coordinate)
        except FetchError as e:
            logger.error("No UV snapshot for %s: %s", coordinate, e)
            return DashboardState(
                coordinate=coordinate,
                error=describe_error(e),
                using_default_location=using_default,
            )

        return DashboardState(
            coordinate=coordinate,
            snapshot=snapshot,
            using_default_location=using_default,
        )
