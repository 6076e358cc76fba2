"""
UV provider protocol, shared adapter behaviour and factory.

Defines the interface that all UV data providers implement, so the
data source is a configuration choice rather than something the
caller has to handle.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Optional, Protocol, Tuple, runtime_checkable

import httpx

from app.config import Settings

if TYPE_CHECKING:
    from app.config import Coordinate
    from app.models import UVSnapshot
    from services.snapshot_cache import SnapshotCache

TIMEOUT = 30.0

# FetchError reasons
UPSTREAM_STATUS = "upstream-status"
MALFORMED_RESPONSE = "malformed-response"
TRANSPORT = "transport"
CONFIGURATION = "configuration"


@runtime_checkable
class UVProvider(Protocol):
    """
    Protocol for UV data providers.

    Uses structural subtyping (PEP 544).

    Example:
        >>> provider = get_provider("openmeteo")
        >>> snapshot = await provider.fetch_snapshot(coordinate)
    """

    @property
    def name(self) -> str:
        """Provider identifier, e.g. "meteomatics"."""
        ...

    @property
    def source_label(self) -> str:
        """Attribution text shown next to the data."""
        ...

    async def fetch_snapshot(self, coordinate: "Coordinate") -> "UVSnapshot":
        """
        Fetch a normalized UV snapshot for a coordinate.

        Raises:
            FetchError: If the current value cannot be obtained
        """
        ...


class ProviderError(Exception):
    """Base exception for provider errors."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        super().__init__(f"[{provider}] {message}")


class ProviderNotFoundError(ProviderError):
    """Raised when an unknown provider is requested."""

    def __init__(self, name: str, available: Tuple[str, ...] = ()) -> None:
        message = f"Provider not found: {name}"
        if available:
            message += f". Available: {', '.join(available)}"
        super().__init__(name, message)


class FetchError(ProviderError):
    """
    Raised when a snapshot cannot be produced.

    reason is one of "upstream-status", "malformed-response",
    "transport" or "configuration".
    """

    def __init__(
        self,
        provider: str,
        reason: str,
        status: Optional[int] = None,
        detail: str = "",
    ) -> None:
        self.reason = reason
        self.status = status
        self.detail = detail
        message = reason
        if status is not None:
            message += f" (HTTP {status})"
        if detail:
            message += f": {detail}"
        super().__init__(provider, message)


# --- Defensive JSON access ---

def dig(data: Any, *path: Any, default: Any = None) -> Any:
    """
    Walk a nested JSON structure, tolerating absence at every step.

    String steps index dicts, int steps index lists.

    Example:
        >>> dig({"a": [{"b": 1}]}, "a", 0, "b")
        1
        >>> dig({"a": []}, "a", 0, "b", default=0)
        0
    """
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return default
            current = current[step]
        else:
            if not isinstance(current, dict) or step not in current:
                return default
            current = current[step]
        if current is None:
            return default
    return current


def safe_float(value: Any) -> Optional[float]:
    """Convert to float, None for missing or non-numeric values."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_timestamp(value: Any, default: datetime) -> datetime:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts ISO 8601 strings (with or without "Z"/offset; naive values are
    taken as UTC) and epoch seconds. Falls back to ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return default
    if isinstance(value, str) and value:
        try:
            ts = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return default
        if ts.tzinfo is None:
            return ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(timezone.utc)
    return default


def uv_value(value: Any) -> float:
    """UV value from an upstream field: missing counts as 0, negatives clamp to 0."""
    number = safe_float(value)
    if number is None:
        return 0.0
    return max(0.0, number)


# --- Shared adapter behaviour ---

class BaseUVProvider:
    """
    Shared fetch flow for all adapters.

    Subclasses set ``name`` / ``source_label`` and implement ``_fetch``.
    This class adds cache lookup, in-flight sharing, uniform error
    wrapping and logging.
    """

    name: str = "base"
    source_label: str = ""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        cache: Optional["SnapshotCache"] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        timeout = settings.http_timeout_s if settings is not None else TIMEOUT
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._cache = cache
        self._settings = settings
        self._inflight: Dict[Tuple[float, float], asyncio.Task] = {}
        self._log = logging.getLogger(self.name)

    async def __aenter__(self) -> "BaseUVProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def settings(self) -> Settings:
        """Settings are read at call time unless injected."""
        return self._settings if self._settings is not None else Settings()

    async def fetch_snapshot(self, coordinate: "Coordinate") -> "UVSnapshot":
        """
        Fetch a snapshot for a coordinate.

        Returns a cached snapshot within the validity window, joins an
        in-flight fetch for the same coordinate, otherwise calls upstream.

        Raises:
            FetchError: On primary request failure (cache untouched)
        """
        if self._cache is not None:
            cached = self._cache.get(coordinate)
            if cached is not None:
                self._log.debug("Using cached UV data for %s", coordinate)
                return cached

        key = (coordinate.latitude, coordinate.longitude)
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(coordinate))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._fetch_done(key, t))
        return await asyncio.shield(task)

    def _fetch_done(self, key: Tuple[float, float], task: asyncio.Task) -> None:
        self._inflight.pop(key, None)
        # Mark the error retrieved even if every waiter was cancelled; it is logged already.
        if not task.cancelled():
            task.exception()

    async def _fetch_and_store(self, coordinate: "Coordinate") -> "UVSnapshot":
        try:
            snapshot = await self._fetch(coordinate)
        except FetchError as e:
            self._log.error("UV fetch failed for %s: %s", coordinate, e)
            raise
        except httpx.RequestError as e:
            self._log.error("UV request failed for %s: %s", coordinate, e)
            raise FetchError(self.name, TRANSPORT, detail=str(e)) from e
        except Exception as e:
            self._log.exception("Unexpected error fetching UV data for %s", coordinate)
            raise FetchError(self.name, MALFORMED_RESPONSE, detail=str(e)) from e

        if self._cache is not None:
            self._cache.put(coordinate, snapshot)
        self._log.info(
            "UV %.1f at %s from %s (forecast: %d h)",
            snapshot.current.value,
            coordinate,
            self.name,
            len(snapshot.forecast or ()),
        )
        return snapshot

    async def _fetch(self, coordinate: "Coordinate") -> "UVSnapshot":
        raise NotImplementedError

    # --- Response handling helpers ---

    def _primary_json(self, response: Any) -> Any:
        """
        Decode the current-value response.

        Raises:
            FetchError: On transport error, non-2xx status or undecodable body
        """
        if isinstance(response, httpx.RequestError):
            raise FetchError(self.name, TRANSPORT, detail=str(response))
        if isinstance(response, BaseException):
            raise response
        if not response.is_success:
            raise FetchError(
                self.name, UPSTREAM_STATUS, status=response.status_code, detail=response.text[:200]
            )
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(self.name, MALFORMED_RESPONSE, detail="invalid json") from e

    def _secondary_json(self, response: Any) -> Optional[Any]:
        """Decode the forecast response, None (logged) on any failure."""
        if isinstance(response, BaseException):
            self._log.warning("Forecast request failed, omitting forecast: %s", response)
            return None
        if not response.is_success:
            self._log.warning(
                "Forecast request returned %s, omitting forecast", response.status_code
            )
            return None
        try:
            return response.json()
        except ValueError:
            self._log.warning("Forecast response is not valid JSON, omitting forecast")
            return None


# Provider registry - lazy loading to avoid circular imports
_PROVIDER_FACTORIES: dict[str, type] = {}


def register_provider(name: str, factory: type) -> None:
    """
    Register a provider factory.

    Called by provider modules to register themselves.
    """
    _PROVIDER_FACTORIES[name] = factory


def get_provider(name: str, **kwargs: Any) -> UVProvider:
    """
    Factory function to create provider instances.

    Args:
        name: Provider identifier (e.g., "meteomatics", "openmeteo")
        **kwargs: Passed to the provider constructor (client, cache, settings)

    Returns:
        Provider instance implementing UVProvider protocol

    Raises:
        ProviderNotFoundError: If provider is not registered
    """
    if not _PROVIDER_FACTORIES:
        _load_providers()

    if name not in _PROVIDER_FACTORIES:
        raise ProviderNotFoundError(name, tuple(_PROVIDER_FACTORIES))

    return _PROVIDER_FACTORIES[name](**kwargs)


def _load_providers() -> None:
    """Load all available providers."""
    from providers.meteomatics import MeteomaticsProvider
    from providers.openmeteo import OpenMeteoProvider
    from providers.openweathermap import OpenWeatherMapProvider
    from providers.waqi import WaqiProvider

    register_provider("meteomatics", MeteomaticsProvider)
    register_provider("openmeteo", OpenMeteoProvider)
    register_provider("openweathermap", OpenWeatherMapProvider)
    register_provider("waqi", WaqiProvider)


def available_providers() -> list[str]:
    """Return list of available provider names."""
    if not _PROVIDER_FACTORIES:
        _load_providers()
    return list(_PROVIDER_FACTORIES.keys())
