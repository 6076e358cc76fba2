"""
Service layer for UV data.

Services orchestrate location resolution, providers and caching.
"""
from services.location import DEFAULT_FALLBACK, LocationResolver
from services.snapshot_cache import SnapshotCache
from services.uv_service import DashboardState, UVService, describe_error

__all__ = [
    "DEFAULT_FALLBACK",
    "DashboardState",
    "LocationResolver",
    "SnapshotCache",
    "UVService",
    "describe_error",
]
