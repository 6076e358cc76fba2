"""
Application configuration.

Centralized settings with support for:
- Environment variables (UV_ prefix)
- .env file
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class Coordinate:
    """
    Geographic coordinate for UV queries.

    Immutable value object. A new resolution always produces a new value.
    """

    latitude: float
    longitude: float
    label: Optional[str] = None

    def __str__(self) -> str:
        if self.label:
            return f"{self.label} ({self.latitude:.4f}, {self.longitude:.4f})"
        return f"{self.latitude:.4f}, {self.longitude:.4f}"

    def same_point(self, other: "Coordinate", tolerance: float = 1e-4) -> bool:
        """Compare position only (label ignored), within a float tolerance."""
        return (
            abs(self.latitude - other.latitude) <= tolerance
            and abs(self.longitude - other.longitude) <= tolerance
        )


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Priority: constructor args > Environment > .env file > defaults

    Environment variables use UV_ prefix:
    - UV_PROVIDER
    - UV_METEOMATICS_USERNAME, UV_METEOMATICS_PASSWORD
    - UV_OPENWEATHERMAP_API_KEY, UV_WAQI_TOKEN
    - UV_GEOLOCATION_SOURCE, UV_GEOLOCATION_TIMEOUT_S
    """

    model_config = SettingsConfigDict(
        env_prefix="UV_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider selection
    provider: str = Field(default="openmeteo", description="UV data provider")

    # Provider credentials (static, passed through as-is)
    meteomatics_username: Optional[str] = Field(default=None, description="Meteomatics API user")
    meteomatics_password: Optional[str] = Field(default=None, description="Meteomatics API password")
    openweathermap_api_key: Optional[str] = Field(default=None, description="OpenWeatherMap One Call key")
    waqi_token: Optional[str] = Field(default=None, description="WAQI API token")

    # HTTP
    http_timeout_s: float = Field(default=30.0, description="Upstream HTTP timeout in seconds")

    # Location resolution
    geolocation_source: str = Field(default="browser", description="Geolocation source: browser, ip, static")
    geolocation_timeout_s: float = Field(default=5.0, description="Bounding wait for a position fix")
    geolocation_max_age_s: int = Field(default=3600, description="Accept cached positions up to this age")
    fallback_latitude: float = Field(default=59.3293, description="Fallback latitude (default: Stockholm)")
    fallback_longitude: float = Field(default=18.0686, description="Fallback longitude (default: Stockholm)")
    fallback_name: str = Field(default="Stockholm", description="Fallback location name for display")
    home_latitude: Optional[float] = Field(default=None, description="Fixed position for the static source")
    home_longitude: Optional[float] = Field(default=None, description="Fixed position for the static source")
    home_name: Optional[str] = Field(default=None, description="Display name of the fixed position")

    # Snapshot cache
    cache_ttl_s: int = Field(default=300, description="Snapshot cache validity in seconds")

    # Web UI
    port: int = Field(default=8080, description="Web UI port")
    log_level: str = Field(default="INFO", description="Root log level")

    def get_fallback(self) -> Coordinate:
        """Create the fallback Coordinate from settings."""
        return Coordinate(
            latitude=self.fallback_latitude,
            longitude=self.fallback_longitude,
            label=self.fallback_name,
        )

    def get_home(self) -> Optional[Coordinate]:
        """Fixed position if both coordinates are configured."""
        if self.home_latitude is None or self.home_longitude is None:
            return None
        return Coordinate(
            latitude=self.home_latitude,
            longitude=self.home_longitude,
            label=self.home_name,
        )

    def has_meteomatics_credentials(self) -> bool:
        """Check if Meteomatics basic auth is complete."""
        return all([
            self.meteomatics_username,
            self.meteomatics_password,
        ])
