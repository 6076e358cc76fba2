"""Tests for provider base module."""
from datetime import datetime, timezone

import httpx
import pytest

from app.config import Settings
from providers.base import (
    CONFIGURATION,
    UPSTREAM_STATUS,
    FetchError,
    ProviderError,
    ProviderNotFoundError,
    UVProvider,
    available_providers,
    dig,
    get_provider,
    parse_timestamp,
    safe_float,
    uv_value,
)
from providers.meteomatics import MeteomaticsProvider
from providers.openmeteo import OpenMeteoProvider
from providers.openweathermap import OpenWeatherMapProvider
from providers.waqi import WaqiProvider

DEFAULT = datetime(2000, 1, 1, tzinfo=timezone.utc)


class TestUVProviderProtocol:
    """Tests for UVProvider protocol compliance."""

    @pytest.mark.parametrize("cls", [
        MeteomaticsProvider, OpenMeteoProvider, OpenWeatherMapProvider, WaqiProvider,
    ])
    def test_implements_protocol(self, cls):
        provider = cls()
        assert isinstance(provider, UVProvider)
        assert provider.name
        assert provider.source_label


class TestProviderFactory:
    """Tests for provider factory function."""

    def test_get_provider_openmeteo(self):
        """get_provider returns OpenMeteoProvider for 'openmeteo'."""
        provider = get_provider("openmeteo")
        assert isinstance(provider, OpenMeteoProvider)
        assert provider.name == "openmeteo"

    def test_get_provider_passes_kwargs(self):
        provider = get_provider("meteomatics", base_url="http://localhost:9999")
        assert isinstance(provider, MeteomaticsProvider)
        assert provider.base_url == "http://localhost:9999"

    def test_get_provider_unknown_raises(self):
        """get_provider raises for unknown provider."""
        with pytest.raises(ProviderNotFoundError) as exc_info:
            get_provider("unknown")
        message = str(exc_info.value)
        assert "unknown" in message.lower()
        assert "openmeteo" in message

    def test_available_providers(self):
        """available_providers returns list of provider names."""
        providers = available_providers()
        assert set(providers) == {"meteomatics", "openmeteo", "openweathermap", "waqi"}


class TestProviderClient:
    """Default HTTP client construction."""

    def test_default_client_uses_configured_timeout(self):
        provider = OpenMeteoProvider(settings=Settings(_env_file=None, http_timeout_s=7.5))
        assert provider._client.timeout == httpx.Timeout(7.5)

    def test_default_client_without_settings(self):
        provider = OpenMeteoProvider()
        assert provider._client.timeout == httpx.Timeout(30.0)


class TestProviderErrors:
    """Tests for provider error classes."""

    def test_provider_error_formatting(self):
        """ProviderError formats message with provider name."""
        error = ProviderError("test", "Something went wrong")
        assert "[test]" in str(error)
        assert "Something went wrong" in str(error)

    def test_fetch_error_carries_status(self):
        error = FetchError("meteomatics", UPSTREAM_STATUS, status=503, detail="busy")
        assert isinstance(error, ProviderError)
        assert error.reason == UPSTREAM_STATUS
        assert error.status == 503
        assert str(error) == "[meteomatics] upstream-status (HTTP 503): busy"

    def test_fetch_error_without_status(self):
        error = FetchError("waqi", CONFIGURATION)
        assert error.status is None
        assert str(error) == "[waqi] configuration"


class TestJsonHelpers:
    """Tests for defensive JSON access."""

    def test_dig_nested(self):
        assert dig({"a": [{"b": 1}]}, "a", 0, "b") == 1

    @pytest.mark.parametrize("data,path", [
        ({}, ("a",)),
        ({"a": []}, ("a", 0)),
        ({"a": None}, ("a", "b")),
        ({"a": {"b": 1}}, ("a", 0)),
        ([1], ("a",)),
        (None, ("a",)),
    ])
    def test_dig_absent_returns_default(self, data, path):
        assert dig(data, *path, default="x") == "x"

    def test_dig_null_leaf_returns_default(self):
        assert dig({"a": None}, "a", default=0) == 0

    @pytest.mark.parametrize("value,expected", [
        (3, 3.0), ("4.5", 4.5), (None, None), ("n/a", None), (True, None), ([], None),
    ])
    def test_safe_float(self, value, expected):
        assert safe_float(value) == expected

    @pytest.mark.parametrize("value,expected", [
        (None, 0.0), (-0.2, 0.0), ("6.1", 6.1), (7, 7.0),
    ])
    def test_uv_value(self, value, expected):
        assert uv_value(value) == expected


class TestParseTimestamp:
    """Tests for upstream timestamp parsing."""

    def test_iso_with_z(self):
        assert parse_timestamp("2025-06-21T10:00:00Z", DEFAULT) == datetime(
            2025, 6, 21, 10, tzinfo=timezone.utc
        )

    def test_iso_with_offset_converted_to_utc(self):
        assert parse_timestamp("2025-06-21T12:00:00+02:00", DEFAULT) == datetime(
            2025, 6, 21, 10, tzinfo=timezone.utc
        )

    def test_naive_iso_taken_as_utc(self):
        result = parse_timestamp("2025-06-21T10:00", DEFAULT)
        assert result == datetime(2025, 6, 21, 10, tzinfo=timezone.utc)
        assert result.tzinfo is not None

    def test_epoch_seconds(self):
        assert parse_timestamp(1750500000, DEFAULT) == datetime(
            2025, 6, 21, 10, tzinfo=timezone.utc
        )

    @pytest.mark.parametrize("value", [None, "", "yesterday", True, {"t": 1}])
    def test_unparseable_returns_default(self, value):
        assert parse_timestamp(value, DEFAULT) is DEFAULT
