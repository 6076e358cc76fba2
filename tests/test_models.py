"""Tests for UV data models."""
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest
from jsonschema import ValidationError, validate

from app.models import (
    FORECAST_HOURS,
    UVReading,
    UVSeverity,
    UVSnapshot,
    build_forecast,
    classify_uv,
    compute_daily_max,
)

T0 = datetime(2025, 6, 21, 10, 0, tzinfo=timezone.utc)


def _series(*values):
    return [UVReading(value=v, observed_at=T0 + timedelta(hours=i)) for i, v in enumerate(values)]


class TestClassifyUV:
    """Tests for the severity scale."""

    @pytest.mark.parametrize("value,expected", [
        (0.0, UVSeverity.LOW),
        (2.9, UVSeverity.LOW),
        (2.999, UVSeverity.LOW),
        (3.0, UVSeverity.MODERATE),
        (5.999, UVSeverity.MODERATE),
        (6.0, UVSeverity.HIGH),
        (7.999, UVSeverity.HIGH),
        (8.0, UVSeverity.VERY_HIGH),
        (10.999, UVSeverity.VERY_HIGH),
        (11.0, UVSeverity.EXTREME),
        (16.5, UVSeverity.EXTREME),
    ])
    def test_thresholds(self, value, expected):
        """Lower bounds are inclusive, upper bounds exclusive."""
        assert classify_uv(value) is expected

    def test_every_severity_has_color_and_advice(self):
        for severity in UVSeverity:
            assert severity.color
            assert severity.advice

    def test_colors_match_scale(self):
        assert UVSeverity.LOW.color == "green-500"
        assert UVSeverity.EXTREME.color == "purple-600"

    def test_severity_value_is_display_name(self):
        assert UVSeverity.VERY_HIGH.value == "Very High"


class TestComputeDailyMax:
    """Tests for compute_daily_max."""

    def test_returns_greatest_value(self):
        series = _series(1.0, 4.2, 3.3)
        assert compute_daily_max(series) is series[1]

    def test_tie_goes_to_first_occurrence(self):
        """
        GIVEN: Two hours share the maximum
        WHEN: Computing the daily max
        THEN: The earlier reading is returned
        """
        series = _series(2.0, 6.8, 6.8, 1.0)
        result = compute_daily_max(series)
        assert result is series[1]
        assert result.observed_at == T0 + timedelta(hours=1)

    def test_empty_series_is_none(self):
        assert compute_daily_max([]) is None

    def test_absent_series_is_none(self):
        assert compute_daily_max(None) is None

    def test_all_zero_night(self):
        series = _series(0.0, 0.0, 0.0)
        assert compute_daily_max(series) is series[0]


class TestBuildForecast:
    """Tests for forecast normalization."""

    def test_sorts_chronologically(self):
        a, b, c = _series(1.0, 2.0, 3.0)
        assert build_forecast([c, a, b]) == (a, b, c)

    def test_drops_duplicate_timestamps_keeping_first(self):
        first = UVReading(value=1.0, observed_at=T0)
        duplicate = UVReading(value=9.0, observed_at=T0)
        assert build_forecast([first, duplicate]) == (first,)

    def test_truncates_to_forecast_window(self):
        series = _series(*([1.0] * 30))
        result = build_forecast(series)
        assert len(result) == FORECAST_HOURS
        assert result[-1] is series[FORECAST_HOURS - 1]

    def test_empty_input(self):
        assert build_forecast([]) == ()


class TestUVSnapshot:
    """Tests for UVSnapshot."""

    def test_assemble_derives_daily_max_from_forecast(self):
        forecast = _series(3.0, 5.5, 5.5, 2.0)
        independent = UVReading(value=9.9, observed_at=T0)

        snapshot = UVSnapshot.assemble(
            forecast[0], "Test", forecast=forecast, independent_max=independent
        )

        assert snapshot.forecast == tuple(forecast)
        assert snapshot.daily_max is forecast[1]

    def test_assemble_empty_forecast_becomes_absent(self):
        current = UVReading(value=3.0, observed_at=T0)
        snapshot = UVSnapshot.assemble(current, "Test", forecast=[])
        assert snapshot.forecast is None
        assert snapshot.daily_max is None

    def test_assemble_without_forecast_uses_independent_max(self):
        current = UVReading(value=3.0, observed_at=T0)
        independent = UVReading(value=6.9, observed_at=T0 + timedelta(hours=2))
        snapshot = UVSnapshot.assemble(current, "Test", independent_max=independent)
        assert snapshot.forecast is None
        assert snapshot.daily_max is independent

    def test_empty_source_label_rejected(self):
        with pytest.raises(ValueError):
            UVSnapshot(current=UVReading(value=1.0, observed_at=T0), source_label="")

    def test_is_immutable(self):
        snapshot = UVSnapshot(current=UVReading(value=1.0, observed_at=T0), source_label="Test")
        with pytest.raises(FrozenInstanceError):
            snapshot.source_label = "Other"

    def test_severity_follows_current_value(self):
        snapshot = UVSnapshot(current=UVReading(value=8.0, observed_at=T0), source_label="Test")
        assert snapshot.severity is UVSeverity.VERY_HIGH

    def test_to_dict_matches_schema(self, snapshot_schema):
        forecast = _series(3.1, 4.0, 6.8, 6.8, 2.0)
        snapshot = UVSnapshot.assemble(forecast[0], "Meteomatics", forecast=forecast)

        result = snapshot.to_dict()

        validate(instance=result, schema=snapshot_schema)
        assert result["source_label"] == "Meteomatics"
        assert result["current"] == {"value": 3.1, "observed_at": "2025-06-21T10:00:00+00:00"}
        assert result["daily_max"]["observed_at"] == "2025-06-21T12:00:00+00:00"
        assert len(result["forecast"]) == 5

    def test_to_dict_omits_absent_fields(self, snapshot_schema):
        snapshot = UVSnapshot(current=UVReading(value=0.0, observed_at=T0), source_label="Test")
        result = snapshot.to_dict()
        validate(instance=result, schema=snapshot_schema)
        assert "forecast" not in result
        assert "daily_max" not in result

    def test_schema_rejects_empty_forecast(self, snapshot_schema):
        payload = {
            "current": {"value": 1.0, "observed_at": "2025-06-21T10:00:00+00:00"},
            "source_label": "Test",
            "forecast": [],
        }
        with pytest.raises(ValidationError):
            validate(instance=payload, schema=snapshot_schema)
