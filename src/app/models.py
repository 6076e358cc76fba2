"""
Data Transfer Objects (DTOs) for the UV dashboard.

Defines the normalized UV structures every provider maps into,
plus the severity scale used for colour coding.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Tuple

# Hourly forecast window shown on the dashboard
FORECAST_HOURS = 24


class UVSeverity(str, Enum):
    """WHO UV index exposure categories."""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"
    EXTREME = "Extreme"

    @property
    def color(self) -> str:
        return _SEVERITY_COLORS[self]

    @property
    def advice(self) -> str:
        return _SEVERITY_ADVICE[self]


_SEVERITY_COLORS = {
    UVSeverity.LOW: "green-500",
    UVSeverity.MODERATE: "yellow-500",
    UVSeverity.HIGH: "orange-500",
    UVSeverity.VERY_HIGH: "red-500",
    UVSeverity.EXTREME: "purple-600",
}

_SEVERITY_ADVICE = {
    UVSeverity.LOW: "Low danger from UV rays. No protection needed.",
    UVSeverity.MODERATE: "Moderate risk from UV rays. Wear sunscreen.",
    UVSeverity.HIGH: "High risk from UV rays. Wear sunscreen and protective clothing.",
    UVSeverity.VERY_HIGH: (
        "Very high risk from UV rays. Wear sunscreen and protective clothing, "
        "and seek shade during midday hours."
    ),
    UVSeverity.EXTREME: "Extreme risk from UV rays. Avoid being outside during midday hours.",
}


def classify_uv(value: float) -> UVSeverity:
    """
    Map a UV index value to its severity category.

    Thresholds are half-open: [0, 3) Low, [3, 6) Moderate, [6, 8) High,
    [8, 11) Very High, [11, inf) Extreme.
    """
    if value < 3:
        return UVSeverity.LOW
    if value < 6:
        return UVSeverity.MODERATE
    if value < 8:
        return UVSeverity.HIGH
    if value < 11:
        return UVSeverity.VERY_HIGH
    return UVSeverity.EXTREME


@dataclass(frozen=True)
class UVReading:
    """Single UV observation. observed_at is timezone-aware UTC."""
    value: float
    observed_at: datetime

    def to_dict(self) -> dict:
        return {"value": self.value, "observed_at": self.observed_at.isoformat()}


def compute_daily_max(series: Optional[Iterable[UVReading]]) -> Optional[UVReading]:
    """
    Return the reading with the greatest value.

    Ties go to the first occurrence. None for an empty or absent series.
    """
    best: Optional[UVReading] = None
    for reading in series or ():
        if best is None or reading.value > best.value:
            best = reading
    return best


def build_forecast(
    readings: Iterable[UVReading], limit: int = FORECAST_HOURS
) -> Tuple[UVReading, ...]:
    """
    Normalize upstream readings into a forecast series.

    Sorted chronologically (stable), duplicate timestamps dropped
    (first wins), truncated to ``limit`` entries.
    """
    seen = set()
    unique = []
    for reading in readings:
        if reading.observed_at in seen:
            continue
        seen.add(reading.observed_at)
        unique.append(reading)
    unique.sort(key=lambda r: r.observed_at)
    return tuple(unique[:limit])


@dataclass(frozen=True)
class UVSnapshot:
    """
    Normalized result of one provider fetch.

    If forecast is non-empty, daily_max is the first maximum of the
    forecast. Otherwise daily_max comes from the provider or is None.
    """
    current: UVReading
    source_label: str
    daily_max: Optional[UVReading] = None
    forecast: Optional[Tuple[UVReading, ...]] = None

    def __post_init__(self) -> None:
        if not self.source_label:
            raise ValueError("source_label must not be empty")

    @classmethod
    def assemble(
        cls,
        current: UVReading,
        source_label: str,
        forecast: Optional[Iterable[UVReading]] = None,
        independent_max: Optional[UVReading] = None,
    ) -> "UVSnapshot":
        """Build a snapshot, deriving daily_max from the forecast when there is one."""
        series = tuple(forecast) if forecast is not None else ()
        if series:
            return cls(
                current=current,
                source_label=source_label,
                daily_max=compute_daily_max(series),
                forecast=series,
            )
        return cls(
            current=current,
            source_label=source_label,
            daily_max=independent_max,
            forecast=None,
        )

    @property
    def severity(self) -> UVSeverity:
        return classify_uv(self.current.value)

    def to_dict(self) -> dict:
        """Serialize to JSON-compatible primitives, omitting absent fields."""
        result = {
            "current": self.current.to_dict(),
            "source_label": self.source_label,
        }
        if self.daily_max is not None:
            result["daily_max"] = self.daily_max.to_dict()
        if self.forecast is not None:
            result["forecast"] = [r.to_dict() for r in self.forecast]
        return result
