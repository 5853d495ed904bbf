"""Data models for the Forecast Temperature Accuracy integration."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def to_epoch_ms(value: datetime) -> int:
    """Convert an aware datetime to epoch milliseconds."""
    return int(round(value.timestamp() * 1000))


def from_epoch_ms(value: float) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def is_plain_number(value: Any) -> bool:
    """Return True for int/float values that are not bools."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class Trend(Enum):
    """Short-term direction of the forecast error."""

    IMPROVING = "improving"
    DEGRADING = "degrading"
    STABLE = "stable"


class CycleState(Enum):
    """Refresh cycle states of the comparison engine."""

    IDLE = "idle"
    FETCHING = "fetching"
    RECORDING = "recording"
    COMPUTED = "computed"


@dataclass(frozen=True)
class ComparisonRecord:
    """One forecast-vs-actual comparison.

    `delta` is fixed at creation time and never recomputed.
    """

    timestamp: datetime
    forecast: float
    actual: float
    delta: float
    forecast_lookahead: float | None = None

    @classmethod
    def create(
        cls,
        timestamp: datetime,
        forecast: float,
        actual: float,
        forecast_lookahead: float | None = None,
    ) -> ComparisonRecord:
        """Build a record, deriving delta as forecast - actual."""
        return cls(
            timestamp=timestamp,
            forecast=forecast,
            actual=actual,
            delta=forecast - actual,
            forecast_lookahead=forecast_lookahead,
        )

    def as_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return {
            "timestamp": to_epoch_ms(self.timestamp),
            "forecast": self.forecast,
            "forecastLookahead": self.forecast_lookahead,
            "actual": self.actual,
            "delta": self.delta,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ComparisonRecord:
        """Deserialize a persisted record.

        Raises:
            KeyError, TypeError, ValueError: on a malformed record.
        """
        forecast = data["forecast"]
        actual = data["actual"]
        delta = data["delta"]
        for value in (forecast, actual, delta):
            if not is_plain_number(value):
                raise TypeError(f"Non-numeric record field: {value!r}")
        lookahead = data.get("forecastLookahead")
        if lookahead is not None and not is_plain_number(lookahead):
            raise TypeError(f"Non-numeric lookahead: {lookahead!r}")
        return cls(
            timestamp=from_epoch_ms(float(data["timestamp"])),
            forecast=float(forecast),
            actual=float(actual),
            delta=float(delta),
            forecast_lookahead=float(lookahead) if lookahead is not None else None,
        )


@dataclass
class HistoryLog:
    """Ordered comparison records for one storage key."""

    records: list[ComparisonRecord] = field(default_factory=list)
    last_updated: int = 0  # epoch ms, 0 = never

    def as_dict(self) -> dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return {
            "records": [record.as_dict() for record in self.records],
            "last_updated": self.last_updated,
        }


@dataclass
class Statistics:
    """Summary metrics derived from a HistoryLog. Never persisted."""

    mae: float | None = None
    bias: float | None = None
    accuracy: float | None = None
    trend: Trend = Trend.STABLE
    record_count: int = 0
    recent_window: list[ComparisonRecord] = field(default_factory=list)


@dataclass(frozen=True)
class ForecastPoint:
    """A single future hourly forecast value."""

    timestamp: datetime
    temperature: float


@dataclass
class ForecastReading:
    """Normalized output of one forecast source fetch."""

    current: float
    lookahead: float | None = None
    future: list[ForecastPoint] = field(default_factory=list)


@dataclass
class ComparisonResult:
    """Values handed to the entities after a cycle (or an actual-only update)."""

    display_unit: str
    source_name: str
    secondary_source_name: str | None = None
    state: CycleState = CycleState.IDLE
    error: str | None = None
    last_fetch: datetime | None = None

    current_actual: float | None = None
    current_forecast: float | None = None
    forecast_lookahead: float | None = None
    future_forecast: list[ForecastPoint] = field(default_factory=list)
    statistics: Statistics | None = None

    current_forecast_secondary: float | None = None
    forecast_lookahead_secondary: float | None = None
    future_forecast_secondary: list[ForecastPoint] = field(default_factory=list)
    statistics_secondary: Statistics | None = None

    @property
    def delta(self) -> float | None:
        """Current forecast minus current actual."""
        if self.current_forecast is None or self.current_actual is None:
            return None
        return self.current_forecast - self.current_actual

    @property
    def delta_secondary(self) -> float | None:
        """Current secondary forecast minus current actual."""
        if self.current_forecast_secondary is None or self.current_actual is None:
            return None
        return self.current_forecast_secondary - self.current_actual
