"""Pure logic for forecast accuracy statistics.

No Home Assistant dependencies, fully unit-testable.

delta = forecast - actual, so a positive bias means forecasts run high.
Thresholds are fixed: a comparison within 2 degrees counts as accurate, and
the trend flips only when the 24h MAE moves by more than 0.5 degrees.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from .const import (
    ACCURATE_THRESHOLD,
    RECENT_WINDOW_SIZE,
    TREND_MIN_RECORDS,
    TREND_THRESHOLD,
    TREND_WINDOW_HOURS,
)
from .models import ComparisonRecord, Statistics, Trend


def mean_absolute_error(records: Sequence[ComparisonRecord]) -> float | None:
    if not records:
        return None
    return sum(abs(r.delta) for r in records) / len(records)


def mean_bias(records: Sequence[ComparisonRecord]) -> float | None:
    if not records:
        return None
    return sum(r.delta for r in records) / len(records)


def accuracy_pct(records: Sequence[ComparisonRecord]) -> float | None:
    """Percentage of comparisons with |delta| within ACCURATE_THRESHOLD."""
    if not records:
        return None
    accurate = sum(1 for r in records if abs(r.delta) <= ACCURATE_THRESHOLD)
    return accurate / len(records) * 100


def classify_trend(recent_mae: float, previous_mae: float) -> Trend:
    """Classify the change between two MAE values."""
    diff = recent_mae - previous_mae
    if diff < -TREND_THRESHOLD:
        return Trend.IMPROVING
    if diff > TREND_THRESHOLD:
        return Trend.DEGRADING
    return Trend.STABLE


class AccuracyAnalyzer:
    """Computes summary statistics over a comparison history."""

    def trend(self, records: Sequence[ComparisonRecord], now: datetime) -> Trend:
        """Compare the last 24h MAE against the 24h before it.

        Either window holding fewer than 2 records yields STABLE.
        """
        one_day_ago = now - timedelta(hours=TREND_WINDOW_HOURS)
        two_days_ago = now - timedelta(hours=2 * TREND_WINDOW_HOURS)

        recent = [r for r in records if r.timestamp > one_day_ago]
        previous = [r for r in records if two_days_ago < r.timestamp <= one_day_ago]

        if len(recent) < TREND_MIN_RECORDS or len(previous) < TREND_MIN_RECORDS:
            return Trend.STABLE
        return classify_trend(mean_absolute_error(recent), mean_absolute_error(previous))

    def compute(self, records: Sequence[ComparisonRecord], now: datetime) -> Statistics:
        """Compute statistics over the full retained record set."""
        if not records:
            return Statistics()

        return Statistics(
            mae=mean_absolute_error(records),
            bias=mean_bias(records),
            accuracy=accuracy_pct(records),
            trend=self.trend(records, now),
            record_count=len(records),
            recent_window=list(records[-RECENT_WINDOW_SIZE:]),
        )
