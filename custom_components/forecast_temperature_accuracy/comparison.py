"""Comparison engine: one refresh cycle, no HA service calls.

Reads the actual value handed in by the coordinator, fetches the configured
forecast source(s), records comparisons into the history store and
recomputes statistics per source.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from .accuracy_analyzer import AccuracyAnalyzer
from .const import SECONDARY_QUALIFIER, UNIT_CELSIUS
from .exceptions import ForecastAccuracyError, ForecastSourceError, SensorUnavailable
from .history import HistoryStore, dedup_window, storage_key
from .models import ComparisonRecord, ComparisonResult, CycleState, ForecastReading
from .source_config import SourceConfig
from .sources import ForecastSource
from .units import normalize_temperature

_LOGGER = logging.getLogger(__name__)

_UNAVAILABLE_STATES = ("unknown", "unavailable")


def _default_now() -> datetime:
    """Fallback for when no `now` is passed."""
    return datetime.now(timezone.utc)


def parse_sensor_state(sensor_id: str, raw_state: Any) -> float:
    """Parse a sensor state into a finite float.

    Raises:
        SensorUnavailable: if the state is missing or non-numeric.
    """
    if raw_state is None:
        raise SensorUnavailable(f"Sensor not found: {sensor_id}")
    if raw_state in _UNAVAILABLE_STATES:
        raise SensorUnavailable(f"Sensor {sensor_id} is {raw_state}")
    try:
        value = float(raw_state)
    except (ValueError, TypeError) as err:
        raise SensorUnavailable(f"Invalid sensor state: {raw_state}") from err
    if not math.isfinite(value):
        raise SensorUnavailable(f"Invalid sensor state: {raw_state}")
    return value


class ComparisonEngine:
    """Runs refresh cycles for one configured sensor and its forecast source(s)."""

    def __init__(
        self,
        config: SourceConfig,
        history: HistoryStore,
        primary: ForecastSource,
        secondary: ForecastSource | None = None,
        display_unit: str = UNIT_CELSIUS,
        analyzer: AccuracyAnalyzer | None = None,
    ) -> None:
        self._config = config
        self._history = history
        self._primary = primary
        self._secondary = secondary
        self._display_unit = display_unit
        self._analyzer = analyzer or AccuracyAnalyzer()
        self._in_flight = False

        self.primary_key = storage_key(config.sensor_id)
        self.secondary_key = (
            storage_key(config.sensor_id, SECONDARY_QUALIFIER) if secondary is not None else None
        )
        self._result = ComparisonResult(
            display_unit=display_unit,
            source_name=primary.name,
            secondary_source_name=secondary.name if secondary is not None else None,
        )

    @property
    def state(self) -> CycleState:
        return self._result.state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def snapshot(self) -> ComparisonResult:
        """Return a copy of the current values without fetching anything."""
        return replace(
            self._result,
            future_forecast=list(self._result.future_forecast),
            future_forecast_secondary=list(self._result.future_forecast_secondary),
        )

    def update_actual(self, raw_state: Any, unit: str | None) -> float:
        """Refresh only the displayed actual temperature. History is untouched."""
        value = parse_sensor_state(self._config.sensor_id, raw_state)
        actual = normalize_temperature(value, unit, self._display_unit)
        self._result.current_actual = actual
        return actual

    async def async_refresh(
        self,
        raw_state: Any,
        unit: str | None,
        now: datetime | None = None,
    ) -> ComparisonResult:
        """Run one refresh cycle.

        Overlapping calls are ignored and get the last snapshot back.

        Raises:
            SensorUnavailable: the actual reading is missing or non-numeric.
            ForecastSourceError: the primary source failed.
        """
        if self._in_flight:
            _LOGGER.debug("Refresh already in flight, ignoring overlapping request")
            return self.snapshot()

        self._in_flight = True
        try:
            return await self._async_run_cycle(raw_state, unit, now or _default_now())
        finally:
            self._in_flight = False
            if self._result.state is not CycleState.COMPUTED:
                self._result.state = CycleState.IDLE

    async def _async_run_cycle(
        self, raw_state: Any, unit: str | None, now: datetime
    ) -> ComparisonResult:
        result = self._result
        result.state = CycleState.FETCHING
        result.error = None
        result.last_fetch = now
        lookahead_hours = self._config.forecast_lookahead

        try:
            actual = self.update_actual(raw_state, unit)
            primary = await self._primary.async_fetch(now, lookahead_hours)
        except ForecastAccuracyError as err:
            result.error = str(err)
            raise

        result.current_forecast = primary.current
        result.forecast_lookahead = primary.lookahead
        result.future_forecast = primary.future

        secondary = await self._async_fetch_secondary(now, lookahead_hours)

        result.state = CycleState.RECORDING
        window = dedup_window(self._config.refresh_interval)
        await self._history.async_record(
            self.primary_key,
            ComparisonRecord.create(now, primary.current, actual, primary.lookahead),
            window,
            self._config.history_days,
            now,
        )
        if secondary is not None and self.secondary_key is not None:
            await self._history.async_record(
                self.secondary_key,
                ComparisonRecord.create(now, secondary.current, actual, secondary.lookahead),
                window,
                self._config.history_days,
                now,
            )

        primary_log = await self._history.async_load(self.primary_key)
        result.statistics = self._analyzer.compute(primary_log.records, now)
        if self.secondary_key is not None:
            secondary_log = await self._history.async_load(self.secondary_key)
            result.statistics_secondary = self._analyzer.compute(secondary_log.records, now)

        result.state = CycleState.COMPUTED
        return self.snapshot()

    async def _async_fetch_secondary(
        self, now: datetime, lookahead_hours: int
    ) -> ForecastReading | None:
        """Fetch the reference source. Failures only null the secondary values."""
        if self._secondary is None:
            return None

        result = self._result
        try:
            reading = await self._secondary.async_fetch(now, lookahead_hours)
        except ForecastSourceError as err:
            _LOGGER.warning("%s secondary fetch failed: %s", self._secondary.name, err)
            result.current_forecast_secondary = None
            result.forecast_lookahead_secondary = None
            result.future_forecast_secondary = []
            return None

        result.current_forecast_secondary = reading.current
        result.forecast_lookahead_secondary = reading.lookahead
        result.future_forecast_secondary = reading.future
        return reading
