"""Tests for the comparison engine: fake sources, in-memory history, no HA deps."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from forecast_temperature_accuracy.comparison import ComparisonEngine, parse_sensor_state
from forecast_temperature_accuracy.exceptions import (
    NoData,
    SensorUnavailable,
    SourceUnavailable,
)
from forecast_temperature_accuracy.history import HistoryStore
from forecast_temperature_accuracy.models import (
    CycleState,
    ForecastPoint,
    ForecastReading,
    Trend,
)
from forecast_temperature_accuracy.source_config import (
    CoordinatesSource,
    DualSource,
    SourceConfig,
    StationSource,
)
from forecast_temperature_accuracy.sources import OpenMeteoSource

from conftest import NOW

SENSOR = "sensor.outdoor"
PRIMARY_KEY = "forecast_temperature_accuracy.sensor_outdoor"
SECONDARY_KEY = PRIMARY_KEY + "_openmeteo"


def _source(name: str, current: float = 22.0, lookahead: float | None = None) -> MagicMock:
    source = MagicMock()
    source.name = name
    source.async_fetch = AsyncMock(
        return_value=ForecastReading(current=current, lookahead=lookahead)
    )
    return source


def _engine(history: HistoryStore, primary, secondary=None, **config_kwargs) -> ComparisonEngine:
    if secondary is None:
        source = CoordinatesSource(50.0, 14.0)
    else:
        source = DualSource(primary=StationSource("k", "1"), secondary=CoordinatesSource(50.0, 14.0))
    config = SourceConfig(sensor_id=SENSOR, source=source, **config_kwargs)
    return ComparisonEngine(config, history, primary, secondary, display_unit="C")


class TestParseSensorState:
    """Test actual sensor state parsing."""

    def test_numeric_string(self):
        assert parse_sensor_state(SENSOR, "21.4") == pytest.approx(21.4)

    def test_number(self):
        assert parse_sensor_state(SENSOR, 18) == 18.0

    def test_missing_sensor(self):
        with pytest.raises(SensorUnavailable, match="Sensor not found: sensor.outdoor"):
            parse_sensor_state(SENSOR, None)

    @pytest.mark.parametrize("state", ["unknown", "unavailable"])
    def test_unavailable_states(self, state):
        with pytest.raises(SensorUnavailable):
            parse_sensor_state(SENSOR, state)

    @pytest.mark.parametrize("state", ["warm", "", "nan", "inf"])
    def test_non_numeric(self, state):
        with pytest.raises(SensorUnavailable, match="Invalid sensor state"):
            parse_sensor_state(SENSOR, state)


class TestRefreshCycle:
    """Test a full fetch-record-compute cycle."""

    @pytest.mark.asyncio
    async def test_first_cycle(self, history_store, backend):
        engine = _engine(history_store, _source("Open-Meteo", current=22.0))

        result = await engine.async_refresh("20", "°C", NOW)

        assert result.state is CycleState.COMPUTED
        assert result.error is None
        assert result.last_fetch == NOW
        assert result.current_actual == 20.0
        assert result.current_forecast == 22.0
        assert result.delta == pytest.approx(2.0)
        assert result.statistics.mae == pytest.approx(2.0)
        assert result.statistics.accuracy == 100.0
        assert result.statistics.record_count == 1
        assert result.statistics.trend is Trend.STABLE
        assert result.statistics_secondary is None
        assert len(backend.data[PRIMARY_KEY]["records"]) == 1

    @pytest.mark.asyncio
    async def test_actual_converted_to_display_unit(self, history_store):
        engine = _engine(history_store, _source("Open-Meteo", current=20.0))

        result = await engine.async_refresh("68", "°F", NOW)

        assert result.current_actual == pytest.approx(20.0)
        assert result.delta == pytest.approx(0.0, abs=1e-9)

    @pytest.mark.asyncio
    async def test_lookahead_passed_and_recorded(self, history_store, backend):
        primary = _source("Open-Meteo", current=22.0, lookahead=25.0)
        primary.async_fetch.return_value.future = [ForecastPoint(NOW, 22.0)]
        engine = _engine(history_store, primary, forecast_lookahead=3)

        result = await engine.async_refresh("20", "°C", NOW)

        primary.async_fetch.assert_awaited_once_with(NOW, 3)
        assert result.forecast_lookahead == 25.0
        assert result.future_forecast == [ForecastPoint(NOW, 22.0)]
        assert backend.data[PRIMARY_KEY]["records"][0]["forecastLookahead"] == 25.0

    @pytest.mark.asyncio
    async def test_repeated_refresh_within_window_not_recorded(self, history_store):
        engine = _engine(history_store, _source("Open-Meteo"), refresh_interval=60)

        await engine.async_refresh("20", "°C", NOW)
        result = await engine.async_refresh("20", "°C", NOW + timedelta(minutes=30))

        assert result.statistics.record_count == 1

    @pytest.mark.asyncio
    async def test_refresh_after_window_recorded(self, history_store):
        engine = _engine(history_store, _source("Open-Meteo"), refresh_interval=60)

        await engine.async_refresh("20", "°C", NOW)
        result = await engine.async_refresh("21", "°C", NOW + timedelta(minutes=60))

        assert result.statistics.record_count == 2
        assert result.statistics.mae == pytest.approx(1.5)

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, history_store):
        primary = _source("Open-Meteo")
        primary.async_fetch.return_value.future = [ForecastPoint(NOW, 22.0)]
        engine = _engine(history_store, primary)

        result = await engine.async_refresh("20", "°C", NOW)
        result.future_forecast.clear()

        assert engine.snapshot().future_forecast == [ForecastPoint(NOW, 22.0)]


class TestFailures:
    """Test error propagation and partial results."""

    @pytest.mark.asyncio
    async def test_sensor_unavailable(self, history_store, backend):
        primary = _source("Open-Meteo")
        engine = _engine(history_store, primary)

        with pytest.raises(SensorUnavailable):
            await engine.async_refresh("unavailable", "°C", NOW)

        primary.async_fetch.assert_not_awaited()
        assert engine.state is CycleState.IDLE
        assert engine.snapshot().error == "Sensor sensor.outdoor is unavailable"
        assert backend.data == {}

    @pytest.mark.asyncio
    async def test_primary_failure_keeps_actual(self, history_store, backend):
        primary = _source("Tempest")
        primary.async_fetch.side_effect = SourceUnavailable("Tempest API error: 500")
        engine = _engine(history_store, primary)

        with pytest.raises(SourceUnavailable):
            await engine.async_refresh("19.5", "°C", NOW)

        snapshot = engine.snapshot()
        assert snapshot.current_actual == 19.5
        assert snapshot.current_forecast is None
        assert snapshot.error == "Tempest API error: 500"
        assert snapshot.state is CycleState.IDLE
        assert backend.data == {}

    @pytest.mark.asyncio
    async def test_error_cleared_by_next_success(self, history_store):
        primary = _source("Tempest")
        primary.async_fetch.side_effect = [
            NoData("Tempest API: No hourly forecast data available"),
            ForecastReading(current=22.0),
        ]
        engine = _engine(history_store, primary)

        with pytest.raises(NoData):
            await engine.async_refresh("20", "°C", NOW)
        result = await engine.async_refresh("20", "°C", NOW)

        assert result.error is None
        assert result.state is CycleState.COMPUTED


class TestDualSource:
    """Test primary plus reference source."""

    @pytest.mark.asyncio
    async def test_both_recorded(self, history_store, backend):
        engine = _engine(
            history_store,
            _source("Tempest", current=22.0),
            _source("Open-Meteo", current=19.0),
        )

        result = await engine.async_refresh("20", "°C", NOW)

        assert engine.secondary_key == SECONDARY_KEY
        assert result.source_name == "Tempest"
        assert result.secondary_source_name == "Open-Meteo"
        assert result.delta == pytest.approx(2.0)
        assert result.delta_secondary == pytest.approx(-1.0)
        assert result.statistics.bias == pytest.approx(2.0)
        assert result.statistics_secondary.bias == pytest.approx(-1.0)
        assert backend.data[SECONDARY_KEY]["records"][0]["forecast"] == 19.0

    @pytest.mark.asyncio
    async def test_secondary_failure_tolerated(self, history_store, backend):
        secondary = _source("Open-Meteo")
        secondary.async_fetch.side_effect = SourceUnavailable("Open-Meteo API error: 502")
        engine = _engine(history_store, _source("Tempest", current=22.0), secondary)

        result = await engine.async_refresh("20", "°C", NOW)

        assert result.state is CycleState.COMPUTED
        assert result.error is None
        assert result.current_forecast == 22.0
        assert result.current_forecast_secondary is None
        assert result.delta_secondary is None
        assert result.statistics.record_count == 1
        assert result.statistics_secondary.record_count == 0
        assert SECONDARY_KEY not in backend.data

    @pytest.mark.asyncio
    async def test_malformed_secondary_body_tolerated(self, history_store, backend, make_session):
        session = make_session(
            {"current": {"temperature_2m": 19.0}, "hourly": {"time": 5, "temperature_2m": [1.0]}}
        )
        secondary = OpenMeteoSource(session, "C", 50.0, 14.0)
        engine = _engine(
            history_store,
            _source("Tempest", current=22.0, lookahead=23.0),
            secondary,
            forecast_lookahead=3,
        )

        result = await engine.async_refresh("20", "°C", NOW)

        assert result.state is CycleState.COMPUTED
        assert result.current_forecast == 22.0
        assert result.current_forecast_secondary is None
        assert len(backend.data[PRIMARY_KEY]["records"]) == 1
        assert SECONDARY_KEY not in backend.data

    @pytest.mark.asyncio
    async def test_single_source_has_no_secondary_key(self, history_store):
        engine = _engine(history_store, _source("Open-Meteo"))
        assert engine.secondary_key is None


class TestActualOnlyUpdate:
    """Test sensor-change updates that skip fetching and recording."""

    def test_update_actual(self, history_store, backend):
        primary = _source("Open-Meteo")
        engine = _engine(history_store, primary)

        assert engine.update_actual("50", "°F") == pytest.approx(10.0)
        assert engine.snapshot().current_actual == pytest.approx(10.0)
        primary.async_fetch.assert_not_called()
        assert backend.saves == 0

    def test_update_actual_invalid(self, history_store):
        engine = _engine(history_store, _source("Open-Meteo"))
        with pytest.raises(SensorUnavailable):
            engine.update_actual("unknown", "°C")


class TestSingleFlight:
    """Test that overlapping refreshes do not start a second cycle."""

    @pytest.mark.asyncio
    async def test_overlapping_refresh_ignored(self, history_store):
        gate = asyncio.Event()

        async def _slow_fetch(now, horizon_hours):
            await gate.wait()
            return ForecastReading(current=22.0)

        primary = _source("Open-Meteo")
        primary.async_fetch = AsyncMock(side_effect=_slow_fetch)
        engine = _engine(history_store, primary)

        task = asyncio.create_task(engine.async_refresh("20", "°C", NOW))
        await asyncio.sleep(0)
        assert engine.in_flight

        overlapped = await engine.async_refresh("20", "°C", NOW)
        assert overlapped.state is CycleState.FETCHING
        assert primary.async_fetch.await_count == 1

        gate.set()
        result = await task

        assert result.state is CycleState.COMPUTED
        assert not engine.in_flight
        assert primary.async_fetch.await_count == 1
