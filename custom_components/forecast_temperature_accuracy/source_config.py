"""Resolve config-entry data into an immutable SourceConfig.

No Home Assistant dependencies. The forecast source variant is decided here,
once, and never re-derived from raw config keys during a refresh cycle.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from .const import (
    CONF_FORECAST_LOOKAHEAD,
    CONF_HISTORY_DAYS,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_REFRESH_INTERVAL,
    CONF_TEMPERATURE_SENSOR,
    CONF_TEMPEST_API_KEY,
    CONF_TEMPEST_STATION_ID,
    CONF_UNIT,
    DEFAULT_FORECAST_LOOKAHEAD,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_REFRESH_INTERVAL,
)


@dataclass(frozen=True)
class CoordinatesSource:
    """Coordinate-based provider (Open-Meteo)."""

    latitude: float
    longitude: float


@dataclass(frozen=True)
class StationSource:
    """Station-based provider (Tempest / WeatherFlow)."""

    api_key: str
    station_id: str


@dataclass(frozen=True)
class DualSource:
    """Station forecast as primary, coordinates forecast as secondary reference."""

    primary: StationSource
    secondary: CoordinatesSource


ForecastSourceConfig = Union[CoordinatesSource, StationSource, DualSource]


@dataclass(frozen=True)
class SourceConfig:
    """Per-session configuration of one comparison instance."""

    sensor_id: str
    source: ForecastSourceConfig
    unit: str | None = None
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL  # minutes
    history_days: int = DEFAULT_HISTORY_DAYS
    forecast_lookahead: int = DEFAULT_FORECAST_LOOKAHEAD  # hours, 0 = none

    @property
    def is_dual(self) -> bool:
        return isinstance(self.source, DualSource)


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


def resolve_forecast_source(data: Mapping[str, Any]) -> ForecastSourceConfig:
    """Decide the forecast source variant from raw config values.

    Raises:
        ValueError: if neither a coordinate pair nor a station credential
            pair is complete.
    """
    coordinates: CoordinatesSource | None = None
    station: StationSource | None = None

    lat = data.get(CONF_LATITUDE)
    lon = data.get(CONF_LONGITUDE)
    if _has_value(lat) and _has_value(lon):
        coordinates = CoordinatesSource(latitude=float(lat), longitude=float(lon))

    api_key = data.get(CONF_TEMPEST_API_KEY)
    station_id = data.get(CONF_TEMPEST_STATION_ID)
    if _has_value(api_key) and _has_value(station_id):
        station = StationSource(api_key=str(api_key), station_id=str(station_id))

    if station is not None and coordinates is not None:
        return DualSource(primary=station, secondary=coordinates)
    if station is not None:
        return station
    if coordinates is not None:
        return coordinates
    raise ValueError(
        "A forecast source is required: latitude/longitude (Open-Meteo) "
        "or tempest_api_key/tempest_station_id (Tempest)"
    )


def resolve_source_config(data: Mapping[str, Any]) -> SourceConfig:
    """Build a SourceConfig from merged config-entry data and options.

    Raises:
        ValueError: if the sensor or every forecast source is missing.
    """
    sensor_id = data.get(CONF_TEMPERATURE_SENSOR)
    if not sensor_id:
        raise ValueError("temperature_sensor is required")

    unit = data.get(CONF_UNIT) or None
    return SourceConfig(
        sensor_id=str(sensor_id),
        source=resolve_forecast_source(data),
        unit=str(unit).upper() if unit else None,
        refresh_interval=int(data.get(CONF_REFRESH_INTERVAL) or DEFAULT_REFRESH_INTERVAL),
        history_days=int(data.get(CONF_HISTORY_DAYS) or DEFAULT_HISTORY_DAYS),
        forecast_lookahead=int(data.get(CONF_FORECAST_LOOKAHEAD) or DEFAULT_FORECAST_LOOKAHEAD),
    )
