"""Sensor platform for Forecast Temperature Accuracy."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from homeassistant.components.sensor import (
    SensorDeviceClass,
    SensorEntity,
    SensorEntityDescription,
    SensorStateClass,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import UnitOfTemperature
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, UNIT_FAHRENHEIT
from .coordinator import ForecastAccuracyCoordinator
from .models import ComparisonRecord, ComparisonResult, ForecastPoint, Statistics, Trend


@dataclass(frozen=True, kw_only=True)
class ForecastAccuracySensorDescription(SensorEntityDescription):
    """Describe a Forecast Temperature Accuracy sensor."""

    value_fn: Callable[[ComparisonResult], Any]
    attrs_fn: Callable[[ComparisonResult], dict[str, Any]] | None = None
    in_display_unit: bool = False
    secondary: bool = False


def _round(value: float | None, digits: int = 1) -> float | None:
    return round(value, digits) if value is not None else None


def _records_attr(records: list[ComparisonRecord]) -> list[dict[str, Any]]:
    """Chart-friendly form of the recent comparison window."""
    return [
        {
            "timestamp": r.timestamp.isoformat(),
            "forecast": _round(r.forecast),
            "actual": _round(r.actual),
            "delta": _round(r.delta),
            "forecast_lookahead": _round(r.forecast_lookahead),
        }
        for r in records
    ]


def _future_attr(points: list[ForecastPoint]) -> list[dict[str, Any]]:
    return [{"timestamp": p.timestamp.isoformat(), "temperature": _round(p.temperature)} for p in points]


def _stat(stats: Statistics | None, name: str, digits: int = 1) -> float | None:
    if stats is None:
        return None
    return _round(getattr(stats, name), digits)


def _trend(stats: Statistics | None) -> str:
    return (stats.trend if stats is not None else Trend.STABLE).value


def _stats_attrs(stats: Statistics | None) -> dict[str, Any]:
    if stats is None:
        return {"record_count": 0, "recent_records": []}
    return {
        "record_count": stats.record_count,
        "recent_records": _records_attr(stats.recent_window),
    }


SENSOR_DESCRIPTIONS: tuple[ForecastAccuracySensorDescription, ...] = (
    ForecastAccuracySensorDescription(
        key="forecast_temperature",
        translation_key="forecast_temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        state_class=SensorStateClass.MEASUREMENT,
        in_display_unit=True,
        value_fn=lambda d: _round(d.current_forecast),
        attrs_fn=lambda d: {
            "source": d.source_name,
            "forecast_lookahead": _round(d.forecast_lookahead),
            "future_forecast": _future_attr(d.future_forecast),
        },
    ),
    ForecastAccuracySensorDescription(
        key="actual_temperature",
        translation_key="actual_temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        state_class=SensorStateClass.MEASUREMENT,
        in_display_unit=True,
        value_fn=lambda d: _round(d.current_actual),
    ),
    ForecastAccuracySensorDescription(
        key="forecast_delta",
        translation_key="forecast_delta",
        icon="mdi:thermometer-plus",
        in_display_unit=True,
        value_fn=lambda d: _round(d.delta),
    ),
    ForecastAccuracySensorDescription(
        key="mean_absolute_error",
        translation_key="mean_absolute_error",
        icon="mdi:target",
        state_class=SensorStateClass.MEASUREMENT,
        in_display_unit=True,
        value_fn=lambda d: _stat(d.statistics, "mae"),
        attrs_fn=lambda d: _stats_attrs(d.statistics),
    ),
    ForecastAccuracySensorDescription(
        key="forecast_bias",
        translation_key="forecast_bias",
        icon="mdi:scale-unbalanced",
        in_display_unit=True,
        value_fn=lambda d: _stat(d.statistics, "bias"),
    ),
    ForecastAccuracySensorDescription(
        key="forecast_accuracy",
        translation_key="forecast_accuracy",
        icon="mdi:bullseye-arrow",
        native_unit_of_measurement="%",
        state_class=SensorStateClass.MEASUREMENT,
        value_fn=lambda d: _stat(d.statistics, "accuracy", 0),
    ),
    ForecastAccuracySensorDescription(
        key="accuracy_trend",
        translation_key="accuracy_trend",
        icon="mdi:trending-up",
        device_class=SensorDeviceClass.ENUM,
        options=[t.value for t in Trend],
        value_fn=lambda d: _trend(d.statistics),
    ),
    # Dual-source mode: Open-Meteo reference
    ForecastAccuracySensorDescription(
        key="secondary_forecast_temperature",
        translation_key="secondary_forecast_temperature",
        device_class=SensorDeviceClass.TEMPERATURE,
        state_class=SensorStateClass.MEASUREMENT,
        in_display_unit=True,
        secondary=True,
        value_fn=lambda d: _round(d.current_forecast_secondary),
        attrs_fn=lambda d: {
            "source": d.secondary_source_name,
            "forecast_lookahead": _round(d.forecast_lookahead_secondary),
            "future_forecast": _future_attr(d.future_forecast_secondary),
        },
    ),
    ForecastAccuracySensorDescription(
        key="secondary_forecast_delta",
        translation_key="secondary_forecast_delta",
        icon="mdi:thermometer-plus",
        in_display_unit=True,
        secondary=True,
        value_fn=lambda d: _round(d.delta_secondary),
    ),
    ForecastAccuracySensorDescription(
        key="secondary_mean_absolute_error",
        translation_key="secondary_mean_absolute_error",
        icon="mdi:target",
        state_class=SensorStateClass.MEASUREMENT,
        in_display_unit=True,
        secondary=True,
        value_fn=lambda d: _stat(d.statistics_secondary, "mae"),
        attrs_fn=lambda d: _stats_attrs(d.statistics_secondary),
    ),
    ForecastAccuracySensorDescription(
        key="secondary_forecast_bias",
        translation_key="secondary_forecast_bias",
        icon="mdi:scale-unbalanced",
        in_display_unit=True,
        secondary=True,
        value_fn=lambda d: _stat(d.statistics_secondary, "bias"),
    ),
    ForecastAccuracySensorDescription(
        key="secondary_forecast_accuracy",
        translation_key="secondary_forecast_accuracy",
        icon="mdi:bullseye-arrow",
        native_unit_of_measurement="%",
        state_class=SensorStateClass.MEASUREMENT,
        secondary=True,
        value_fn=lambda d: _stat(d.statistics_secondary, "accuracy", 0),
    ),
    ForecastAccuracySensorDescription(
        key="secondary_accuracy_trend",
        translation_key="secondary_accuracy_trend",
        icon="mdi:trending-up",
        device_class=SensorDeviceClass.ENUM,
        options=[t.value for t in Trend],
        secondary=True,
        value_fn=lambda d: _trend(d.statistics_secondary),
    ),
)


def _device_info(entry: ConfigEntry) -> dict[str, Any]:
    return {
        "identifiers": {(DOMAIN, entry.entry_id)},
        "name": entry.title,
        "manufacturer": "Forecast Temperature Accuracy",
        "model": "Virtual",
    }


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Forecast Temperature Accuracy sensors."""
    coordinator: ForecastAccuracyCoordinator = hass.data[DOMAIN][entry.entry_id]
    dual = coordinator.source_config.is_dual
    entities: list[SensorEntity] = [
        ForecastAccuracySensor(coordinator, description, entry)
        for description in SENSOR_DESCRIPTIONS
        if dual or not description.secondary
    ]
    entities.append(ForecastAccuracyStatusSensor(coordinator, entry))
    async_add_entities(entities)


class ForecastAccuracySensor(
    CoordinatorEntity[ForecastAccuracyCoordinator], SensorEntity
):
    """A Forecast Temperature Accuracy sensor."""

    entity_description: ForecastAccuracySensorDescription
    _attr_has_entity_name = True

    def __init__(
        self,
        coordinator: ForecastAccuracyCoordinator,
        description: ForecastAccuracySensorDescription,
        entry: ConfigEntry,
    ) -> None:
        super().__init__(coordinator)
        self.entity_description = description
        self._attr_unique_id = f"{entry.entry_id}_{description.key}"
        self._attr_device_info = _device_info(entry)
        if description.in_display_unit:
            self._attr_native_unit_of_measurement = (
                UnitOfTemperature.FAHRENHEIT
                if coordinator.display_unit == UNIT_FAHRENHEIT
                else UnitOfTemperature.CELSIUS
            )

    @property
    def available(self) -> bool:
        """Keep showing the last values while a cycle fails."""
        return self.coordinator.data is not None

    @property
    def native_value(self) -> Any:
        """Return the sensor value."""
        if self.coordinator.data is None:
            return None
        return self.entity_description.value_fn(self.coordinator.data)

    @property
    def extra_state_attributes(self) -> dict[str, Any] | None:
        """Return additional attributes."""
        if self.coordinator.data is None or self.entity_description.attrs_fn is None:
            return None
        return self.entity_description.attrs_fn(self.coordinator.data)


class ForecastAccuracyStatusSensor(
    CoordinatorEntity[ForecastAccuracyCoordinator], SensorEntity
):
    """Refresh cycle status with the last error message."""

    _attr_has_entity_name = True
    _attr_translation_key = "status"
    _attr_icon = "mdi:information-outline"

    def __init__(self, coordinator: ForecastAccuracyCoordinator, entry: ConfigEntry) -> None:
        super().__init__(coordinator)
        self._attr_unique_id = f"{entry.entry_id}_status"
        self._attr_device_info = _device_info(entry)

    @property
    def available(self) -> bool:
        return True

    @property
    def native_value(self) -> str:
        if self.coordinator.last_error is not None:
            return "error"
        if self.coordinator.data is None:
            return "idle"
        return self.coordinator.data.state.value

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        data = self.coordinator.data
        return {
            "error": self.coordinator.last_error,
            "source": data.source_name if data else None,
            "secondary_source": data.secondary_source_name if data else None,
            "last_fetch": data.last_fetch.isoformat() if data and data.last_fetch else None,
            "refresh_interval": self.coordinator.source_config.refresh_interval,
            "history_days": self.coordinator.source_config.history_days,
            "forecast_lookahead": self.coordinator.source_config.forecast_lookahead,
        }
