"""Diagnostics support for Forecast Temperature Accuracy."""

from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant

from .const import CONF_TEMPEST_API_KEY, DOMAIN
from .coordinator import ForecastAccuracyCoordinator
from .models import Statistics


def _stats_summary(stats: Statistics | None) -> dict[str, Any] | None:
    if stats is None:
        return None
    return {
        "mae": stats.mae,
        "bias": stats.bias,
        "accuracy": stats.accuracy,
        "trend": stats.trend.value,
        "record_count": stats.record_count,
    }


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant, entry: ConfigEntry
) -> dict[str, Any]:
    """Return diagnostics for a config entry."""
    coordinator: ForecastAccuracyCoordinator = hass.data[DOMAIN][entry.entry_id]

    # Redact the Tempest API key
    config_data = dict(entry.data)
    api_key = config_data.get(CONF_TEMPEST_API_KEY)
    if isinstance(api_key, str) and api_key:
        config_data[CONF_TEMPEST_API_KEY] = f"***{api_key[-4:]}" if len(api_key) > 8 else "***"

    data = coordinator.data
    primary_log = await coordinator.history.async_load(coordinator.engine.primary_key)
    store: dict[str, Any] = {
        coordinator.engine.primary_key: {
            "records": len(primary_log.records),
            "last_updated": primary_log.last_updated,
        },
    }
    if coordinator.engine.secondary_key is not None:
        secondary_log = await coordinator.history.async_load(coordinator.engine.secondary_key)
        store[coordinator.engine.secondary_key] = {
            "records": len(secondary_log.records),
            "last_updated": secondary_log.last_updated,
        }

    return {
        "config": config_data,
        "options": dict(entry.options),
        "display_unit": coordinator.display_unit,
        "last_error": coordinator.last_error,
        "coordinator_data": (
            {
                "state": data.state.value,
                "source": data.source_name,
                "secondary_source": data.secondary_source_name,
                "current_forecast": data.current_forecast,
                "current_actual": data.current_actual,
                "delta": data.delta,
                "current_forecast_secondary": data.current_forecast_secondary,
                "statistics": _stats_summary(data.statistics),
                "statistics_secondary": _stats_summary(data.statistics_secondary),
            }
            if data
            else {}
        ),
        "store": store,
    }
