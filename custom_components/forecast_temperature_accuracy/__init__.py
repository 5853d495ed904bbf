"""Forecast Temperature Accuracy integration for Home Assistant.

Compares forecast temperatures (Open-Meteo and/or Tempest) against a local
sensor and tracks error, bias, accuracy and trend over a rolling history.
"""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady
from homeassistant.helpers.event import async_track_state_change_event

from .const import DOMAIN, PLATFORMS, SECONDARY_QUALIFIER
from .coordinator import ForecastAccuracyCoordinator
from .history import HistoryStore, storage_key
from .source_config import resolve_source_config
from .storage import HassHistoryBackend

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Forecast Temperature Accuracy from a config entry."""
    hass.data.setdefault(DOMAIN, {})

    history = HistoryStore(HassHistoryBackend(hass))
    coordinator = ForecastAccuracyCoordinator(hass, entry, history)

    # A forecast outage still publishes the actual reading; only a missing
    # actual sensor leaves no data to set up with.
    await coordinator.async_refresh()
    if coordinator.data is None:
        raise ConfigEntryNotReady(coordinator.last_error or "No actual temperature available")

    hass.data[DOMAIN][entry.entry_id] = coordinator

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    # Sensor state change -> refresh the displayed actual value only
    entry.async_on_unload(
        async_track_state_change_event(
            hass, [coordinator.sensor_id], coordinator.async_handle_sensor_change
        )
    )
    entry.async_on_unload(entry.add_update_listener(_async_update_listener))

    _LOGGER.info(
        "Forecast Temperature Accuracy setup complete for %s (%s%s)",
        entry.title,
        coordinator.data.source_name,
        " + Open-Meteo reference" if coordinator.source_config.is_dual else "",
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if unload_ok:
        coordinator: ForecastAccuracyCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.async_shutdown()
    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Remove a config entry and its comparison history."""
    try:
        config = resolve_source_config({**entry.data, **entry.options})
    except ValueError:
        _LOGGER.warning("Could not resolve config for %s, history left in place", entry.title)
        return

    history = HistoryStore(HassHistoryBackend(hass))
    await history.async_remove(storage_key(config.sensor_id))
    if config.is_dual:
        await history.async_remove(storage_key(config.sensor_id, SECONDARY_QUALIFIER))


async def _async_update_listener(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle options update."""
    await hass.config_entries.async_reload(entry.entry_id)
