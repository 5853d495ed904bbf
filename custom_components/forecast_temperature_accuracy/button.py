"""Button platform for Forecast Temperature Accuracy."""

from __future__ import annotations

from homeassistant.components.button import ButtonEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.entity_platform import AddEntitiesCallback

from .const import DOMAIN
from .coordinator import ForecastAccuracyCoordinator


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up the Forecast Temperature Accuracy refresh button."""
    coordinator: ForecastAccuracyCoordinator = hass.data[DOMAIN][entry.entry_id]
    async_add_entities([ForecastAccuracyRefreshButton(coordinator, entry)])


class ForecastAccuracyRefreshButton(ButtonEntity):
    """Run a comparison cycle on demand."""

    _attr_has_entity_name = True
    _attr_translation_key = "refresh"
    _attr_icon = "mdi:refresh"

    def __init__(
        self,
        coordinator: ForecastAccuracyCoordinator,
        entry: ConfigEntry,
    ) -> None:
        self.coordinator = coordinator
        self._attr_unique_id = f"{entry.entry_id}_refresh"
        self._attr_device_info = {
            "identifiers": {(DOMAIN, entry.entry_id)},
            "name": entry.title,
            "manufacturer": "Forecast Temperature Accuracy",
            "model": "Virtual",
        }

    async def async_press(self) -> None:
        """Request a refresh; the coordinator's debouncer coalesces rapid presses."""
        await self.coordinator.async_request_refresh()
