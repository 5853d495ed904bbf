"""DataUpdateCoordinator for Forecast Temperature Accuracy.

Owns the refresh timer, reads the actual temperature from HA and hands each
cycle to the comparison engine.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import Event, HomeAssistant, callback
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.event import EventStateChangedData
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed
from homeassistant.util import dt as dt_util

from .comparison import ComparisonEngine
from .const import DOMAIN
from .exceptions import ForecastSourceError, SensorUnavailable
from .history import HistoryStore
from .models import ComparisonResult
from .source_config import SourceConfig, resolve_source_config
from .sources import build_sources
from .units import resolve_display_unit

_LOGGER = logging.getLogger(__name__)


class ForecastAccuracyCoordinator(DataUpdateCoordinator[ComparisonResult]):
    """Coordinator that runs one forecast comparison cycle per refresh interval."""

    config_entry: ConfigEntry

    def __init__(
        self,
        hass: HomeAssistant,
        entry: ConfigEntry,
        history: HistoryStore,
    ) -> None:
        self.entry = entry
        self.source_config: SourceConfig = resolve_source_config(self._merged_config(entry))
        super().__init__(
            hass,
            _LOGGER,
            name=DOMAIN,
            update_interval=timedelta(minutes=self.source_config.refresh_interval),
        )
        self.history = history
        self.display_unit = resolve_display_unit(
            self.source_config.unit, hass.config.units.temperature_unit
        )

        primary, secondary = build_sources(
            self.source_config, async_get_clientsession(hass), self.display_unit
        )
        self.engine = ComparisonEngine(
            self.source_config,
            history,
            primary,
            secondary,
            display_unit=self.display_unit,
        )

    @staticmethod
    def _merged_config(entry: ConfigEntry) -> Mapping[str, Any]:
        """Config values, preferring options over data."""
        return {**entry.data, **entry.options}

    @property
    def sensor_id(self) -> str:
        return self.source_config.sensor_id

    @property
    def last_error(self) -> str | None:
        """Message of the last failed cycle, or None after a success."""
        if self.last_update_success or self.last_exception is None:
            return None
        return str(self.last_exception)

    def _read_sensor(self) -> tuple[Any, str | None]:
        """Return (raw state, unit) of the actual temperature sensor."""
        state = self.hass.states.get(self.sensor_id)
        if state is None:
            return None, None
        return state.state, state.attributes.get("unit_of_measurement")

    async def _async_update_data(self) -> ComparisonResult:
        """Run one comparison cycle."""
        raw_state, unit = self._read_sensor()
        try:
            return await self.engine.async_refresh(raw_state, unit, dt_util.utcnow())
        except SensorUnavailable as err:
            raise UpdateFailed(str(err)) from err
        except ForecastSourceError as err:
            # The actual reading was taken before the fetch failed
            self.data = self.engine.snapshot()
            self.async_update_listeners()
            raise UpdateFailed(str(err)) from err

    @callback
    def async_handle_sensor_change(self, event: Event[EventStateChangedData]) -> None:
        """Refresh the displayed actual temperature between cycles."""
        new_state = event.data.get("new_state")
        if new_state is None or self.data is None:
            return
        try:
            self.engine.update_actual(
                new_state.state, new_state.attributes.get("unit_of_measurement")
            )
        except SensorUnavailable as err:
            _LOGGER.debug("Ignoring actual temperature update: %s", err)
            return
        # async_set_updated_data would reset the refresh timer
        self.data = self.engine.snapshot()
        self.async_update_listeners()
