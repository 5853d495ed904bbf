"""Config flow for Forecast Temperature Accuracy integration."""

from __future__ import annotations

import logging
from typing import Any

import voluptuous as vol
from homeassistant.config_entries import ConfigEntry, ConfigFlow, OptionsFlow
from homeassistant.core import callback
from homeassistant.data_entry_flow import FlowResult
from homeassistant.helpers import selector

from .const import (
    CONF_FORECAST_LOOKAHEAD,
    CONF_HISTORY_DAYS,
    CONF_LATITUDE,
    CONF_LONGITUDE,
    CONF_NAME,
    CONF_REFRESH_INTERVAL,
    CONF_TEMPERATURE_SENSOR,
    CONF_TEMPEST_API_KEY,
    CONF_TEMPEST_STATION_ID,
    CONF_UNIT,
    DEFAULT_FORECAST_LOOKAHEAD,
    DEFAULT_HISTORY_DAYS,
    DEFAULT_NAME,
    DEFAULT_REFRESH_INTERVAL,
    DOMAIN,
    MAX_FORECAST_LOOKAHEAD,
    MAX_HISTORY_DAYS,
    MAX_REFRESH_INTERVAL,
    MIN_HISTORY_DAYS,
    MIN_REFRESH_INTERVAL,
    UNIT_AUTO,
    UNIT_CELSIUS,
    UNIT_FAHRENHEIT,
)
from .source_config import resolve_forecast_source

_LOGGER = logging.getLogger(__name__)


def _unit_selector() -> selector.SelectSelector:
    return selector.SelectSelector(
        selector.SelectSelectorConfig(
            options=[
                selector.SelectOptionDict(value=UNIT_AUTO, label="Auto (from HA settings)"),
                selector.SelectOptionDict(value=UNIT_CELSIUS, label="Celsius"),
                selector.SelectOptionDict(value=UNIT_FAHRENHEIT, label="Fahrenheit"),
            ],
            mode=selector.SelectSelectorMode.DROPDOWN,
        )
    )


def _settings_schema(current: dict[str, Any]) -> dict[Any, Any]:
    """Schema fields shared by the settings step and the options flow."""
    return {
        vol.Required(
            CONF_HISTORY_DAYS,
            default=current.get(CONF_HISTORY_DAYS, DEFAULT_HISTORY_DAYS),
        ): vol.All(vol.Coerce(int), vol.Range(min=MIN_HISTORY_DAYS, max=MAX_HISTORY_DAYS)),
        vol.Required(
            CONF_REFRESH_INTERVAL,
            default=current.get(CONF_REFRESH_INTERVAL, DEFAULT_REFRESH_INTERVAL),
        ): vol.All(vol.Coerce(int), vol.Range(min=MIN_REFRESH_INTERVAL, max=MAX_REFRESH_INTERVAL)),
        vol.Required(
            CONF_FORECAST_LOOKAHEAD,
            default=current.get(CONF_FORECAST_LOOKAHEAD, DEFAULT_FORECAST_LOOKAHEAD),
        ): vol.All(vol.Coerce(int), vol.Range(min=0, max=MAX_FORECAST_LOOKAHEAD)),
    }


class ForecastAccuracyConfigFlow(ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Forecast Temperature Accuracy."""

    VERSION = 1

    def __init__(self) -> None:
        """Initialize the config flow."""
        self._data: dict[str, Any] = {}

    @staticmethod
    @callback
    def async_get_options_flow(config_entry: ConfigEntry) -> OptionsFlow:
        """Get the options flow handler."""
        return ForecastAccuracyOptionsFlow(config_entry)

    async def async_step_user(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 1: Name, temperature sensor and display unit."""
        if user_input is not None:
            self._data.update(user_input)
            return await self.async_step_sources()

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(
                {
                    vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
                    vol.Required(CONF_TEMPERATURE_SENSOR): selector.EntitySelector(
                        selector.EntitySelectorConfig(
                            domain="sensor", device_class="temperature"
                        )
                    ),
                    vol.Optional(CONF_UNIT, default=UNIT_AUTO): _unit_selector(),
                }
            ),
        )

    async def async_step_sources(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 2: Forecast sources (coordinates, Tempest station, or both)."""
        errors: dict[str, str] = {}

        if user_input is not None:
            try:
                resolve_forecast_source(user_input)
            except ValueError:
                errors["base"] = "missing_source"
            else:
                self._data.update(user_input)
                return await self.async_step_settings()

        return self.async_show_form(
            step_id="sources",
            data_schema=vol.Schema(
                {
                    vol.Optional(
                        CONF_LATITUDE,
                        description={"suggested_value": self.hass.config.latitude},
                    ): vol.All(vol.Coerce(float), vol.Range(min=-90, max=90)),
                    vol.Optional(
                        CONF_LONGITUDE,
                        description={"suggested_value": self.hass.config.longitude},
                    ): vol.All(vol.Coerce(float), vol.Range(min=-180, max=180)),
                    vol.Optional(CONF_TEMPEST_API_KEY): str,
                    vol.Optional(CONF_TEMPEST_STATION_ID): str,
                }
            ),
            errors=errors,
        )

    async def async_step_settings(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Step 3: History retention, refresh interval and lookahead."""
        if user_input is not None:
            self._data.update(user_input)
            await self.async_set_unique_id(
                f"{DOMAIN}_{self._data[CONF_TEMPERATURE_SENSOR]}"
            )
            self._abort_if_unique_id_configured()
            return self.async_create_entry(
                title=self._data.get(CONF_NAME, DEFAULT_NAME),
                data=self._data,
            )

        return self.async_show_form(
            step_id="settings",
            data_schema=vol.Schema(_settings_schema({})),
        )


class ForecastAccuracyOptionsFlow(OptionsFlow):
    """Handle options for Forecast Temperature Accuracy."""

    def __init__(self, config_entry: ConfigEntry) -> None:
        """Initialize options flow."""
        self._config_entry = config_entry

    async def async_step_init(
        self, user_input: dict[str, Any] | None = None
    ) -> FlowResult:
        """Manage the settings options."""
        if user_input is not None:
            return self.async_create_entry(title="", data=user_input)

        current = {**self._config_entry.data, **self._config_entry.options}
        schema: dict[Any, Any] = {
            vol.Optional(CONF_UNIT, default=current.get(CONF_UNIT, UNIT_AUTO)): _unit_selector(),
        }
        schema.update(_settings_schema(current))

        return self.async_show_form(step_id="init", data_schema=vol.Schema(schema))
