"""JSON-based persistent storage for Forecast Temperature Accuracy.

Each history key maps to its own file in HA's .storage directory. Errors
are raised as PersistenceError for the history store to log and absorb.
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import STORAGE_VERSION
from .exceptions import PersistenceError

_LOGGER = logging.getLogger(__name__)


class HassHistoryBackend:
    """Key-value history backend on top of homeassistant.helpers.storage.Store."""

    def __init__(self, hass: HomeAssistant) -> None:
        self._hass = hass
        self._stores: dict[str, Store] = {}

    def _store(self, key: str) -> Store:
        store = self._stores.get(key)
        if store is None:
            store = self._stores[key] = Store(self._hass, STORAGE_VERSION, key)
        return store

    async def async_load(self, key: str) -> Any | None:
        """Load the raw payload stored under key."""
        try:
            return await self._store(key).async_load()
        except (HomeAssistantError, OSError, ValueError) as err:
            raise PersistenceError(str(err)) from err

    async def async_save(self, key: str, data: dict[str, Any]) -> None:
        """Save the payload under key."""
        try:
            await self._store(key).async_save(data)
        except (HomeAssistantError, OSError, ValueError, TypeError) as err:
            raise PersistenceError(str(err)) from err

    async def async_remove(self, key: str) -> None:
        """Remove the storage file for key."""
        try:
            await self._store(key).async_remove()
        except (HomeAssistantError, OSError) as err:
            raise PersistenceError(str(err)) from err
        self._stores.pop(key, None)
        _LOGGER.debug("Removed forecast history %s", key)
