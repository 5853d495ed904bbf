"""Deduplicating, retention-bounded comparison history.

No Home Assistant dependencies. The persistence medium is an injected
key-value backend (see storage.py for the HA implementation); this module
only owns key derivation, dedup, pruning and legacy-format detection.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Protocol

from .const import DEDUP_WINDOW_FACTOR, STORAGE_KEY_PREFIX
from .exceptions import PersistenceError
from .models import ComparisonRecord, HistoryLog, is_plain_number, to_epoch_ms

_LOGGER = logging.getLogger(__name__)


class HistoryBackend(Protocol):
    """Key-value medium the history store persists into."""

    async def async_load(self, key: str) -> Any | None:
        """Return the stored payload for key, or None. Raises PersistenceError."""

    async def async_save(self, key: str, data: dict[str, Any]) -> None:
        """Persist the payload for key. Raises PersistenceError."""

    async def async_remove(self, key: str) -> None:
        """Delete the payload for key. Raises PersistenceError."""


def storage_key(sensor_id: str, qualifier: str | None = None) -> str:
    """Derive the storage key for a sensor and optional source qualifier."""
    key = STORAGE_KEY_PREFIX + sensor_id.replace(".", "_")
    if qualifier:
        key = f"{key}_{qualifier}"
    return key


def dedup_window(refresh_interval_minutes: float) -> timedelta:
    """Span after a recorded comparison during which appends are suppressed."""
    return timedelta(minutes=refresh_interval_minutes * DEDUP_WINDOW_FACTOR)


def decode_history(payload: Any) -> HistoryLog:
    """Decode a stored payload into a HistoryLog.

    Anything that is not the current schema (including the legacy shape with
    `pending_forecasts`, or records whose forecast is not a plain number)
    decodes to an empty log. There is no partial conversion.
    """
    if not isinstance(payload, dict):
        return HistoryLog()

    if "pending_forecasts" in payload:
        _LOGGER.info("Legacy forecast history with pending_forecasts found, resetting")
        return HistoryLog()

    raw_records = payload.get("records") or []
    if not isinstance(raw_records, list):
        return HistoryLog()

    if raw_records:
        first = raw_records[0]
        if not isinstance(first, dict) or not is_plain_number(first.get("forecast")):
            _LOGGER.info("Legacy forecast record format found, resetting history")
            return HistoryLog()

    try:
        records = [ComparisonRecord.from_dict(item) for item in raw_records]
        last_updated = int(payload.get("last_updated") or 0)
    except (KeyError, TypeError, ValueError, OverflowError, OSError):
        _LOGGER.warning("Unreadable forecast history, resetting")
        return HistoryLog()

    return HistoryLog(records=records, last_updated=last_updated)


def has_recent_record(log: HistoryLog, now: datetime, window: timedelta) -> bool:
    """Return True if any record is newer than now - window."""
    cutoff = now - window
    return any(record.timestamp > cutoff for record in log.records)


def prune_records(
    records: list[ComparisonRecord], now: datetime, retention_days: float
) -> list[ComparisonRecord]:
    """Keep only records newer than now - retention_days (does not mutate input)."""
    cutoff = now - timedelta(days=retention_days)
    return [record for record in records if record.timestamp > cutoff]


class HistoryStore:
    """Loads, appends to and prunes HistoryLogs in a key-value backend."""

    def __init__(self, backend: HistoryBackend) -> None:
        self._backend = backend
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def async_load(self, key: str) -> HistoryLog:
        """Load the log for key. Storage errors read as an empty log."""
        try:
            payload = await self._backend.async_load(key)
        except PersistenceError as err:
            _LOGGER.warning("Failed to load forecast history %s: %s", key, err)
            return HistoryLog()
        log = decode_history(payload)
        _LOGGER.debug("Loaded %d records from %s", len(log.records), key)
        return log

    async def async_save(self, key: str, log: HistoryLog) -> None:
        """Persist the log for key. Storage errors are logged and ignored."""
        try:
            await self._backend.async_save(key, log.as_dict())
        except PersistenceError as err:
            _LOGGER.warning("Failed to save forecast history %s: %s", key, err)
            return
        _LOGGER.debug("Saved %d records to %s", len(log.records), key)

    async def async_append(
        self, key: str, record: ComparisonRecord, window: timedelta
    ) -> bool:
        """Append a record unless one already exists within the dedup window.

        Returns:
            True if the record was stored.
        """
        async with self._lock(key):
            log = await self.async_load(key)
            appended = self._append(log, record, window)
            if appended:
                log.last_updated = to_epoch_ms(record.timestamp)
                await self.async_save(key, log)
            return appended

    async def async_prune(self, key: str, retention_days: float, now: datetime) -> int:
        """Drop records older than the retention window. Returns the removed count."""
        async with self._lock(key):
            log = await self.async_load(key)
            kept = prune_records(log.records, now, retention_days)
            removed = len(log.records) - len(kept)
            if removed:
                log.records = kept
                await self.async_save(key, log)
            return removed

    async def async_record(
        self,
        key: str,
        record: ComparisonRecord,
        window: timedelta,
        retention_days: float,
        now: datetime,
    ) -> bool:
        """One append cycle: dedup-append, prune (even if skipped), stamp, save."""
        async with self._lock(key):
            log = await self.async_load(key)
            appended = self._append(log, record, window, now)
            log.records = prune_records(log.records, now, retention_days)
            log.last_updated = to_epoch_ms(now)
            await self.async_save(key, log)
            return appended

    async def async_remove(self, key: str) -> None:
        """Delete the stored log for key."""
        try:
            await self._backend.async_remove(key)
        except PersistenceError as err:
            _LOGGER.warning("Failed to remove forecast history %s: %s", key, err)

    @staticmethod
    def _append(
        log: HistoryLog,
        record: ComparisonRecord,
        window: timedelta,
        now: datetime | None = None,
    ) -> bool:
        if has_recent_record(log, now or record.timestamp, window):
            _LOGGER.debug("Skipped recording: recent record exists")
            return False
        log.records.append(record)
        _LOGGER.debug("Added new record, total: %d", len(log.records))
        return True
