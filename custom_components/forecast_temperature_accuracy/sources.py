"""Forecast source adapters for Open-Meteo and Tempest.

Each adapter performs one HTTP request per fetch through an injected aiohttp
session, parses the provider's response shape, and returns temperatures
already normalized to the display unit. Adapters never retry.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any

import aiohttp

from .const import (
    FETCH_TIMEOUT_SECONDS,
    OPEN_METEO_FORECAST_HOURS,
    OPEN_METEO_URL,
    SOURCE_NAME_OPEN_METEO,
    SOURCE_NAME_TEMPEST,
    TEMPEST_URL,
    UNIT_CELSIUS,
    UNIT_FAHRENHEIT,
)
from .exceptions import AuthError, NoData, NotFound, SourceUnavailable
from .models import ForecastPoint, ForecastReading, is_plain_number
from .source_config import CoordinatesSource, DualSource, SourceConfig, StationSource
from .units import normalize_temperature

_LOGGER = logging.getLogger(__name__)


class ForecastSource(ABC):
    """Base class for a forecast provider."""

    name: str = ""
    source_unit: str = UNIT_CELSIUS

    def __init__(self, session: aiohttp.ClientSession, display_unit: str) -> None:
        self._session = session
        self._display_unit = display_unit

    async def async_fetch(self, now: datetime, horizon_hours: int = 0) -> ForecastReading:
        """Fetch the current forecast and, when horizon_hours > 0, the lookahead."""
        payload = await self._async_request(horizon_hours)
        if not isinstance(payload, dict):
            raise SourceUnavailable(f"{self.name} API: unexpected response")
        try:
            return self.parse(payload, now, horizon_hours)
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as err:
            raise SourceUnavailable(f"{self.name} API: malformed response ({err!r})") from err

    async def async_fetch_current(self, now: datetime) -> float:
        """Fetch only the current predicted temperature."""
        reading = await self.async_fetch(now, 0)
        return reading.current

    async def async_fetch_lookahead(self, now: datetime, horizon_hours: int) -> ForecastReading:
        """Fetch the reading including the value at now + horizon_hours."""
        return await self.async_fetch(now, horizon_hours)

    @abstractmethod
    async def _async_request(self, horizon_hours: int) -> Any:
        """Perform the HTTP request and return the decoded JSON body."""

    @abstractmethod
    def parse(self, payload: dict[str, Any], now: datetime, horizon_hours: int) -> ForecastReading:
        """Turn a decoded response into a normalized ForecastReading."""

    def _normalize(self, value: float) -> float:
        return normalize_temperature(float(value), self.source_unit, self._display_unit)

    async def _async_get_json(
        self,
        url: str,
        params: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> tuple[int, Any]:
        """GET url and return (status, json). JSON is None for non-200 answers."""
        try:
            async with self._session.get(
                url,
                params=params,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=FETCH_TIMEOUT_SECONDS),
            ) as resp:
                if resp.status != 200:
                    return resp.status, None
                return resp.status, await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as err:
            raise SourceUnavailable(f"{self.name} API request failed: {err}") from err
        except ValueError as err:
            raise SourceUnavailable(f"{self.name} API returned invalid JSON") from err


def _closest_entry(entries: list[dict[str, Any]], target_ts: float) -> dict[str, Any]:
    """Return the entry whose unix `time` is closest to target_ts.

    Scans the whole list; entries without a numeric time are skipped. Falls
    back to the first entry when none carries a time.
    """
    best = entries[0]
    best_diff: float | None = None
    for entry in entries:
        ts = entry.get("time") if isinstance(entry, dict) else None
        if not is_plain_number(ts) or not ts:
            continue
        diff = abs(ts - target_ts)
        if best_diff is None or diff < best_diff:
            best, best_diff = entry, diff
    return best


def _parse_hourly_time(value: Any) -> datetime | None:
    """Parse an Open-Meteo hourly time string (requested in GMT)."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class OpenMeteoSource(ForecastSource):
    """Coordinate-based forecast from Open-Meteo (Celsius)."""

    name = SOURCE_NAME_OPEN_METEO
    source_unit = UNIT_CELSIUS

    def __init__(
        self,
        session: aiohttp.ClientSession,
        display_unit: str,
        latitude: float,
        longitude: float,
    ) -> None:
        super().__init__(session, display_unit)
        self._latitude = latitude
        self._longitude = longitude

    async def _async_request(self, horizon_hours: int) -> Any:
        params: dict[str, Any] = {
            "latitude": self._latitude,
            "longitude": self._longitude,
            "timezone": "GMT",
            "current": "temperature_2m",
        }
        if horizon_hours > 0:
            params["hourly"] = "temperature_2m"
            params["forecast_hours"] = OPEN_METEO_FORECAST_HOURS

        status, payload = await self._async_get_json(OPEN_METEO_URL, params)
        if status != 200:
            raise SourceUnavailable(f"Open-Meteo API error: {status}")
        return payload

    def parse(self, payload: dict[str, Any], now: datetime, horizon_hours: int) -> ForecastReading:
        current = payload.get("current")
        temp = current.get("temperature_2m") if isinstance(current, dict) else None
        if not is_plain_number(temp):
            raise SourceUnavailable("Invalid Open-Meteo response - no current temperature")

        reading = ForecastReading(current=self._normalize(temp))
        if horizon_hours <= 0:
            return reading

        hourly = payload.get("hourly")
        times = hourly.get("time") if isinstance(hourly, dict) else None
        temps = hourly.get("temperature_2m") if isinstance(hourly, dict) else None
        if not times or not temps:
            _LOGGER.warning("Open-Meteo: no hourly forecast data for lookahead")
            return reading

        target = now + timedelta(hours=horizon_hours)
        parsed = [(_parse_hourly_time(t), v) for t, v in zip(times, temps)]

        lookahead_temp: Any = None
        best_diff: float | None = None
        for ts, value in parsed:
            if ts is None:
                continue
            diff = abs((ts - target).total_seconds())
            if best_diff is None or diff < best_diff:
                lookahead_temp, best_diff = value, diff
        if best_diff is None:
            lookahead_temp = temps[min(horizon_hours, len(temps) - 1)]
        if is_plain_number(lookahead_temp):
            reading.lookahead = self._normalize(lookahead_temp)

        reading.future = [
            ForecastPoint(timestamp=ts, temperature=self._normalize(value))
            for ts, value in parsed
            if ts is not None and is_plain_number(value) and now <= ts <= target
        ]
        return reading


class TempestSource(ForecastSource):
    """Station-based forecast from the Tempest better_forecast API (Fahrenheit)."""

    name = SOURCE_NAME_TEMPEST
    source_unit = UNIT_FAHRENHEIT

    def __init__(
        self,
        session: aiohttp.ClientSession,
        display_unit: str,
        api_key: str,
        station_id: str,
    ) -> None:
        super().__init__(session, display_unit)
        self._api_key = api_key
        self._station_id = station_id

    async def _async_request(self, horizon_hours: int) -> Any:
        params = {
            "station_id": self._station_id,
            "units_temp": "f",
            "units_wind": "mph",
            "units_pressure": "hpa",
            "units_precip": "in",
            "units_distance": "mi",
            "api_key": self._api_key,
        }
        status, payload = await self._async_get_json(
            TEMPEST_URL, params, headers={"accept": "application/json"}
        )
        if status == 401:
            raise AuthError("Tempest API: Invalid API key")
        if status == 404:
            raise NotFound("Tempest API: Station not found")
        if status != 200:
            raise SourceUnavailable(f"Tempest API error: {status}")
        return payload

    def parse(self, payload: dict[str, Any], now: datetime, horizon_hours: int) -> ForecastReading:
        status = payload.get("status")
        if isinstance(status, dict) and status.get("status_code") != 0:
            raise SourceUnavailable(
                f"Tempest API: {status.get('status_message') or 'Unknown error'}"
            )

        forecast = payload.get("forecast")
        hourly = forecast.get("hourly") if isinstance(forecast, dict) else None
        if not hourly or not isinstance(hourly, list):
            raise NoData("Tempest API: No hourly forecast data available")

        now_ts = now.timestamp()
        current = _closest_entry(hourly, now_ts)
        temp = current.get("air_temperature") if isinstance(current, dict) else None
        if not is_plain_number(temp):
            raise NoData("Tempest API: No air_temperature in forecast")

        reading = ForecastReading(current=self._normalize(temp))
        if horizon_hours <= 0:
            return reading

        target_ts = now_ts + horizon_hours * 3600
        lookahead_entry = _closest_entry(hourly, target_ts)
        lookahead_temp = lookahead_entry.get("air_temperature") if isinstance(lookahead_entry, dict) else None
        if is_plain_number(lookahead_temp):
            reading.lookahead = self._normalize(lookahead_temp)

        for entry in hourly:
            if not isinstance(entry, dict):
                continue
            ts = entry.get("time")
            value = entry.get("air_temperature")
            if is_plain_number(ts) and is_plain_number(value) and now_ts <= ts <= target_ts:
                reading.future.append(
                    ForecastPoint(
                        timestamp=datetime.fromtimestamp(ts, tz=timezone.utc),
                        temperature=self._normalize(value),
                    )
                )
        return reading


def build_sources(
    config: SourceConfig,
    session: aiohttp.ClientSession,
    display_unit: str,
) -> tuple[ForecastSource, ForecastSource | None]:
    """Instantiate (primary, secondary) adapters for the configured source variant."""

    def _coordinates(source: CoordinatesSource) -> OpenMeteoSource:
        return OpenMeteoSource(session, display_unit, source.latitude, source.longitude)

    def _station(source: StationSource) -> TempestSource:
        return TempestSource(session, display_unit, source.api_key, source.station_id)

    source = config.source
    if isinstance(source, DualSource):
        return _station(source.primary), _coordinates(source.secondary)
    if isinstance(source, StationSource):
        return _station(source), None
    return _coordinates(source), None
