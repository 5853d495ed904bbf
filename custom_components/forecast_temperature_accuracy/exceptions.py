"""Error taxonomy for Forecast Temperature Accuracy.

No Home Assistant dependencies. The coordinator maps these onto UpdateFailed.
"""

from __future__ import annotations


class ForecastAccuracyError(Exception):
    """Base error for the integration."""


class SensorUnavailable(ForecastAccuracyError):
    """The actual temperature sensor has no numeric state."""


class ForecastSourceError(ForecastAccuracyError):
    """A forecast provider could not deliver a usable temperature."""


class SourceUnavailable(ForecastSourceError):
    """Provider unreachable, non-OK response, or API-reported error."""


class AuthError(ForecastSourceError):
    """Provider rejected the credentials."""


class NotFound(ForecastSourceError):
    """Provider does not know the requested station."""


class NoData(ForecastSourceError):
    """Provider answered but without a usable forecast entry."""


class PersistenceError(ForecastAccuracyError):
    """History storage could not be read or written."""
