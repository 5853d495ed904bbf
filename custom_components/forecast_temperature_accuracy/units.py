"""Pure logic for temperature unit normalization.

No Home Assistant dependencies, fully unit-testable.

Unit strings arrive free-form ("°C", "degF", "C", "fahrenheit"). Anything that
cannot be recognized passes through unchanged.
"""

from __future__ import annotations

from .const import UNIT_CELSIUS, UNIT_FAHRENHEIT


def canonical_unit(unit: str | None) -> str | None:
    """Map a free-form unit string to "C", "F", or None if unrecognized."""
    norm = (unit or "").upper().replace("DEG", "").replace("°", "").strip()
    if not norm:
        return None
    if "C" in norm:
        return UNIT_CELSIUS
    if "F" in norm:
        return UNIT_FAHRENHEIT
    return None


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def fahrenheit_to_celsius(value: float) -> float:
    return (value - 32) * 5 / 9


def normalize_temperature(value: float, source_unit: str | None, target_unit: str | None) -> float:
    """Convert a temperature into the target display unit.

    Args:
        value: Temperature in source_unit.
        source_unit: Unit the value is expressed in.
        target_unit: Display unit to convert into.

    Returns:
        The converted value, or the input unchanged when the units match or
        either unit is unrecognized.
    """
    source = canonical_unit(source_unit)
    target = canonical_unit(target_unit)
    if source is None or target is None or source == target:
        return value
    if source == UNIT_CELSIUS:
        return celsius_to_fahrenheit(value)
    return fahrenheit_to_celsius(value)


def resolve_display_unit(configured: str | None, system_unit: str | None = None) -> str:
    """Pick the display unit: configured unit first, then HA's unit system, then Celsius."""
    for candidate in (configured, system_unit):
        unit = canonical_unit(candidate)
        if unit is not None:
            return unit
    return UNIT_CELSIUS
