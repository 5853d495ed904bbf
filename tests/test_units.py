"""Tests for temperature unit normalization: pure logic, no HA deps."""

from __future__ import annotations

import pytest

from forecast_temperature_accuracy.units import (
    canonical_unit,
    celsius_to_fahrenheit,
    fahrenheit_to_celsius,
    normalize_temperature,
    resolve_display_unit,
)


class TestCanonicalUnit:
    """Test free-form unit string recognition."""

    @pytest.mark.parametrize("unit", ["C", "c", "°C", "degC", "DEG C", "celsius"])
    def test_celsius_spellings(self, unit):
        assert canonical_unit(unit) == "C"

    @pytest.mark.parametrize("unit", ["F", "f", "°F", "degF", " F "])
    def test_fahrenheit_spellings(self, unit):
        assert canonical_unit(unit) == "F"

    def test_fahrenheit_word_contains_c(self):
        # "FAHRENHEIT" has no C, "CELSIUS" has no F
        assert canonical_unit("fahrenheit") == "F"

    @pytest.mark.parametrize("unit", [None, "", "°", "K", "kelvin"])
    def test_unrecognized(self, unit):
        assert canonical_unit(unit) is None


class TestConversions:
    """Test the raw C/F formulas."""

    def test_freezing(self):
        assert celsius_to_fahrenheit(0.0) == pytest.approx(32.0)
        assert fahrenheit_to_celsius(32.0) == pytest.approx(0.0)

    def test_fifty_f_is_ten_c(self):
        assert fahrenheit_to_celsius(50.0) == pytest.approx(10.0)

    def test_minus_forty_crosses(self):
        assert celsius_to_fahrenheit(-40.0) == pytest.approx(-40.0)


class TestNormalizeTemperature:
    """Test conversion into the display unit."""

    def test_c_to_f(self):
        assert normalize_temperature(20.0, "°C", "F") == pytest.approx(68.0)

    def test_f_to_c(self):
        assert normalize_temperature(68.0, "°F", "C") == pytest.approx(20.0)

    def test_same_unit_unchanged(self):
        assert normalize_temperature(21.5, "°C", "C") == 21.5

    def test_unknown_source_passes_through(self):
        assert normalize_temperature(300.0, "K", "C") == 300.0

    def test_missing_source_passes_through(self):
        assert normalize_temperature(18.0, None, "F") == 18.0

    def test_unknown_target_passes_through(self):
        assert normalize_temperature(18.0, "C", "") == 18.0


class TestResolveDisplayUnit:
    """Test display unit precedence: configured, HA system, Celsius."""

    def test_configured_wins(self):
        assert resolve_display_unit("F", "°C") == "F"

    def test_system_unit_when_not_configured(self):
        assert resolve_display_unit(None, "°F") == "F"

    def test_default_celsius(self):
        assert resolve_display_unit(None, None) == "C"

    def test_unrecognized_configured_falls_back(self):
        assert resolve_display_unit("K", "°F") == "F"
