"""Tests for the unit catalog."""

import unittest

import pytest

from cali_pkg.currency import RateCache
from cali_pkg.units import (
    CONVERSIONS,
    KNOWN_CURRENCIES,
    convert_units,
    is_currency,
    normalize_unit,
)


class TestNormalizeUnit(unittest.TestCase):
    """Test alias and case normalization."""

    def test_aliases(self):
        self.assertEqual(normalize_unit("hours"), "h")
        self.assertEqual(normalize_unit("Hours"), "h")
        self.assertEqual(normalize_unit("minutes"), "min")
        self.assertEqual(normalize_unit("kilograms"), "kg")
        self.assertEqual(normalize_unit("kph"), "kmph")
        self.assertEqual(normalize_unit("celsius"), "C")
        self.assertEqual(normalize_unit("gigabytes"), "GB")

    def test_canonical_spellings(self):
        self.assertEqual(normalize_unit("kwh"), "kWh")
        self.assertEqual(normalize_unit("c"), "C")
        self.assertEqual(normalize_unit("m"), "m")
        self.assertEqual(normalize_unit(" kg "), "kg")

    def test_currency_codes(self):
        self.assertEqual(normalize_unit("usd"), "USD")
        self.assertEqual(normalize_unit("EUR"), "EUR")
        # unknown three-letter words are taken as currency codes
        self.assertEqual(normalize_unit("xyz"), "XYZ")

    def test_cup_is_not_cuban_peso(self):
        self.assertEqual(normalize_unit("cup"), "cup")
        self.assertEqual(normalize_unit("CUP"), "CUP")

    def test_unknown_unit_is_lowercased(self):
        self.assertEqual(normalize_unit("Furlongs"), "furlongs")

    def test_is_currency(self):
        self.assertTrue(is_currency("USD"))
        self.assertFalse(is_currency("usd"))
        self.assertFalse(is_currency("US"))
        self.assertFalse(is_currency("USDT"))

    def test_every_known_currency_has_lowercase_alias(self):
        for code in KNOWN_CURRENCIES:
            self.assertEqual(normalize_unit(code.lower()), code)


class TestConversionTable:
    """Test the pairwise conversion table."""

    def test_every_pair_round_trips(self):
        value = 123.456
        for (source, target), _ in CONVERSIONS.items():
            forward = convert_units(value, source, target)
            back = convert_units(forward, target, source)
            assert back == pytest.approx(value, rel=1e-9), (source, target)

    def test_every_pair_has_a_reverse(self):
        for source, target in CONVERSIONS:
            assert (target, source) in CONVERSIONS

    def test_identity(self):
        assert convert_units(5.0, "kg", "kilograms") == 5.0

    def test_temperatures(self):
        assert convert_units(100.0, "C", "F") == pytest.approx(212.0)
        assert convert_units(32.0, "F", "C") == pytest.approx(0.0)
        assert convert_units(0.0, "C", "K") == pytest.approx(273.15)
        assert convert_units(32.0, "F", "K") == pytest.approx(273.15)
        assert convert_units(0.0, "K", "C") == pytest.approx(-273.15)

    def test_linear_examples(self):
        assert convert_units(1.0, "mi", "km") == pytest.approx(1.60934)
        assert convert_units(1.0, "GB", "MB") == pytest.approx(1024.0)
        assert convert_units(1.0, "kWh", "J") == pytest.approx(3600000.0)
        assert convert_units(1.0, "eV", "J") == pytest.approx(1.602176634e-19)
        assert convert_units(36.0, "kmph", "mps") == pytest.approx(10.0)

    def test_missing_pair(self):
        assert convert_units(1.0, "kg", "m") is None
        assert convert_units(1.0, "mi", "mm") is None

    def test_currency_pair_uses_rate_cache(self):
        rates = RateCache(fetcher=dict, refresh_on_start=False)
        rates.set_exchange_rate("USD", "GBP", 0.5)
        assert convert_units(10.0, "usd", "gbp", rates) == pytest.approx(5.0)
        assert convert_units(10.0, "GBP", "USD", rates) == pytest.approx(20.0)

    def test_unknown_currency(self):
        rates = RateCache(fetcher=dict, refresh_on_start=False)
        assert convert_units(1.0, "USD", "XYZ", rates) is None


if __name__ == "__main__":
    unittest.main()
