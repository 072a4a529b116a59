"""Unit catalog: alias normalization and pairwise conversion factors.

Conversions are only available between explicitly tabulated pairs (each
pair works in both directions); there is no transitive chaining. Factors are
kept as SymPy rationals so the reverse direction is the exact reciprocal of
the forward one, and only become floats once, when the table is built.

Currency codes (three uppercase letters) are not in the table; they are
delegated to the exchange-rate cache.
"""

from __future__ import annotations

import sympy as sp

from . import config
from .currency import RateCache, get_default_cache

R = sp.Rational

# (from, to, factor): value_in_to = value_in_from * factor
_LINEAR_PAIRS = [
    # Length
    ("cm", "m", R(1, 100)),
    ("cm", "mm", R(10)),
    ("in", "cm", R("2.54")),
    ("ft", "m", R("0.3048")),
    ("mm", "m", R(1, 1000)),
    ("km", "m", R(1000)),
    ("mi", "km", R("1.60934")),
    ("mi", "m", R("1609.34")),
    ("in", "mm", R("25.4")),
    ("ft", "in", R(12)),
    ("yd", "ft", R(3)),
    ("yd", "m", R("0.9144")),
    # Area
    ("m2", "cm2", R(10000)),
    ("km2", "m2", R(1000000)),
    ("ha", "m2", R(10000)),
    ("acre", "m2", R("4046.86")),
    ("acre", "ha", R("0.404686")),
    ("mi2", "km2", R("2.58999")),
    # Volume
    ("l", "ml", R(1000)),
    ("ml", "tsp", R("0.2")),
    ("tbsp", "ml", R(15)),
    ("ml", "teasp", R("0.2")),
    ("l", "gal", R("0.264172")),
    ("cup", "ml", R("236.588")),
    ("pt", "ml", R("473.176")),
    ("qt", "ml", R("946.353")),
    ("floz", "ml", R("29.5735")),
    ("cup", "floz", R(8)),
    ("m3", "l", R(1000)),
    ("ft3", "m3", R("0.0283168")),
    # Mass
    ("kg", "g", R(1000)),
    ("lb", "kg", R("0.453592")),
    ("oz", "g", R("28.3495")),
    ("g", "mg", R(1000)),
    ("ton", "kg", R(1000)),
    ("lb", "oz", R(16)),
    ("st", "lb", R(14)),
    ("st", "kg", R("6.35029")),
    # Time
    ("s", "ms", R(1000)),
    ("ms", "us", R(1000)),
    ("us", "ns", R(1000)),
    ("min", "s", R(60)),
    ("h", "min", R(60)),
    ("h", "s", R(3600)),
    ("day", "h", R(24)),
    ("day", "s", R(86400)),
    ("week", "day", R(7)),
    ("month", "day", R("30.44")),  # average month length
    ("year", "day", R("365.25")),  # average year length
    ("year", "month", R(12)),
    ("decade", "year", R(10)),
    ("century", "year", R(100)),
    # Data storage
    ("KB", "B", R(1024)),
    ("MB", "KB", R(1024)),
    ("GB", "MB", R(1024)),
    ("TB", "GB", R(1024)),
    ("PB", "TB", R(1024)),
    ("B", "bit", R(8)),
    # Energy
    ("kJ", "J", R(1000)),
    ("cal", "J", R("4.184")),
    ("kcal", "cal", R(1000)),
    ("kWh", "J", R(3600000)),
    ("eV", "J", R(1602176634, 10**28)),
    # Power
    ("kW", "W", R(1000)),
    ("MW", "kW", R(1000)),
    ("hp", "W", R("745.7")),
    ("hp", "kW", R("0.7457")),
    # Pressure
    ("kPa", "Pa", R(1000)),
    ("bar", "kPa", R(100)),
    ("psi", "kPa", R("6.895")),
    ("atm", "kPa", R("101.325")),
    # Speed
    ("mps", "kmph", R("3.6")),
    ("mph", "kmph", R("1.60934")),
    ("mph", "mps", R("0.44704")),
    ("knot", "kmph", R("1.852")),
]

# (from, to, scale, offset): value_in_to = value_in_from * scale + offset
_AFFINE_PAIRS = [
    ("C", "F", R(9, 5), R(32)),
    ("K", "C", R(1), R("-273.15")),
    ("F", "K", R(5, 9), R("459.67") * R(5, 9)),
]


def _build_conversions() -> dict[tuple[str, str], tuple[float, float]]:
    table = {}
    for source, target, factor in _LINEAR_PAIRS:
        table[(source, target)] = (float(factor), 0.0)
        table[(target, source)] = (float(1 / factor), 0.0)
    for source, target, scale, offset in _AFFINE_PAIRS:
        table[(source, target)] = (float(scale), float(offset))
        # inverse of y = x*s + o is x = y/s - o/s
        table[(target, source)] = (float(1 / scale), float(-offset / scale))
    return table


CONVERSIONS = _build_conversions()

CANONICAL_UNITS = sorted({unit for pair in CONVERSIONS for unit in pair})

DATA_UNITS = frozenset({"B", "KB", "MB", "GB", "TB", "PB"})

KNOWN_CURRENCIES = ("USD", "EUR", "GBP", "CAD", "JPY", "AUD", "CNY", "INR")

UNIT_ALIASES = {
    # Time
    "minute": "min",
    "minutes": "min",
    "mins": "min",
    "second": "s",
    "seconds": "s",
    "sec": "s",
    "secs": "s",
    "hour": "h",
    "hours": "h",
    "hr": "h",
    "hrs": "h",
    "millisecond": "ms",
    "milliseconds": "ms",
    "msec": "ms",
    "msecs": "ms",
    "microsecond": "us",
    "microseconds": "us",
    "usec": "us",
    "usecs": "us",
    "nanosecond": "ns",
    "nanoseconds": "ns",
    "nsec": "ns",
    "nsecs": "ns",
    "days": "day",
    "weeks": "week",
    "months": "month",
    "years": "year",
    "decades": "decade",
    "centuries": "century",
    # Length
    "meter": "m",
    "meters": "m",
    "metre": "m",
    "metres": "m",
    "centimeter": "cm",
    "centimeters": "cm",
    "centimetre": "cm",
    "centimetres": "cm",
    "millimeter": "mm",
    "millimeters": "mm",
    "millimetre": "mm",
    "millimetres": "mm",
    "kilometer": "km",
    "kilometers": "km",
    "kilometre": "km",
    "kilometres": "km",
    "inch": "in",
    "inches": "in",
    "feet": "ft",
    "foot": "ft",
    "yard": "yd",
    "yards": "yd",
    "mile": "mi",
    "miles": "mi",
    # Area
    "hectare": "ha",
    "hectares": "ha",
    "acres": "acre",
    # Mass
    "gram": "g",
    "grams": "g",
    "kilogram": "kg",
    "kilograms": "kg",
    "kgs": "kg",
    "kilo": "kg",
    "kilos": "kg",
    "milligram": "mg",
    "milligrams": "mg",
    "pound": "lb",
    "pounds": "lb",
    "lbs": "lb",
    "ounce": "oz",
    "ounces": "oz",
    "tons": "ton",
    "tonne": "ton",
    "tonnes": "ton",
    "stone": "st",
    "stones": "st",
    # Volume
    "milliliter": "ml",
    "milliliters": "ml",
    "millilitre": "ml",
    "millilitres": "ml",
    "liter": "l",
    "liters": "l",
    "litre": "l",
    "litres": "l",
    "teaspoon": "tsp",
    "teaspoons": "tsp",
    "tablespoon": "tbsp",
    "tablespoons": "tbsp",
    "cups": "cup",
    "pint": "pt",
    "pints": "pt",
    "quart": "qt",
    "quarts": "qt",
    "gallon": "gal",
    "gallons": "gal",
    "fluid ounces": "floz",
    "fluidounces": "floz",
    # Data
    "byte": "B",
    "bytes": "B",
    "kilobyte": "KB",
    "kilobytes": "KB",
    "megabyte": "MB",
    "megabytes": "MB",
    "gigabyte": "GB",
    "gigabytes": "GB",
    "terabyte": "TB",
    "terabytes": "TB",
    "petabyte": "PB",
    "petabytes": "PB",
    "bits": "bit",
    # Temperature
    "celsius": "C",
    "centigrade": "C",
    "fahrenheit": "F",
    "kelvin": "K",
    # Energy
    "joule": "J",
    "joules": "J",
    "kilojoule": "kJ",
    "kilojoules": "kJ",
    "calorie": "cal",
    "calories": "cal",
    "kilocalorie": "kcal",
    "kilocalories": "kcal",
    "kcals": "kcal",
    "kilowatt hours": "kWh",
    "kilowatt-hours": "kWh",
    "electron volts": "eV",
    # Power
    "watt": "W",
    "watts": "W",
    "kilowatt": "kW",
    "kilowatts": "kW",
    "megawatt": "MW",
    "megawatts": "MW",
    "horsepower": "hp",
    # Pressure
    "pascal": "Pa",
    "pascals": "Pa",
    "kilopascal": "kPa",
    "kilopascals": "kPa",
    "bars": "bar",
    "pounds per square inch": "psi",
    "atmosphere": "atm",
    "atmospheres": "atm",
    # Speed
    "meters per second": "mps",
    "metres per second": "mps",
    "kilometers per hour": "kmph",
    "kilometres per hour": "kmph",
    "kph": "kmph",
    "km/h": "kmph",
    "miles per hour": "mph",
    "knots": "knot",
}
UNIT_ALIASES.update({code.lower(): code for code in KNOWN_CURRENCIES})

# Lowercased canonical spelling -> catalog spelling ("kwh" -> "kWh", "c" -> "C")
_CANONICAL_BY_LOWER = {unit.lower(): unit for unit in CANONICAL_UNITS}


def is_currency(unit: str) -> bool:
    """True for currency-shaped units: exactly three uppercase ASCII letters."""
    return bool(config.CURRENCY_CODE_RE.match(unit))


def normalize_unit(unit: str) -> str:
    """Map a unit spelling or alias to its canonical form.

    An input already spelled as a currency code stays a currency code, so
    ``CUP`` (Cuban peso) and ``cup`` (volume) are never conflated. Other
    three-letter alphabetic inputs that are neither aliases nor catalog
    units are treated as currency codes and uppercased.

    Args:
        unit: Unit text as typed (e.g., "Hours", "kph", "eur")

    Returns:
        Canonical spelling (e.g., "h", "kmph", "EUR")
    """
    stripped = unit.strip()
    if is_currency(stripped):
        return stripped

    lowered = stripped.lower()
    if lowered in UNIT_ALIASES:
        return UNIT_ALIASES[lowered]
    if lowered in _CANONICAL_BY_LOWER:
        return _CANONICAL_BY_LOWER[lowered]
    if len(lowered) == 3 and lowered.isascii() and lowered.isalpha():
        return lowered.upper()
    return lowered


def convert_units(
    value: float, from_unit: str, to_unit: str, rates: RateCache | None = None
) -> float | None:
    """Convert ``value`` between two units.

    Args:
        value: Magnitude in ``from_unit``
        from_unit: Source unit (any accepted spelling)
        to_unit: Target unit (any accepted spelling)
        rates: Exchange-rate cache for currency pairs (process default if None)

    Returns:
        Converted magnitude, or None when no tabulated path or rate exists
    """
    source = normalize_unit(from_unit)
    target = normalize_unit(to_unit)

    if source == target:
        return value

    if is_currency(source) and is_currency(target):
        cache = rates if rates is not None else get_default_cache()
        rate = cache.get_exchange_rate(source, target)
        return value * rate if rate is not None else None

    entry = CONVERSIONS.get((source, target))
    if entry is None:
        return None
    scale, offset = entry
    return value * scale + offset
