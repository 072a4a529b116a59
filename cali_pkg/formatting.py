"""Result formatting: turns a Value into the string shown next to a line."""

from __future__ import annotations

import math

from .config import (
    CURRENCY_SYMBOLS,
    LONG_DECIMALS,
    ROUND_TRIP_TOLERANCE,
    SHORT_DECIMALS,
)
from .types import Assignment, Date, Error, Number, Percentage, Unit, Value
from .units import is_currency

ERROR_PREFIX = "Error:"


def format_number(val: float) -> str:
    """Format a float for display.

    Whole numbers drop the decimal part. Other values use 2 decimals when
    that reproduces the value within ROUND_TRIP_TOLERANCE, and 6 otherwise.

    Args:
        val: Value to format

    Returns:
        Formatted string (e.g., "12", "0.25", "0.333333")
    """
    if not math.isfinite(val):
        return str(val)
    if val == int(val):
        return str(int(val))

    short = f"{val:.{SHORT_DECIMALS}f}"
    if abs(float(short) - val) < ROUND_TRIP_TOLERANCE:
        return short
    return f"{val:.{LONG_DECIMALS}f}"


def format_unit(val: float, unit: str) -> str:
    number = format_number(val)
    if is_currency(unit) and unit in CURRENCY_SYMBOLS:
        return f"{CURRENCY_SYMBOLS[unit]}{number}"
    return f"{number} {unit}"


def format_value(value: Value) -> str:
    """Render a Value as the result text for its line."""
    if isinstance(value, Number):
        return format_number(value.value)
    if isinstance(value, Percentage):
        return f"{format_number(value.value)}%"
    if isinstance(value, Unit):
        return format_unit(value.value, value.unit)
    if isinstance(value, Date):
        return value.value.isoformat()
    if isinstance(value, Error):
        return f"{ERROR_PREFIX} {value.message}"
    if isinstance(value, Assignment):
        return format_value(value.value)
    raise TypeError(f"Cannot format {type(value).__name__}")


def is_error_text(result: str) -> bool:
    return result.startswith(ERROR_PREFIX)
