"""Centralized configuration for Cali.

This module defines:
- Debounce and tick timings for the reactive document
- Exchange-rate cache TTL and network source
- Numeric formatting tolerances
- Regex patterns shared by the parser

Configuration can be overridden via environment variables (prefixed with CALI_).
"""

import os
import re

# Version is defined in pyproject.toml [project] section
try:
    import importlib.metadata

    VERSION = importlib.metadata.version("cali")
except Exception:
    # Fallback if package not installed
    VERSION = "0.9.0"

# Reactive document timings (seconds)
DEBOUNCE_SECONDS = float(os.getenv("CALI_DEBOUNCE_SECONDS", "0.5"))
TICK_SECONDS = float(os.getenv("CALI_TICK_SECONDS", "0.1"))
STATUS_MESSAGE_SECONDS = float(os.getenv("CALI_STATUS_MESSAGE_SECONDS", "3.0"))

# Logging defaults for logging_config.setup_logging(), which the front end
# calls once at startup
LOG_LEVEL = os.getenv("CALI_LOG_LEVEL", "WARNING")
LOG_FILE = os.getenv("CALI_LOG_FILE") or None

# Exchange-rate cache
RATE_CACHE_TTL_SECONDS = float(
    os.getenv("CALI_RATE_CACHE_TTL_SECONDS", str(60 * 60))
)  # one hour
RATE_API_URL = os.getenv("CALI_RATE_API_URL", "https://open.er-api.com/v6/latest/USD")
RATE_API_TIMEOUT = float(os.getenv("CALI_RATE_API_TIMEOUT", "5"))
RATE_REFRESH_ON_START = (
    os.getenv("CALI_RATE_REFRESH_ON_START", "true").lower() == "true"
)
BRIDGE_CURRENCY = "USD"

# Output formatting
ROUND_TRIP_TOLERANCE = float(
    os.getenv("CALI_ROUND_TRIP_TOLERANCE", "1e-10")
)  # accept 2-decimal rendering when it reproduces the value within this
SHORT_DECIMALS = 2
LONG_DECIMALS = 6

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}

# Date arithmetic
DATE_MONTH_DAYS = 30  # months are approximated, not calendar-aware
WEEKDAYS = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

COMMENT_CHAR = "#"

VAR_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
CURRENCY_CODE_RE = re.compile(r"^[A-Z]{3}$")

SETRATE_REGEX = re.compile(
    r"setrate\s+([A-Za-z]{3})\s+(?:to|in)\s+([A-Za-z]{3})\s*=\s*(\d+(?:\.\d+)?)",
    re.IGNORECASE,
)
CONVERSION_REGEX = re.compile(r"(.+)\s+(?:in|to)\s+(.+)")
PERCENT_OF_REGEX = re.compile(r"(.+)%\s+of\s+(.+)")
VARIABLE_OF_REGEX = re.compile(r"(\w+)\s+of\s+(.+)")
OF_WHAT_IS_REGEX = re.compile(r"(.+)\s+of\s+what\s+is\s+(.+)")
DATE_OFFSET_REGEX = re.compile(
    r"next\s+(\w+)(?:\s*([+-])\s*(\d+)\s+(\w+))?", re.IGNORECASE
)
# a sign directly after a digit and "e" belongs to an exponent (1e-5)
ADDITIVE_REGEX = re.compile(r"(.+?)(?<![0-9.][eE])([+\-])(.+)")
MULTIPLICATIVE_REGEX = re.compile(r"(.+?)([*/^%])(.+)")
UNIT_VALUE_REGEX = re.compile(r"(-?\d+(?:\.\d+)?)\s*([a-zA-Z][a-zA-Z0-9]*)")
VARIABLE_CURRENCY_REGEX = re.compile(r"([a-zA-Z][a-zA-Z0-9]*)\s+([A-Z]{3})")
