"""Exchange-rate cache for currency conversions.

This module provides:
- A lock-guarded rate table seeded with static fallback rates
- TTL-based refresh from a network quote source (USD based)
- Manual overrides installed by ``setrate`` lines
- A lazily created process-wide default cache that can be replaced for tests
"""

from __future__ import annotations

import copy
import math
import threading
import time
from typing import Callable

import requests

from . import config
from .logging_config import get_logger, safe_log
from .types import CurrencyError

logger = get_logger("currency")

RateTable = dict[str, dict[str, float]]
Fetcher = Callable[[], dict[str, float]]

_FALLBACK_RATES: RateTable = {
    "USD": {
        "EUR": 0.85,
        "GBP": 0.72,
        "CAD": 1.25,
        "JPY": 115.0,
        "AUD": 1.35,
        "CNY": 6.45,
        "INR": 75.0,
        "USD": 1.0,
    },
    "EUR": {
        "USD": 1.18,
        "GBP": 0.86,
        "CAD": 1.47,
        "JPY": 135.0,
        "AUD": 1.59,
        "CNY": 7.60,
        "INR": 88.0,
        "EUR": 1.0,
    },
    "GBP": {
        "USD": 1.39,
        "EUR": 1.16,
        "CAD": 1.70,
        "JPY": 155.0,
        "AUD": 1.85,
        "CNY": 8.85,
        "INR": 102.0,
        "GBP": 1.0,
    },
    "CAD": {
        "USD": 0.80,
        "EUR": 0.68,
        "GBP": 0.59,
        "JPY": 92.0,
        "AUD": 1.10,
        "CNY": 5.20,
        "INR": 60.0,
        "CAD": 1.0,
    },
}


def fallback_rates() -> RateTable:
    """Return a fresh copy of the static fallback rate table."""
    return copy.deepcopy(_FALLBACK_RATES)


def fetch_usd_rates(
    url: str = config.RATE_API_URL, timeout: float = config.RATE_API_TIMEOUT
) -> dict[str, float]:
    """Fetch the latest USD-based quote list.

    Returns:
        Mapping of currency code to units of that currency per 1 USD

    Raises:
        requests.RequestException: On network failure or HTTP error status
        ValueError: If the body is not JSON
        CurrencyError: If the payload does not report success or has no rates
    """
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    payload = response.json()

    if not isinstance(payload, dict) or payload.get("result") != "success":
        raise CurrencyError("Rate source did not report success")

    quotes = payload.get("rates")
    if not isinstance(quotes, dict):
        raise CurrencyError("Could not parse rates from rate source response")

    return {
        code.upper(): float(rate)
        for code, rate in quotes.items()
        if isinstance(rate, (int, float)) and not isinstance(rate, bool)
    }


def build_rate_table(usd_quotes: dict[str, float]) -> RateTable:
    """Derive a full pairwise table from a single USD quote list.

    Every non-USD currency gets its own table computed through USD:
    ``rate(c, t) = rate(USD, t) / rate(USD, c)``.
    """
    bridge = config.BRIDGE_CURRENCY
    usd_rates = {bridge: 1.0}
    usd_rates.update(
        {code: rate for code, rate in usd_quotes.items() if math.isfinite(rate) and rate > 0}
    )

    table: RateTable = {bridge: dict(usd_rates)}
    for currency, usd_rate in usd_rates.items():
        if currency == bridge:
            continue
        currency_rates = {currency: 1.0}
        for target, target_usd_rate in usd_rates.items():
            if target != currency:
                currency_rates[target] = target_usd_rate / usd_rate
        table[currency] = currency_rates
    return table


class RateCache:
    """Pairwise exchange rates with expiry, fallback data and manual overrides.

    A lookup that finds the data older than ``ttl`` refreshes it first while
    holding the lock, so concurrent lookups and overrides wait for the
    network call (bounded by the fetcher's timeout). A failed refresh keeps
    the previous rates and timestamp.

    A successful refresh rebuilds the table from the quote source and
    overwrites every currency it returns, discarding earlier overrides for
    those currencies.
    """

    def __init__(
        self,
        fetcher: Fetcher | None = None,
        ttl: float = config.RATE_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        refresh_on_start: bool = config.RATE_REFRESH_ON_START,
    ):
        self._lock = threading.RLock()
        self._fetcher = fetcher or fetch_usd_rates
        self._ttl = ttl
        self._clock = clock
        self._rates = fallback_rates()
        self._timestamp = clock()
        if refresh_on_start:
            self.refresh()

    @property
    def timestamp(self) -> float:
        return self._timestamp

    def is_expired(self) -> bool:
        return self._clock() - self._timestamp > self._ttl

    def refresh(self) -> bool:
        """Replace rates with fresh quotes. Returns False (keeping old data) on failure."""
        with self._lock:
            try:
                quotes = self._fetcher()
            except (requests.RequestException, ValueError, CurrencyError) as e:
                safe_log("currency", "warning", f"Exchange rate refresh failed: {e}")
                return False

            self._rates.update(build_rate_table(quotes))
            self._timestamp = self._clock()
            logger.info(f"Refreshed exchange rates for {len(quotes)} currencies")
            return True

    def get_exchange_rate(self, from_currency: str, to_currency: str) -> float | None:
        """Return how many ``to_currency`` one ``from_currency`` buys, or None."""
        if from_currency == to_currency:
            return 1.0

        with self._lock:
            if self.is_expired():
                self.refresh()
            return self._lookup(from_currency, to_currency)

    def _lookup(self, from_currency: str, to_currency: str) -> float | None:
        direct = self._rates.get(from_currency, {}).get(to_currency)
        if direct is not None:
            return direct

        bridge = config.BRIDGE_CURRENCY
        if from_currency != bridge and to_currency != bridge:
            bridge_rates = self._rates.get(bridge, {})
            usd_from = bridge_rates.get(from_currency)
            usd_to = bridge_rates.get(to_currency)
            if usd_from and usd_to is not None:
                return (1.0 / usd_from) * usd_to

        logger.debug(f"No exchange rate from {from_currency} to {to_currency}")
        return None

    def set_exchange_rate(self, from_currency: str, to_currency: str, rate: float) -> bool:
        """Install ``rate`` and its exact reciprocal. Non-positive or non-finite rates are rejected."""
        if not (math.isfinite(rate) and rate > 0):
            return False

        with self._lock:
            self._rates.setdefault(from_currency, {})[to_currency] = rate
            self._rates.setdefault(to_currency, {})[from_currency] = 1.0 / rate
        logger.debug(f"Set exchange rate {from_currency}->{to_currency} = {rate}")
        return True

    def snapshot(self) -> RateTable:
        """Return a deep copy of the current rate table."""
        with self._lock:
            return copy.deepcopy(self._rates)


# Process-wide default cache, created on first use
_default_cache: RateCache | None = None
_default_cache_lock = threading.Lock()


def get_default_cache() -> RateCache:
    """Get or initialize the process-wide rate cache."""
    global _default_cache
    with _default_cache_lock:
        if _default_cache is None:
            _default_cache = RateCache()
        return _default_cache


def set_default_cache(cache: RateCache | None) -> None:
    """Replace the process-wide cache (None resets to lazy creation)."""
    global _default_cache
    with _default_cache_lock:
        _default_cache = cache


def get_exchange_rate(from_currency: str, to_currency: str) -> float | None:
    return get_default_cache().get_exchange_rate(from_currency, to_currency)


def set_exchange_rate(from_currency: str, to_currency: str, rate: float) -> bool:
    return get_default_cache().set_exchange_rate(from_currency, to_currency, rate)
