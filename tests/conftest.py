"""Shared fixtures: keep every test off the network."""

import pytest

from cali_pkg.currency import RateCache, set_default_cache


def offline_fetcher():
    raise AssertionError("tests must not fetch exchange rates")


@pytest.fixture(autouse=True)
def offline_default_cache():
    """Install a fallback-only process cache for each test."""
    cache = RateCache(fetcher=offline_fetcher, refresh_on_start=False)
    set_default_cache(cache)
    yield cache
    set_default_cache(None)
