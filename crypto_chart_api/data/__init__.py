"""Data layer for the crypto chart API.

This module provides value types, the expiring response cache, the CoinGecko
client and the cache-fill service that ties them together.
"""

from .models import (
    CacheEntry,
    CoinInfo,
    CoinStatistics,
    PriceChangePercent,
    PriceSeries,
    Timeframe,
)
from .exceptions import (
    MarketDataError,
    UpstreamUnavailable,
    UpstreamBadStatus,
    MalformedResponse,
    MissingSection,
    NoData,
    EmptySeries,
)
from .cache import ExpiringCache, CacheConfig

__all__ = [
    'CacheEntry',
    'CoinInfo',
    'CoinStatistics',
    'PriceChangePercent',
    'PriceSeries',
    'Timeframe',
    'MarketDataError',
    'UpstreamUnavailable',
    'UpstreamBadStatus',
    'MalformedResponse',
    'MissingSection',
    'NoData',
    'EmptySeries',
    'ExpiringCache',
    'CacheConfig',
]
