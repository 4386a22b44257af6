"""
Pytest configuration and shared fixtures for the test suite.

This module provides a controllable clock, provider payloads shaped like
CoinGecko responses, and pre-wired cache/service objects with a mocked
upstream client.
"""

import tempfile
from datetime import datetime, timezone, timedelta
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from click.testing import CliRunner

from crypto_chart_api.data.cache import ExpiringCache, CacheConfig
from crypto_chart_api.data.clients.coingecko import CoinGeckoClient
from crypto_chart_api.data.models import CoinStatistics, PriceSeries, Timeframe
from crypto_chart_api.data.service import MarketDataService
from crypto_chart_api.visualization.charts import PriceChartRenderer


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    """Create a fake clock starting at 2024-01-01 UTC."""
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Create a cache driven by the fake clock, without background sweep."""
    return ExpiringCache(CacheConfig(default_ttl=300, enable_sweep=False), clock=clock)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cli_runner():
    """Create a Click CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def market_chart_payload():
    """Mock response for the market_chart endpoint."""
    return {
        "prices": [[0, 100.0], [1, 105.5], [2, 98.2]],
        "market_caps": [[0, 1.0e9], [1, 1.1e9], [2, 0.9e9]],
        "total_volumes": [[0, 5.0e7], [1, 5.5e7], [2, 4.9e7]],
    }


@pytest.fixture
def coin_detail_payload():
    """Mock response for the coins/{id} endpoint."""
    return {
        "id": "bitcoin",
        "symbol": "btc",
        "name": "Bitcoin",
        "market_data": {
            "market_cap": {"usd": 1300000000000, "eur": 1200000000000},
            "total_volume": {"usd": 35000000000},
            "circulating_supply": 19600000.0,
            "total_supply": 21000000.0,
            "ath": {"usd": 73738},
            "ath_date": {"usd": "2024-03-14T07:10:36.635Z"},
            "price_change_percentage_24h": 1.25,
            "price_change_percentage_7d": -3.5,
            "price_change_percentage_30d": 8.75,
            "price_change_percentage_1y": 120.4,
        },
    }


@pytest.fixture
def sample_series():
    """Sample one-day price series."""
    return PriceSeries(symbol="bitcoin", timeframe=Timeframe.DAY_1, prices=(100.0, 105.5, 98.2))


@pytest.fixture
def sample_statistics(coin_detail_payload):
    """Sample statistics decoded from the detail payload."""
    return CoinStatistics.from_market_data(coin_detail_payload["market_data"])


@pytest.fixture
def mock_client(sample_series, sample_statistics):
    """Create a mocked CoinGecko client."""
    client = MagicMock(spec=CoinGeckoClient)
    client.fetch_price_series = AsyncMock(return_value=sample_series)
    client.fetch_statistics = AsyncMock(return_value=sample_statistics)
    client.health_check = AsyncMock(return_value=True)
    client.start = AsyncMock()
    client.stop = AsyncMock()
    return client


@pytest.fixture
def mock_renderer():
    """Create a renderer that returns fixed PNG bytes."""
    renderer = MagicMock(spec=PriceChartRenderer)
    renderer.render.return_value = b"\x89PNG\r\n\x1a\nfake"
    return renderer


@pytest.fixture
def service(mock_client, cache, mock_renderer):
    """Create a market data service over the mocked client."""
    return MarketDataService(mock_client, cache, mock_renderer, cache_ttl=300)
