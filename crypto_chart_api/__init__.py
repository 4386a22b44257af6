"""
Crypto Chart API - cached cryptocurrency market data and price charts.

This package serves price series, coin statistics and rendered PNG charts
sourced from the CoinGecko market-data API, with an in-memory expiring cache
in front of every upstream call.
"""

__version__ = "0.1.0"
__author__ = "Crypto Chart API Team"
__license__ = "MIT"

from crypto_chart_api.core.config import ConfigManager
from crypto_chart_api.data.service import MarketDataService

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "ConfigManager",
    "MarketDataService",
]
