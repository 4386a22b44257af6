"""Market data provider clients."""

from .coingecko import CoinGeckoClient

__all__ = ['CoinGeckoClient']
