"""Cache-fill service for cryptocurrency market data and charts."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional
import logging

from .cache import ExpiringCache, CacheConfig, cache_key_for_prices, cache_key_for_stats
from .clients.coingecko import CoinGeckoClient, COINGECKO_BASE_URL
from .models import CoinInfo, CoinStatistics, PriceSeries, Timeframe, normalize_symbol
from ..visualization.charts import ChartConfig, PriceChartRenderer

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 300

DEFAULT_COINS = (
    CoinInfo(id="bitcoin", name="Bitcoin", symbol="BTC"),
    CoinInfo(id="ethereum", name="Ethereum", symbol="ETH"),
    CoinInfo(id="ripple", name="XRP", symbol="XRP"),
    CoinInfo(id="solana", name="Solana", symbol="SOL"),
    CoinInfo(id="cardano", name="Cardano", symbol="ADA"),
)


class MarketDataService:
    """Serves price series, statistics and charts through an expiring cache.

    On a hit the cached value is returned; on a miss the client is called and
    a successful result is stored for ``cache_ttl`` seconds. Client errors
    propagate unchanged and are never cached.

    With ``coalesce`` enabled, concurrent misses on the same key share one
    upstream call.
    """
    
    def __init__(self, client: CoinGeckoClient,
                 cache: Optional[ExpiringCache] = None,
                 renderer: Optional[PriceChartRenderer] = None,
                 cache_ttl: float = CACHE_TTL_SECONDS,
                 coalesce: bool = True):
        """Initialize market data service.
        
        Args:
            client: Market data client used on cache misses
            cache: Expiring cache shared by all requests
            renderer: Chart renderer for ``get_chart``
            cache_ttl: Lifetime of cached results in seconds
            coalesce: Share one upstream call between concurrent misses
        """
        self.client = client
        self.cache = cache or ExpiringCache(CacheConfig(default_ttl=cache_ttl))
        self.renderer = renderer or PriceChartRenderer()
        self.cache_ttl = cache_ttl
        self.coalesce = coalesce
        self._inflight: Dict[str, asyncio.Future] = {}
        self._initialized = False
    
    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'MarketDataService':
        """Build a service from a loaded configuration dictionary."""
        provider = config.get('provider', {})
        cache_cfg = config.get('cache', {})
        chart_cfg = config.get('chart', {})
        
        ttl = cache_cfg.get('ttl', CACHE_TTL_SECONDS)
        client = CoinGeckoClient(
            api_key=provider.get('api_key') or None,
            base_url=provider.get('base_url', COINGECKO_BASE_URL),
            timeout=provider.get('timeout', 10)
        )
        cache = ExpiringCache(CacheConfig(
            default_ttl=ttl,
            cleanup_interval=cache_cfg.get('cleanup_interval', 600),
            enable_sweep=cache_cfg.get('sweep', True)
        ))
        renderer = PriceChartRenderer(ChartConfig(
            width=chart_cfg.get('width', 400),
            height=chart_cfg.get('height', 200)
        ))
        return cls(client, cache, renderer,
                   cache_ttl=ttl,
                   coalesce=cache_cfg.get('coalesce', True))
    
    async def initialize(self):
        """Start the client session and the cache sweep."""
        if self._initialized:
            return
        
        await self.client.start()
        await self.cache.start()
        
        self._initialized = True
        logger.info("Market data service initialized")
    
    async def shutdown(self):
        """Stop the cache sweep and close the client session."""
        if not self._initialized:
            return
        
        await self.cache.stop()
        await self.client.stop()
        
        self._initialized = False
        logger.info("Market data service shutdown")
    
    async def get_prices(self, symbol: str, timeframe: Any = Timeframe.DAY_1) -> PriceSeries:
        """Get a price series, from cache when live.
        
        Args:
            symbol: Coin id, any case
            timeframe: Timeframe or token; unknown tokens mean one day
            
        Returns:
            PriceSeries for the normalized symbol and timeframe
        """
        coin_id = normalize_symbol(symbol)
        timeframe = Timeframe.parse(timeframe)
        key = cache_key_for_prices(coin_id, timeframe.value)
        
        return await self._get_or_fetch(
            key, lambda: self.client.fetch_price_series(coin_id, timeframe)
        )
    
    async def get_statistics(self, symbol: str) -> CoinStatistics:
        """Get a statistics snapshot, from cache when live.
        
        Args:
            symbol: Coin id, any case
            
        Returns:
            CoinStatistics for the normalized symbol
        """
        coin_id = normalize_symbol(symbol)
        key = cache_key_for_stats(coin_id)
        
        return await self._get_or_fetch(
            key, lambda: self.client.fetch_statistics(coin_id)
        )
    
    async def get_chart(self, symbol: str, timeframe: Any = Timeframe.DAY_1) -> bytes:
        """Render a PNG chart of the (cached) price series.
        
        Args:
            symbol: Coin id, any case
            timeframe: Timeframe or token; defaults to the last 24h
            
        Returns:
            PNG image bytes
        """
        series = await self.get_prices(symbol, timeframe)
        return await asyncio.to_thread(self.renderer.render, series.symbol, series)
    
    def list_default_coins(self) -> List[Dict[str, str]]:
        """Static table of coins offered by default; never fetched remotely."""
        return [coin.to_dict() for coin in DEFAULT_COINS]
    
    async def check_upstream(self) -> bool:
        """Ping the market data provider.
        
        Returns:
            True if the provider answered its health endpoint
        """
        return await self.client.health_check()
    
    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        return self.cache.get_stats()
    
    def clear_cache(self) -> int:
        """Drop every cached entry.
        
        Returns:
            Number of entries cleared
        """
        return self.cache.clear()
    
    async def _get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value, found = self.cache.get(key)
        if found:
            logger.debug(f"Cache hit for {key}")
            return value
        
        logger.debug(f"Cache miss for {key}")
        if not self.coalesce:
            return await self._fill(key, fetch)
        
        future = self._inflight.get(key)
        if future is None:
            future = asyncio.ensure_future(self._fill(key, fetch))
            self._inflight[key] = future
            future.add_done_callback(lambda f: self._release(key, f))
        else:
            logger.debug(f"Joining in-flight fetch for {key}")
        
        # A cancelled caller must not cancel the fetch other callers wait on
        return await asyncio.shield(future)
    
    async def _fill(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        value = await fetch()
        self.cache.set(key, value, self.cache_ttl)
        return value
    
    def _release(self, key: str, future: asyncio.Future):
        if self._inflight.get(key) is future:
            del self._inflight[key]
        # Mark the error as retrieved when every waiter was cancelled
        if not future.cancelled():
            future.exception()
