"""CoinGecko API client implementation."""

from typing import Any, Dict, List, Optional
import logging

from ..api_client import BaseAPIClient, APIClientConfig
from ..exceptions import MalformedResponse, MissingSection, NoData
from ..models import (
    CoinStatistics,
    DataSource,
    PriceSeries,
    Timeframe,
    normalize_symbol,
)

logger = logging.getLogger(__name__)

COINGECKO_BASE_URL = "https://api.coingecko.com/api/v3"

# Query flags for /coins/{id}; only market_data is needed
COIN_DETAIL_PARAMS = {
    "localization": "false",
    "tickers": "false",
    "market_data": "true",
    "community_data": "false",
    "developer_data": "false",
}


class CoinGeckoClient(BaseAPIClient):
    """CoinGecko API client for price series and coin statistics."""
    
    def __init__(self, api_key: Optional[str] = None,
                 base_url: str = COINGECKO_BASE_URL,
                 timeout: float = 10):
        """Initialize CoinGecko client.
        
        Args:
            api_key: Optional CoinGecko demo API key
            base_url: API root, overridable for testing or a pro endpoint
            timeout: Per-request timeout in seconds
        """
        config = APIClientConfig(
            base_url=base_url,
            api_key=api_key,
            timeout=timeout,
            headers={
                "Accept": "application/json",
                "User-Agent": "CryptoChartAPI/0.1"
            }
        )
        
        super().__init__(config, DataSource.COINGECKO)
    
    def _get_auth_headers(self) -> Dict[str, str]:
        """Get authentication headers for CoinGecko API."""
        if self.config.api_key:
            return {"x-cg-demo-api-key": self.config.api_key}
        return {}
    
    async def fetch_price_series(self, symbol: str, timeframe: Any = Timeframe.DAY_1) -> PriceSeries:
        """Fetch a price series from ``/coins/{id}/market_chart``.
        
        Args:
            symbol: CoinGecko coin id, any case (e.g. ``"Bitcoin"``)
            timeframe: Timeframe or token; unknown tokens mean one day
            
        Returns:
            PriceSeries with one sample per ``[timestamp, price]`` pair,
            in provider order
            
        Raises:
            UpstreamUnavailable, UpstreamBadStatus, MalformedResponse: see
                ``BaseAPIClient._make_request``
            NoData: Provider returned no price pairs
        """
        coin_id = normalize_symbol(symbol)
        timeframe = Timeframe.parse(timeframe)
        
        response = await self._make_request(
            "GET",
            f"coins/{coin_id}/market_chart",
            params={"vs_currency": "usd", "days": timeframe.days},
            symbol=coin_id
        )
        
        prices = self._parse_price_pairs(response.data, coin_id)
        if not prices:
            raise NoData(f"No price data available for {coin_id}", coin_id)
        
        logger.debug(f"Fetched {len(prices)} {timeframe.value} prices for {coin_id}")
        return PriceSeries(symbol=coin_id, timeframe=timeframe, prices=tuple(prices))
    
    async def fetch_statistics(self, symbol: str) -> CoinStatistics:
        """Fetch a statistics snapshot from ``/coins/{id}``.
        
        Args:
            symbol: CoinGecko coin id, any case
            
        Returns:
            CoinStatistics decoded permissively from ``market_data``
            
        Raises:
            UpstreamUnavailable, UpstreamBadStatus, MalformedResponse: see
                ``BaseAPIClient._make_request``
            MissingSection: Payload has no ``market_data`` object
        """
        coin_id = normalize_symbol(symbol)
        
        response = await self._make_request(
            "GET",
            f"coins/{coin_id}",
            params=COIN_DETAIL_PARAMS,
            symbol=coin_id
        )
        
        if not isinstance(response.data, dict):
            raise MalformedResponse(f"Expected an object for {coin_id} details", coin_id)
        
        market_data = response.data.get("market_data")
        if not isinstance(market_data, dict):
            raise MissingSection(f"No market_data section for {coin_id}", coin_id)
        
        return CoinStatistics.from_market_data(market_data)
    
    @staticmethod
    def _parse_price_pairs(data: Any, coin_id: str) -> List[float]:
        """Extract the price from each ``[timestamp, price]`` pair."""
        if not isinstance(data, dict):
            raise MalformedResponse(f"Expected an object for {coin_id} market chart", coin_id)
        
        pairs = data.get("prices") or []
        if not isinstance(pairs, list):
            raise MalformedResponse(f"'prices' for {coin_id} is not a list", coin_id)
        
        prices = []
        for pair in pairs:
            if not isinstance(pair, (list, tuple)) or len(pair) < 2:
                raise MalformedResponse(f"Bad price pair for {coin_id}: {pair!r}", coin_id)
            price = pair[1]
            if isinstance(price, bool) or not isinstance(price, (int, float)):
                raise MalformedResponse(f"Non-numeric price for {coin_id}: {price!r}", coin_id)
            prices.append(float(price))
        
        return prices
    
    async def health_check(self) -> bool:
        """Check if CoinGecko API is healthy.
        
        Returns:
            True if API is healthy, False otherwise
        """
        try:
            response = await self._make_request("GET", "ping")
            return response.is_success and isinstance(response.data, dict) and "gecko_says" in response.data
        except Exception as e:
            logger.error(f"CoinGecko health check failed: {e}")
            return False
