"""Data models for cryptocurrency market data."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional, Tuple
from enum import Enum


class DataSource(Enum):
    """Supported data sources."""
    COINGECKO = "coingecko"


class Timeframe(Enum):
    """Lookback windows accepted for price series.

    Each member carries the ``days`` query parameter CoinGecko expects for the
    ``market_chart`` endpoint.
    """
    HOUR_1 = "1h"
    DAY_1 = "1d"
    DAYS_7 = "7d"
    DAYS_30 = "30d"
    DAYS_90 = "90d"
    YEAR_1 = "1y"

    @property
    def days(self) -> str:
        """Provider lookback window in days."""
        return _TIMEFRAME_DAYS[self]

    @property
    def label(self) -> str:
        """Human readable window used in chart titles."""
        return _TIMEFRAME_LABELS[self]

    @classmethod
    def parse(cls, token: Optional[str]) -> 'Timeframe':
        """Map a request token to a timeframe, defaulting to one day.

        Args:
            token: Timeframe token such as ``"7d"``; case-insensitive

        Returns:
            Matching Timeframe, or ``Timeframe.DAY_1`` for unknown tokens
        """
        if isinstance(token, cls):
            return token
        try:
            return cls(str(token or "").strip().lower())
        except ValueError:
            return cls.DAY_1


_TIMEFRAME_DAYS = {
    Timeframe.HOUR_1: "0.04",
    Timeframe.DAY_1: "1",
    Timeframe.DAYS_7: "7",
    Timeframe.DAYS_30: "30",
    Timeframe.DAYS_90: "90",
    Timeframe.YEAR_1: "365",
}

_TIMEFRAME_LABELS = {
    Timeframe.HOUR_1: "Last 1h",
    Timeframe.DAY_1: "Last 24h",
    Timeframe.DAYS_7: "Last 7d",
    Timeframe.DAYS_30: "Last 30d",
    Timeframe.DAYS_90: "Last 90d",
    Timeframe.YEAR_1: "Last 1y",
}


def normalize_symbol(symbol: str) -> str:
    """Normalize a coin identifier for cache keys and upstream URLs."""
    return (symbol or "").strip().lower()


@dataclass(frozen=True)
class PriceSeries:
    """Ordered price samples for one symbol over one timeframe.

    Index position encodes relative time order only.
    """

    symbol: str
    timeframe: Timeframe
    prices: Tuple[float, ...]

    def __post_init__(self):
        object.__setattr__(self, 'prices', tuple(float(p) for p in self.prices))

    def __len__(self) -> int:
        return len(self.prices)

    def __iter__(self) -> Iterator[float]:
        return iter(self.prices)

    def __getitem__(self, index):
        return self.prices[index]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``/api/prices`` response body."""
        return {'prices': list(self.prices)}


def _as_float(value: Any) -> float:
    # bool is an int subclass; a flag is not a measurement
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.0
    return float(value)


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _usd(section: Dict[str, Any], name: str) -> Any:
    nested = section.get(name)
    if isinstance(nested, dict):
        return nested.get('usd')
    return None


@dataclass(frozen=True)
class PriceChangePercent:
    """Price change percentages over standard windows."""

    day: float = 0.0
    week: float = 0.0
    month: float = 0.0
    year: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'day': self.day,
            'week': self.week,
            'month': self.month,
            'year': self.year,
        }


@dataclass(frozen=True)
class CoinStatistics:
    """Market statistics snapshot for a cryptocurrency."""

    market_cap: float = 0.0
    volume_24h: float = 0.0
    circulating_supply: float = 0.0
    total_supply: float = 0.0
    all_time_high: float = 0.0
    all_time_high_date: str = ""
    price_change_percent: PriceChangePercent = field(default_factory=PriceChangePercent)

    @classmethod
    def from_market_data(cls, section: Dict[str, Any]) -> 'CoinStatistics':
        """Decode CoinGecko's ``market_data`` section.

        Every field is decoded on its own: a missing or mistyped field falls
        back to its zero value instead of failing the whole snapshot.

        Args:
            section: The ``market_data`` object from ``/coins/{id}``

        Returns:
            CoinStatistics instance
        """
        return cls(
            market_cap=_as_float(_usd(section, 'market_cap')),
            volume_24h=_as_float(_usd(section, 'total_volume')),
            circulating_supply=_as_float(section.get('circulating_supply')),
            total_supply=_as_float(section.get('total_supply')),
            all_time_high=_as_float(_usd(section, 'ath')),
            all_time_high_date=_as_str(_usd(section, 'ath_date')),
            price_change_percent=PriceChangePercent(
                day=_as_float(section.get('price_change_percentage_24h')),
                week=_as_float(section.get('price_change_percentage_7d')),
                month=_as_float(section.get('price_change_percentage_30d')),
                year=_as_float(section.get('price_change_percentage_1y')),
            ),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'market_cap': self.market_cap,
            'volume_24h': self.volume_24h,
            'circulating_supply': self.circulating_supply,
            'total_supply': self.total_supply,
            'ath': self.all_time_high,
            'ath_date': self.all_time_high_date,
            'price_change_percent': self.price_change_percent.to_dict(),
        }


@dataclass(frozen=True)
class CoinInfo:
    """Entry of the static default-coin table."""

    id: str
    name: str
    symbol: str

    def to_dict(self) -> Dict[str, str]:
        return {'id': self.id, 'name': self.name, 'symbol': self.symbol}


@dataclass
class CacheEntry:
    """Cache entry with an absolute expiration time."""
    
    key: str
    value: Any
    expires_at: datetime
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    def is_expired(self, now: datetime) -> bool:
        """Check if cache entry has expired at ``now``."""
        return now >= self.expires_at


@dataclass
class APIResponse:
    """Wrapper for API responses with metadata."""
    
    data: Any
    status_code: int
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    response_time: float = 0.0
    data_source: DataSource = DataSource.COINGECKO
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    @property
    def is_success(self) -> bool:
        """Check if response was successful."""
        return 200 <= self.status_code < 300

