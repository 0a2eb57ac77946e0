"""
Market Data Interfaces and Data Classes

Defines the abstract interface for history providers and the standardized
data structures shared by the cache, the providers and the orchestrator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List, Dict, Any, Tuple

PRICE_QUANTUM = Decimal("0.01")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what the cache table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_price(value: Any) -> Decimal:
    """Convert a provider value (str/float/int/Decimal) to a 2-decimal price."""
    if isinstance(value, Decimal):
        dec = value
    elif isinstance(value, float):
        dec = Decimal(repr(float(value)))
    else:
        dec = Decimal(str(value).strip())
    if not dec.is_finite():
        raise ValueError(f"Non-finite price: {value!r}")
    return dec.quantize(PRICE_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class HistoricalPoint:
    """A single OHLC bar. ``timestamp`` is the provider's date label."""
    timestamp: str
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal

    def to_dict(self) -> Dict[str, str]:
        """JSON-safe representation (decimals as strings)."""
        return {
            'timestamp': self.timestamp,
            'open': str(self.open),
            'high': str(self.high),
            'low': str(self.low),
            'close': str(self.close),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalPoint":
        return cls(
            timestamp=str(data['timestamp']),
            open=to_price(data['open']),
            high=to_price(data['high']),
            low=to_price(data['low']),
            close=to_price(data['close']),
        )


Series = Tuple[HistoricalPoint, ...]


@dataclass(frozen=True)
class CacheEntry:
    """A cached series for one symbol+interval. Valid while now < expires_at."""
    symbol: str
    interval: str
    points: Series
    provider: str
    created_at: datetime
    expires_at: datetime

    def is_valid(self, now: datetime) -> bool:
        return now < self.expires_at


class ProviderAdapter(ABC):
    """
    Abstract base class for all historical data provider adapters.

    Implementations should:
    1. Report whether they have credentials via is_configured()
    2. Declare which intervals they can serve
    3. Return a list of HistoricalPoint from fetch_history(), in any order
    4. Raise on transport/parse/error-shaped responses; the orchestrator
       converts every exception into an unusable result
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider id used for rate budgets, breakers and cache rows."""
        pass

    @abstractmethod
    def is_configured(self) -> bool:
        """True if the provider has the credentials it needs."""
        pass

    @abstractmethod
    def supports_interval(self, interval: str) -> bool:
        pass

    @abstractmethod
    def fetch_history(self, symbol: str, interval: str) -> List[HistoricalPoint]:
        """
        Fetch historical OHLC data.

        Args:
            symbol: Normalized (upper-case) ticker
            interval: "daily", "weekly" or "monthly"

        Returns:
            List of points, possibly empty
        """
        pass


@dataclass(frozen=True)
class StockPrice:
    """A live single quote."""
    symbol: str
    price: Decimal
    high: Decimal
    low: Decimal
    date: str
    source: Optional[str] = None
