"""
Alpha Vantage Data Provider Adapter

Provides access to Alpha Vantage API for:
- Daily, weekly and monthly historical series
- Real-time quotes (GLOBAL_QUOTE), used by the live price path

Requires ALPHA_VANTAGE_API_KEY environment variable.
Free tier: 5 requests/minute, 25 requests/day
"""

import logging
from datetime import date
from typing import Optional, List, Dict, Any

from ..config import PROVIDER_CONFIGS, ProviderConfig, WEEKLY, MONTHLY
from ..exceptions import ProviderResponseError, ProviderRateLimitedError
from ..interfaces import HistoricalPoint, StockPrice, to_price
from .base import BaseAdapter, parse_point

logger = logging.getLogger(__name__)

# Alpha Vantage base URL
AV_BASE_URL = "https://www.alphavantage.co/query"

SERIES_FUNCTIONS = {
    WEEKLY: "TIME_SERIES_WEEKLY",
    MONTHLY: "TIME_SERIES_MONTHLY",
}

KNOWN_SERIES_KEYS = [
    "Time Series (Daily)",
    "Weekly Time Series",
    "Monthly Time Series",
    "Time Series (Weekly)",
    "Time Series (Monthly)",
    "Daily Time Series",
]


def find_time_series_key(data: Dict[str, Any]) -> Optional[str]:
    """Locate the time-series block; its name varies by function and API version."""
    for key in KNOWN_SERIES_KEYS:
        if key in data:
            return key
    for key in data:
        if "Time Series" in key or "Intraday" in key:
            return key
    return None


class AlphaVantageAdapter(BaseAdapter):
    """
    Alpha Vantage API data provider adapter.

    Highest-priority history provider, and the second source for live quotes.
    """

    base_url = AV_BASE_URL

    def __init__(self, config: Optional[ProviderConfig] = None, **kwargs):
        super().__init__(config or PROVIDER_CONFIGS["ALPHA_VANTAGE"], **kwargs)

    def _check_payload(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ProviderResponseError(self.name, "unexpected payload type")
        if "Error Message" in data:
            raise ProviderResponseError(self.name, data["Error Message"])
        if "Note" in data:
            raise ProviderRateLimitedError(self.name, data["Note"])
        if "Information" in data:
            raise ProviderRateLimitedError(self.name, data["Information"])

    def fetch_history(self, symbol: str, interval: str) -> List[HistoricalPoint]:
        function = SERIES_FUNCTIONS.get(interval, "TIME_SERIES_DAILY")
        params = {
            "function": function,
            "symbol": symbol,
            "apikey": self._api_key,
        }
        if function == "TIME_SERIES_DAILY":
            params["outputsize"] = "full"

        data = self._get_json(self.base_url, params)

        key = find_time_series_key(data)
        if key is None:
            logger.warning(f"[AlphaVantage] No time series in response for {symbol}: {list(data)[:5]}")
            return []

        points = []
        for timestamp, values in data[key].items():
            point = parse_point(
                timestamp,
                values.get("1. open"),
                values.get("2. high"),
                values.get("3. low"),
                values.get("4. close"),
            )
            if point is not None:
                points.append(point)
        return self._limit(points)

    def fetch_quote(self, symbol: str) -> Optional[StockPrice]:
        """Get real-time quote using GLOBAL_QUOTE endpoint."""
        if not self.is_configured():
            return None

        data = self._get_json(self.base_url, {
            "function": "GLOBAL_QUOTE",
            "symbol": symbol,
            "apikey": self._api_key,
        })

        quote = data.get("Global Quote") or {}
        price_str = (quote.get("05. price") or "").strip()
        if not price_str:
            return None

        price = to_price(price_str)
        high_str = (quote.get("03. high") or "").strip()
        low_str = (quote.get("04. low") or "").strip()
        return StockPrice(
            symbol=symbol,
            price=price,
            high=to_price(high_str) if high_str else to_price(price * to_price("1.02")),
            low=to_price(low_str) if low_str else to_price(price * to_price("0.98")),
            date=date.today().isoformat(),
            source=self.name,
        )
