"""
Yahoo Finance quote adapter (live price path only, no API key required).

yfinance takes no timeout for ``Ticker.info``, so the lookup runs on a small
executor and the caller stops waiting after ``timeout`` seconds. A timed-out
lookup keeps its worker thread until yfinance returns.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import date
from typing import Optional

import yfinance as yf

from ..interfaces import StockPrice, to_price
from .base import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yahoo-quote")


class YahooQuoteAdapter:
    """Fetches a single live quote through yfinance."""

    name = "YAHOO"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS):
        self._timeout = timeout

    def fetch_quote(self, symbol: str) -> Optional[StockPrice]:
        future = _executor.submit(lambda: yf.Ticker(symbol).info)
        try:
            info = future.result(timeout=self._timeout) or {}
        except FutureTimeout:
            future.cancel()
            raise TimeoutError(f"Yahoo quote for {symbol} timed out after {self._timeout}s")

        # Try different price fields in order of preference
        price = info.get('currentPrice') or info.get('regularMarketPrice')
        if price is None:
            return None

        high = info.get('dayHigh') or info.get('regularMarketDayHigh') or price
        low = info.get('dayLow') or info.get('regularMarketDayLow') or price
        return StockPrice(
            symbol=symbol,
            price=to_price(price),
            high=to_price(high),
            low=to_price(low),
            date=date.today().isoformat(),
            source=self.name,
        )
