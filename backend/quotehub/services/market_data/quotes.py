"""
Single-quote path.

LivePriceService returns a live quote (Yahoo first, then Alpha Vantage) or
None; it never invents prices. QuoteResolver falls back to the reference
price stored in the ``stock`` table.
"""

import logging
import re
import threading
import time
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Callable, Dict, Optional, Sequence, Tuple

from .config import normalize_symbol
from .interfaces import StockPrice, to_price

logger = logging.getLogger(__name__)

TICKER_PATTERN = re.compile(r"^[A-Z]{1,5}(\.[A-Z]{1,2})?$")
PRICE_CACHE_SECONDS = 300
PRICE_CACHE_MAX_SIZE = 500

SOURCE_LIVE = "LIVE"
SOURCE_REFERENCE = "REFERENCE"


def is_valid_symbol(symbol: str) -> bool:
    """Ticker format check only; says nothing about whether quotes exist."""
    normalized = normalize_symbol(symbol)
    if not normalized:
        return False
    return TICKER_PATTERN.match(normalized) is not None


class LivePriceService:
    """
    Live quote lookup with a short per-symbol cache.

    ``sources`` are objects exposing ``name`` and ``fetch_quote(symbol)``,
    tried in order until one returns a quote.
    """

    def __init__(
        self,
        sources: Sequence,
        cache_seconds: int = PRICE_CACHE_SECONDS,
        max_size: int = PRICE_CACHE_MAX_SIZE,
        clock: Callable[[], float] = time.time,
    ):
        self._sources = list(sources)
        self._cache_seconds = cache_seconds
        self._max_size = max_size
        self._clock = clock
        self._cache: Dict[str, Tuple[StockPrice, float]] = {}
        self._lock = threading.Lock()

    def get_current_price(self, symbol: str) -> Optional[StockPrice]:
        symbol = normalize_symbol(symbol)
        if not is_valid_symbol(symbol):
            return None

        with self._lock:
            cached = self._cache.get(symbol)
        if cached is not None:
            price, cached_at = cached
            if self._clock() - cached_at <= self._cache_seconds:
                return price

        for source in self._sources:
            try:
                price = source.fetch_quote(symbol)
            except Exception as e:
                logger.warning(f"[LivePrice] {source.name} quote failed for {symbol}: {e}")
                continue
            if price is not None:
                self._remember(symbol, price)
                return price

        logger.info(f"[LivePrice] No live quote available for {symbol}")
        return None

    def _remember(self, symbol: str, price: StockPrice) -> None:
        now = self._clock()
        with self._lock:
            self._cache.pop(symbol, None)
            if len(self._cache) >= self._max_size:
                # Drop stale quotes first, then the oldest ones
                stale = [k for k, (_, ts) in self._cache.items() if now - ts > self._cache_seconds]
                for k in stale:
                    del self._cache[k]
                if len(self._cache) >= self._max_size:
                    oldest = sorted(self._cache, key=lambda k: self._cache[k][1])
                    for k in oldest[:len(self._cache) - self._max_size + 1]:
                        del self._cache[k]
            self._cache[symbol] = (price, now)

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


@dataclass(frozen=True)
class ResolvedQuote:
    symbol: str
    price: Decimal
    high: Decimal
    low: Decimal
    date: str
    source: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'symbol': self.symbol,
            'price': str(self.price),
            'high': str(self.high),
            'low': str(self.low),
            'date': self.date,
            'source': self.source,
        }


def lookup_reference_price(symbol: str) -> Optional[Decimal]:
    """Reference price from the stock table (needs an app context)."""
    from ...models import Stock

    stock = Stock.query.filter_by(symbol=symbol).first()
    if stock is None or stock.price is None:
        return None
    return to_price(stock.price)


class QuoteResolver:
    """Live quote first, stored reference price second, otherwise None."""

    def __init__(
        self,
        price_service: LivePriceService,
        reference_lookup: Callable[[str], Optional[Decimal]] = lookup_reference_price,
    ):
        self._price_service = price_service
        self._reference_lookup = reference_lookup

    def resolve(self, symbol: str) -> Optional[ResolvedQuote]:
        normalized = normalize_symbol(symbol)
        if not is_valid_symbol(normalized):
            return None

        live = self._price_service.get_current_price(normalized)
        if live is not None and live.price is not None:
            return ResolvedQuote(
                symbol=live.symbol,
                price=live.price,
                high=live.high,
                low=live.low,
                date=live.date,
                source=SOURCE_LIVE,
            )

        try:
            reference = self._reference_lookup(normalized)
        except Exception as e:
            logger.error(f"[QuoteResolver] Reference lookup failed for {normalized}: {e}")
            return None
        if reference is None:
            return None

        return ResolvedQuote(
            symbol=normalized,
            price=reference,
            high=reference,
            low=reference,
            date=date.today().isoformat(),
            source=SOURCE_REFERENCE,
        )


def build_quote_resolver(settings: Optional[Dict] = None) -> QuoteResolver:
    """Yahoo then Alpha Vantage, backed by the stock table."""
    from .adapters import AlphaVantageAdapter, YahooQuoteAdapter

    settings = settings or {}
    timeout = float(settings.get('PROVIDER_TIMEOUT_SECONDS', 10))
    alpha_vantage = AlphaVantageAdapter(
        api_key=settings.get('ALPHA_VANTAGE_API_KEY'),
        timeout=timeout,
    )
    return QuoteResolver(LivePriceService([YahooQuoteAdapter(timeout=timeout), alpha_vantage]))
