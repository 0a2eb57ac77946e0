"""
Synthetic history used when every provider is exhausted.

This is a liveness fallback, not a pricing model: the walk only has to look
plausible (continuous closes, high/low bracketing open/close).
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

import numpy as np

from .interfaces import HistoricalPoint, to_price

logger = logging.getLogger(__name__)

DEFAULT_POINTS = 4000
DEFAULT_BASE_PRICE = 100.0
MIN_PRICE = Decimal("0.01")

SYMBOL_BASE_PRICES = {
    "AAPL": 195.0,
    "MSFT": 370.0,
    "TSLA": 240.0,
    "GOOGL": 140.0,
    "AMZN": 180.0,
    "NVDA": 890.0,
    "META": 380.0,
    "MU": 110.0,
}


def base_price_for(symbol: str) -> float:
    return SYMBOL_BASE_PRICES.get((symbol or "").upper(), DEFAULT_BASE_PRICE)


class SyntheticDataGenerator:
    """
    Random-walk OHLC generator.

    Args:
        points: Number of daily points to produce
        rng: numpy Generator (pass a seeded one for reproducible output)
        today: Callable returning the anchor date
    """

    def __init__(
        self,
        points: int = DEFAULT_POINTS,
        rng: Optional[np.random.Generator] = None,
        today: Callable[[], date] = date.today,
    ):
        self._points = points
        self._rng = rng if rng is not None else np.random.default_rng()
        self._today = today

    @property
    def points(self) -> int:
        return self._points

    def generate(self, symbol: str) -> List[HistoricalPoint]:
        price = base_price_for(symbol)
        day = self._today()
        # Four uniform draws per step: open drift, close drift, high pad, low pad
        draws = self._rng.random((self._points, 4))

        data = []
        for open_u, close_u, high_u, low_u in draws:
            open_ = price + (open_u - 0.5) * price * 0.02
            close = open_ + (close_u - 0.5) * price * 0.04
            high = max(open_, close) + high_u * price * 0.015
            low = min(open_, close) - low_u * price * 0.015

            o = max(to_price(open_), MIN_PRICE)
            c = max(to_price(close), MIN_PRICE)
            h = max(to_price(high), o, c)
            l = max(min(to_price(low), o, c), MIN_PRICE)

            data.append(HistoricalPoint(day.isoformat(), o, h, l, c))
            price = float(c)
            day -= timedelta(days=1)

        data.sort(key=lambda p: p.timestamp)
        logger.info(f"[Synthetic] Generated {len(data)} points for {symbol}")
        return data
