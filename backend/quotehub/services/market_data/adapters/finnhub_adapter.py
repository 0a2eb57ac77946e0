"""
Finnhub Data Provider Adapter

Daily candles only (``/stock/candle`` with resolution D).
Requires FINNHUB_API_KEY environment variable.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Optional, List, Any

from ..config import PROVIDER_CONFIGS, ProviderConfig
from ..exceptions import ProviderResponseError
from ..interfaces import HistoricalPoint
from .base import BaseAdapter, parse_point

logger = logging.getLogger(__name__)

FINNHUB_CANDLE_URL = "https://finnhub.io/api/v1/stock/candle"

# How far back to ask for daily candles
LOOKBACK_DAYS = 365 * 20


class FinnhubAdapter(BaseAdapter):

    base_url = FINNHUB_CANDLE_URL

    def __init__(self, config: Optional[ProviderConfig] = None, **kwargs):
        super().__init__(config or PROVIDER_CONFIGS["FINNHUB"], **kwargs)

    def _check_payload(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ProviderResponseError(self.name, "unexpected payload type")
        if "error" in data:
            raise ProviderResponseError(self.name, str(data["error"]))

    def fetch_history(self, symbol: str, interval: str) -> List[HistoricalPoint]:
        now = int(time.time())
        data = self._get_json(self.base_url, {
            "symbol": symbol,
            "resolution": "D",
            "from": now - LOOKBACK_DAYS * 86400,
            "to": now,
            "token": self._api_key,
        })

        if data.get("s") != "ok":
            logger.info(f"[Finnhub] No candles for {symbol} (status: {data.get('s')})")
            return []

        points = []
        for ts, o, h, l, c in zip(data.get("t", []), data.get("o", []), data.get("h", []),
                                  data.get("l", []), data.get("c", [])):
            label = datetime.fromtimestamp(int(ts), tz=timezone.utc).strftime("%Y-%m-%d")
            point = parse_point(label, o, h, l, c)
            if point is not None:
                points.append(point)
        return self._limit(points)
