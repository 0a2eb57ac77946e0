"""
Twelve Data Provider Adapter

Requires TWELVEDATA_API_KEY environment variable.
"""

import logging
from typing import Optional, List, Any

from ..config import PROVIDER_CONFIGS, ProviderConfig, WEEKLY, MONTHLY, MAX_HISTORY_POINTS
from ..exceptions import ProviderResponseError, ProviderRateLimitedError
from ..interfaces import HistoricalPoint
from .base import BaseAdapter, parse_point

logger = logging.getLogger(__name__)

TWELVEDATA_URL = "https://api.twelvedata.com/time_series"

TD_INTERVALS = {WEEKLY: "1week", MONTHLY: "1month"}
TD_OUTPUT_SIZES = {WEEKLY: 1500, MONTHLY: 1200}


class TwelveDataAdapter(BaseAdapter):

    base_url = TWELVEDATA_URL

    def __init__(self, config: Optional[ProviderConfig] = None, **kwargs):
        super().__init__(config or PROVIDER_CONFIGS["TWELVEDATA"], **kwargs)

    def _check_payload(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise ProviderResponseError(self.name, "unexpected payload type")
        if data.get("status") == "error":
            message = data.get("message", "unknown error")
            if data.get("code") == 429:
                raise ProviderRateLimitedError(self.name, message)
            raise ProviderResponseError(self.name, message)

    def fetch_history(self, symbol: str, interval: str) -> List[HistoricalPoint]:
        data = self._get_json(self.base_url, {
            "symbol": symbol,
            "interval": TD_INTERVALS.get(interval, "1day"),
            "outputsize": TD_OUTPUT_SIZES.get(interval, MAX_HISTORY_POINTS),
            "apikey": self._api_key,
        })

        rows = data.get("values") or data.get("data") or []
        points = []
        for item in rows[:MAX_HISTORY_POINTS]:
            point = parse_point(
                item.get("datetime"),
                item.get("open"),
                item.get("high"),
                item.get("low"),
                item.get("close"),
            )
            if point is not None:
                points.append(point)
        return points
