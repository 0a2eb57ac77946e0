"""
Massive Data Provider Adapter

Last real provider in the chain. Requires MASSIVE_API_KEY.
"""

from typing import Optional, List, Any

from ..config import PROVIDER_CONFIGS, ProviderConfig, MAX_HISTORY_POINTS
from ..exceptions import ProviderResponseError
from ..interfaces import HistoricalPoint
from .base import BaseAdapter, parse_point

MASSIVE_URL = "https://api.massive.com/v1/historical"


class MassiveAdapter(BaseAdapter):

    base_url = MASSIVE_URL

    def __init__(self, config: Optional[ProviderConfig] = None, **kwargs):
        super().__init__(config or PROVIDER_CONFIGS["MASSIVE"], **kwargs)

    def _check_payload(self, data: Any) -> None:
        if isinstance(data, dict) and "error" in data:
            raise ProviderResponseError(self.name, str(data["error"]))

    def fetch_history(self, symbol: str, interval: str) -> List[HistoricalPoint]:
        data = self._get_json(self.base_url, {
            "symbol": symbol,
            "interval": interval,
            "key": self._api_key,
        })

        rows = data.get("data", []) if isinstance(data, dict) else data
        if not isinstance(rows, list):
            return []

        points = []
        for item in rows[:MAX_HISTORY_POINTS]:
            point = parse_point(
                item.get("timestamp"),
                item.get("open"),
                item.get("high"),
                item.get("low"),
                item.get("close"),
            )
            if point is not None:
                points.append(point)
        return points
