"""
Base Adapter with Common Utilities

Provides shared functionality for all history provider adapters:
- API key lookup and "configured" check
- Interval capability check from ProviderConfig
- HTTP GET with a per-provider timeout
- Error classification for logging
- Tolerant OHLC parsing (malformed rows are skipped)
"""

import json
import logging
import os
from abc import ABC
from decimal import InvalidOperation
from typing import Optional, Dict, Any, List

import requests

from ..config import ProviderConfig, MAX_HISTORY_POINTS
from ..interfaces import ProviderAdapter, HistoricalPoint, to_price
from ..exceptions import ProviderRateLimitedError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


def is_rate_limit_error(e: Exception) -> bool:
    """
    Check if an exception indicates a rate limit error.

    This covers various ways different APIs signal rate limiting:
    - HTTP 429 Too Many Requests
    - Explicit quota notices in the payload
    """
    if isinstance(e, ProviderRateLimitedError):
        return True

    if isinstance(e, requests.exceptions.HTTPError) and e.response is not None:
        if e.response.status_code == 429:
            return True

    error_msg = str(e).lower()
    rate_limit_indicators = [
        "too many requests",
        "rate limit",
        "429",
        "quota exceeded",
        "throttl",
    ]
    return any(indicator in error_msg for indicator in rate_limit_indicators)


def is_network_error(e: Exception) -> bool:
    """Check if an exception indicates a network connectivity issue or timeout."""
    if isinstance(e, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True

    error_msg = str(e).lower()
    network_indicators = [
        "connection refused",
        "connection reset",
        "timed out",
        "network is unreachable",
        "name resolution",
        "ssl",
        "remote end closed",
    ]
    return any(indicator in error_msg for indicator in network_indicators)


def classify_error(e: Exception) -> str:
    if is_rate_limit_error(e):
        return "rate_limited"
    if is_network_error(e):
        return "network"
    if isinstance(e, (ValueError, KeyError, TypeError, InvalidOperation, json.JSONDecodeError)):
        return "parse"
    return "error"


def parse_point(timestamp: Any, open_: Any, high: Any, low: Any, close: Any) -> Optional[HistoricalPoint]:
    """Build a HistoricalPoint, or None if any field is missing or malformed."""
    if timestamp is None or None in (open_, high, low, close):
        return None
    try:
        return HistoricalPoint(
            timestamp=str(timestamp),
            open=to_price(open_),
            high=to_price(high),
            low=to_price(low),
            close=to_price(close),
        )
    except (ValueError, TypeError, InvalidOperation):
        return None


class BaseAdapter(ProviderAdapter, ABC):
    """
    Base class for HTTP history adapters.

    Subclasses set ``base_url``, implement ``fetch_history`` and may
    override ``_check_payload`` to turn error-shaped responses into
    ProviderResponseError.
    """

    base_url = ""

    def __init__(
        self,
        config: ProviderConfig,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self._config = config
        if api_key is None:
            api_key = os.environ.get(config.api_key_env, "") if config.api_key_env else ""
        self._api_key = api_key or ""
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def config(self) -> ProviderConfig:
        return self._config

    def is_configured(self) -> bool:
        """Check if API key is configured."""
        return bool(self._api_key.strip())

    def supports_interval(self, interval: str) -> bool:
        return interval in self._config.supported_intervals

    def _check_payload(self, data: Any) -> None:
        """Raise ProviderResponseError if ``data`` is an error payload."""
        pass

    def _get_json(self, url: str, params: Dict[str, Any]) -> Any:
        response = self._session.get(url, params=params, timeout=self._timeout)
        response.raise_for_status()
        data = response.json()
        self._check_payload(data)
        return data

    @staticmethod
    def _limit(points: List[HistoricalPoint]) -> List[HistoricalPoint]:
        """Keep the most recent MAX_HISTORY_POINTS points."""
        if len(points) <= MAX_HISTORY_POINTS:
            return points
        return sorted(points, key=lambda p: p.timestamp)[-MAX_HISTORY_POINTS:]
