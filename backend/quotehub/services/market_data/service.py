"""
Market Data Service - Central Entry Point

Provides a single, never-failing history lookup with:
- Two-tier caching (memory -> database)
- Fixed-priority provider fallback chain
- Per-provider rate budgets and circuit breakers
- Usability check against degenerate provider responses
- Synthetic fallback when every provider is exhausted (never cached)
"""

import logging
import time
from typing import Optional, List, Dict, Any, Sequence, Tuple

import pandas as pd

from .cache import TieredCache, SQLAlchemyCacheStore
from .circuit_breaker import CircuitBreakerRegistry
from .config import (
    PROVIDER_CONFIGS, ProviderConfig, CacheConfig, CircuitBreakerConfig,
    DAILY, MIN_POINTS_DAILY, MIN_POINTS_OTHER,
    normalize_symbol, normalize_interval, providers_by_priority,
)
from .interfaces import ProviderAdapter, HistoricalPoint
from .rate_limiter import RateLimitTracker
from .synthetic import SyntheticDataGenerator
from .adapters.base import classify_error

logger = logging.getLogger(__name__)

SYNTHETIC_SOURCE = "SYNTHETIC"


def is_usable_data(points: Optional[Sequence[HistoricalPoint]], interval: str) -> bool:
    """Daily series need at least 30 points, anything else at least 2."""
    if not points:
        return False
    if interval == DAILY:
        return len(points) >= MIN_POINTS_DAILY
    return len(points) >= MIN_POINTS_OTHER


class ProviderFetchOrchestrator:
    """
    Central service for historical market data.

    Usage:
        service = build_market_data_service(app.config)
        bars = service.get_historical_data("AAPL", "daily")

    Providers are tried strictly in the order given; the first usable result
    wins. Nothing raised by an adapter escapes this class.
    """

    def __init__(
        self,
        adapters: Sequence[ProviderAdapter],
        cache: TieredCache,
        rate_limiter: RateLimitTracker,
        circuit_breakers: CircuitBreakerRegistry,
        synthetic: SyntheticDataGenerator,
        provider_configs: Optional[Dict[str, ProviderConfig]] = None,
    ):
        self._adapters: List[ProviderAdapter] = list(adapters)
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._breakers = circuit_breakers
        self._synthetic = synthetic
        self._configs = provider_configs if provider_configs is not None else PROVIDER_CONFIGS

        for adapter in self._adapters:
            state = "configured" if adapter.is_configured() else "not configured"
            logger.info(f"[MarketData] Registered provider: {adapter.name} ({state})")

    @property
    def adapters(self) -> List[ProviderAdapter]:
        return list(self._adapters)

    @property
    def cache(self) -> TieredCache:
        return self._cache

    @property
    def rate_limiter(self) -> RateLimitTracker:
        return self._rate_limiter

    @property
    def circuit_breakers(self) -> CircuitBreakerRegistry:
        return self._breakers

    # ─────────────────────────────────────────────────────────────
    # Public API Methods
    # ─────────────────────────────────────────────────────────────

    def get_historical_data(self, symbol: str, interval: str = DAILY) -> List[HistoricalPoint]:
        """
        Get historical OHLC data, oldest first.

        Never raises: on total provider exhaustion (or any internal error)
        a synthetic series is returned and not cached.
        """
        points, _ = self.get_historical_data_with_source(symbol, interval)
        return points

    def get_historical_data_with_source(
        self, symbol: str, interval: str = DAILY
    ) -> Tuple[List[HistoricalPoint], str]:
        """Same as get_historical_data, paired with the provider that produced it (or SYNTHETIC)."""
        symbol = normalize_symbol(symbol)
        interval = normalize_interval(interval)
        try:
            cached = self._cache.get_entry(symbol, interval)
            if cached is not None:
                return list(cached.points), cached.provider

            logger.info(f"[MarketData] Cache MISS for {symbol} ({interval}) - fetching from providers")
            fetched = self._fetch_from_providers(symbol, interval)
            if fetched is not None:
                return fetched
        except Exception as e:
            logger.error(f"[MarketData] Unexpected error fetching {symbol} ({interval}): {e}", exc_info=True)

        logger.warning(f"[MarketData] All providers exhausted for {symbol} ({interval}), using synthetic data")
        return self._synthetic.generate(symbol), SYNTHETIC_SOURCE

    def _fetch_from_providers(
        self, symbol: str, interval: str
    ) -> Optional[Tuple[List[HistoricalPoint], str]]:
        providers_tried = []
        start_time = time.time()

        for adapter in self._adapters:
            if not adapter.is_configured() or not adapter.supports_interval(interval):
                continue
            if not self._breakers.allow_attempt(adapter.name):
                continue
            if not self._take_budget(adapter.name):
                continue

            providers_tried.append(adapter.name)
            points = self._invoke(adapter, symbol, interval)

            if not is_usable_data(points, interval):
                logger.info(
                    f"[MarketData] {adapter.name} returned unusable data for {symbol} "
                    f"({len(points)} points)"
                )
                self._breakers.record_outcome(adapter.name, False)
                continue

            self._breakers.record_outcome(adapter.name, True)
            series = sorted(points, key=lambda p: p.timestamp)
            self._cache.put(symbol, interval, series, adapter.name)
            logger.info(
                f"[MarketData] History {symbol}: {adapter.name} "
                f"({(time.time() - start_time) * 1000:.0f}ms, {len(series)} rows, tried: {providers_tried})"
            )
            return series, adapter.name

        return None

    def _take_budget(self, provider: str) -> bool:
        """Minute bucket (where enforced) then the daily budget. Denial is a skip."""
        config = self._configs.get(provider)
        if config is not None and config.enforce_minute_limit:
            if not self._rate_limiter.can_make_request(provider):
                logger.info(f"[MarketData] {provider} minute limit reached, skipping")
                return False
        if not self._rate_limiter.record_request(provider):
            logger.info(f"[MarketData] {provider} daily limit reached, skipping")
            return False
        return True

    def _invoke(self, adapter: ProviderAdapter, symbol: str, interval: str) -> List[HistoricalPoint]:
        """Call the adapter; every exception becomes an empty result."""
        try:
            return list(adapter.fetch_history(symbol, interval) or [])
        except Exception as e:
            kind = classify_error(e)
            logger.warning(f"[MarketData] {adapter.name} failed for history {symbol} ({kind}): {e}")
            return []

    def get_history_df(self, symbol: str, interval: str = DAILY) -> pd.DataFrame:
        """History as a DataFrame indexed by date with Open/High/Low/Close columns."""
        points = self.get_historical_data(symbol, interval)
        df = pd.DataFrame(
            [
                {
                    "Date": pd.Timestamp(p.timestamp),
                    "Open": float(p.open),
                    "High": float(p.high),
                    "Low": float(p.low),
                    "Close": float(p.close),
                }
                for p in points
            ],
            columns=["Date", "Open", "High", "Low", "Close"],
        )
        return df.set_index("Date").sort_index()

    # ─────────────────────────────────────────────────────────────
    # Utility Methods
    # ─────────────────────────────────────────────────────────────

    def clear_memory_cache(self) -> None:
        self._cache.clear_memory()

    def get_provider_circuit_breaker_status(self) -> Dict[str, Dict[str, Any]]:
        return self._breakers.get_status()

    def get_provider_status(self) -> Dict[str, Dict[str, Any]]:
        """Status of all registered providers."""
        breakers = self._breakers.get_status()
        status = {}
        for adapter in self._adapters:
            config = self._configs.get(adapter.name)
            status[adapter.name] = {
                'configured': adapter.is_configured(),
                'priority': config.priority if config else 999,
                'supported_intervals': list(config.supported_intervals) if config else [],
                'circuit_breaker': breakers.get(adapter.name.upper()),
                'usage': self._rate_limiter.get_metrics(adapter.name).to_dict(),
            }
        return status

    def get_stats(self) -> Dict[str, Any]:
        return {
            'cache': self._cache.stats,
            'providers': self.get_provider_status(),
        }


def build_market_data_service(settings: Optional[Dict[str, Any]] = None) -> ProviderFetchOrchestrator:
    """
    Construct the orchestrator and all of its collaborators.

    ``settings`` is a mapping such as Flask's ``app.config``; missing keys
    fall back to the defaults in config.py.
    """
    from .adapters import AlphaVantageAdapter, FinnhubAdapter, TwelveDataAdapter, MassiveAdapter

    settings = settings or {}
    timeout = float(settings.get('PROVIDER_TIMEOUT_SECONDS', 10))
    keys = {
        "ALPHA_VANTAGE": settings.get('ALPHA_VANTAGE_API_KEY'),
        "FINNHUB": settings.get('FINNHUB_API_KEY'),
        "TWELVEDATA": settings.get('TWELVEDATA_API_KEY'),
        "MASSIVE": settings.get('MASSIVE_API_KEY'),
    }
    adapter_classes = {
        "ALPHA_VANTAGE": AlphaVantageAdapter,
        "FINNHUB": FinnhubAdapter,
        "TWELVEDATA": TwelveDataAdapter,
        "MASSIVE": MassiveAdapter,
    }
    adapters = [
        adapter_classes[config.name](config, api_key=keys[config.name], timeout=timeout)
        for config in providers_by_priority()
    ]

    cache_config = CacheConfig(
        memory_ttl_seconds=int(settings.get('MEMORY_CACHE_TTL_SECONDS', 300)),
        durable_ttl_seconds=int(settings.get('DURABLE_CACHE_TTL_SECONDS', 3600)),
    )
    breaker_config = CircuitBreakerConfig(
        failure_threshold=int(settings.get('CIRCUIT_BREAKER_FAILURE_THRESHOLD', 3)),
        open_seconds=int(settings.get('CIRCUIT_BREAKER_OPEN_SECONDS', 60)),
    )

    return ProviderFetchOrchestrator(
        adapters=adapters,
        cache=TieredCache(SQLAlchemyCacheStore(), cache_config),
        rate_limiter=RateLimitTracker(PROVIDER_CONFIGS.values()),
        circuit_breakers=CircuitBreakerRegistry(PROVIDER_CONFIGS.keys(), breaker_config),
        synthetic=SyntheticDataGenerator(points=int(settings.get('SYNTHETIC_DATA_POINTS', 4000))),
    )
