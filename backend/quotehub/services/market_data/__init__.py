"""
Market Data Service - Resilient Historical Data Retrieval

Provides a single never-failing entry point for OHLC history with:
- Fixed-priority provider fallback (Alpha Vantage, Finnhub, Twelve Data, Massive)
- Per-provider daily/minute rate budgets
- Per-provider circuit breakers
- Two-level caching (memory -> database)
- Synthetic fallback when every provider is exhausted

Usage:
    from quotehub.services.market_data import build_market_data_service

    service = build_market_data_service(app.config)
    bars = service.get_historical_data("AAPL", "daily")
    df = service.get_history_df("AAPL")
"""

from .service import ProviderFetchOrchestrator, build_market_data_service, is_usable_data
from .interfaces import HistoricalPoint, CacheEntry, ProviderAdapter, StockPrice
from .config import ProviderConfig, CacheConfig, CircuitBreakerConfig, PROVIDER_CONFIGS
from .quotes import LivePriceService, QuoteResolver, ResolvedQuote, build_quote_resolver

__all__ = [
    # Main service
    "ProviderFetchOrchestrator",
    "build_market_data_service",
    "is_usable_data",
    # Interfaces
    "HistoricalPoint",
    "CacheEntry",
    "ProviderAdapter",
    "StockPrice",
    # Config
    "ProviderConfig",
    "CacheConfig",
    "CircuitBreakerConfig",
    "PROVIDER_CONFIGS",
    # Quotes
    "LivePriceService",
    "QuoteResolver",
    "ResolvedQuote",
    "build_quote_resolver",
]
