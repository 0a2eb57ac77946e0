"""
Market Data Configuration

Defines provider configurations, priorities, rate limits, and cache settings.
"""

from dataclasses import dataclass, field
from typing import List, Dict

DAILY = "daily"
WEEKLY = "weekly"
MONTHLY = "monthly"
ALL_INTERVALS = [DAILY, WEEKLY, MONTHLY]


@dataclass
class ProviderConfig:
    """Configuration for a single history provider."""
    name: str
    priority: int = 100  # Lower = higher priority

    # Rate limiting
    requests_per_minute: int = 60
    requests_per_day: int = 10000
    enforce_minute_limit: bool = False  # Gate on the minute bucket too

    # Capabilities
    supported_intervals: List[str] = field(default_factory=lambda: list(ALL_INTERVALS))

    # Environment variable holding the API key
    api_key_env: str = ""


@dataclass
class CacheConfig:
    """Cache configuration for historical data."""
    # L1: In-memory cache (fast, per-process)
    memory_ttl_seconds: int = 300       # 5 minutes
    memory_max_size: int = 1000         # Max entries before eviction

    # L2: Database cache (append-only rows, swept periodically)
    durable_ttl_seconds: int = 3600     # 60 minutes


@dataclass
class CircuitBreakerConfig:
    failure_threshold: int = 3
    open_seconds: int = 60


# Fixed fallback order: ALPHA_VANTAGE -> FINNHUB -> TWELVEDATA -> MASSIVE
PROVIDER_CONFIGS: Dict[str, ProviderConfig] = {
    "ALPHA_VANTAGE": ProviderConfig(
        name="ALPHA_VANTAGE",
        priority=10,
        requests_per_minute=5,  # Free tier limit
        requests_per_day=25,
        enforce_minute_limit=True,
        api_key_env="ALPHA_VANTAGE_API_KEY",
    ),
    "FINNHUB": ProviderConfig(
        name="FINNHUB",
        priority=20,
        requests_per_minute=60,
        requests_per_day=500,
        supported_intervals=[DAILY],  # Daily candles only
        api_key_env="FINNHUB_API_KEY",
    ),
    "TWELVEDATA": ProviderConfig(
        name="TWELVEDATA",
        priority=30,
        requests_per_minute=60,
        requests_per_day=800,
        api_key_env="TWELVEDATA_API_KEY",
    ),
    "MASSIVE": ProviderConfig(
        name="MASSIVE",
        priority=40,
        requests_per_minute=100,
        requests_per_day=1000,
        api_key_env="MASSIVE_API_KEY",
    ),
}

# Longest series kept from any provider
MAX_HISTORY_POINTS = 5000

# Minimum points for a provider response to count as real data
MIN_POINTS_DAILY = 30
MIN_POINTS_OTHER = 2


def normalize_symbol(symbol: str) -> str:
    """Trim and upper-case a ticker."""
    if symbol is None:
        return ""
    return symbol.strip().upper()


def normalize_interval(interval: str) -> str:
    if not interval:
        return DAILY
    return interval.strip().lower()


def providers_by_priority() -> List[ProviderConfig]:
    return sorted(PROVIDER_CONFIGS.values(), key=lambda c: c.priority)
