"""
Per-provider API usage tracking.

Each provider has a daily and a per-minute request budget. Windows roll over
lazily: the counters are only checked (and zeroed) when a provider is
accessed. Every provider owns its own lock so callers hitting different
providers never contend.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from .config import ProviderConfig, PROVIDER_CONFIGS

logger = logging.getLogger(__name__)

DAY_SECONDS = 86400
MINUTE_SECONDS = 60


@dataclass(frozen=True)
class UsageSnapshot:
    """Read-only view of a provider's usage."""
    daily_count: int
    daily_limit: int
    minute_count: int
    minute_limit: int
    rate_limited: bool
    daily_usage_percent: float
    minute_usage_percent: float

    def to_dict(self) -> Dict:
        return {
            'daily_request_count': self.daily_count,
            'daily_limit': self.daily_limit,
            'minute_request_count': self.minute_count,
            'minute_limit': self.minute_limit,
            'rate_limited': self.rate_limited,
            'daily_usage_percent': round(self.daily_usage_percent, 2),
            'minute_usage_percent': round(self.minute_usage_percent, 2),
        }


UNKNOWN_PROVIDER_SNAPSHOT = UsageSnapshot(0, 0, 0, 0, True, 0.0, 0.0)


class ProviderMetrics:
    """Counters for a single provider. All access goes through the lock."""

    def __init__(self, provider: str, daily_limit: int, minute_limit: int, now: float):
        self.provider = provider
        self.daily_count = 0
        self.daily_limit = daily_limit
        self.minute_count = 0
        self.minute_limit = minute_limit
        self.last_daily_reset = now
        self.last_minute_reset = now
        self.rate_limited = False
        self._lock = threading.Lock()

    def _roll_daily(self, now: float) -> None:
        if now - self.last_daily_reset >= DAY_SECONDS:
            self.daily_count = 0
            self.last_daily_reset = now
            self.rate_limited = False

    def _roll_minute(self, now: float) -> None:
        if now - self.last_minute_reset >= MINUTE_SECONDS:
            self.minute_count = 0
            self.last_minute_reset = now

    def increment_daily(self, now: float) -> bool:
        with self._lock:
            self._roll_daily(now)
            if self.daily_count >= self.daily_limit:
                self.rate_limited = True
                return False
            self.daily_count += 1
            return True

    def take_minute_slot(self, now: float) -> bool:
        with self._lock:
            self._roll_minute(now)
            if self.minute_count >= self.minute_limit:
                return False
            self.minute_count += 1
            return True

    def snapshot(self, now: float) -> UsageSnapshot:
        with self._lock:
            self._roll_daily(now)
            self._roll_minute(now)
            return UsageSnapshot(
                daily_count=self.daily_count,
                daily_limit=self.daily_limit,
                minute_count=self.minute_count,
                minute_limit=self.minute_limit,
                rate_limited=self.rate_limited,
                daily_usage_percent=(
                    self.daily_count * 100.0 / self.daily_limit if self.daily_limit > 0 else 0.0
                ),
                minute_usage_percent=(
                    self.minute_count * 100.0 / self.minute_limit if self.minute_limit > 0 else 0.0
                ),
            )

    def reset(self, now: float) -> None:
        with self._lock:
            self.daily_count = 0
            self.minute_count = 0
            self.rate_limited = False
            self.last_daily_reset = now
            self.last_minute_reset = now


class RateLimitTracker:
    """
    Tracks API usage and rate limits across all providers.

    Usage:
        tracker = RateLimitTracker()
        if tracker.can_make_request("ALPHA_VANTAGE") and tracker.record_request("ALPHA_VANTAGE"):
            ...  # call the provider

    Unknown providers are treated as permanently rate limited.
    """

    def __init__(
        self,
        configs: Optional[Iterable[ProviderConfig]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._clock = clock
        now = clock()
        configs = list(configs) if configs is not None else list(PROVIDER_CONFIGS.values())
        # Built once; the dict itself is never mutated afterwards.
        self._providers: Dict[str, ProviderMetrics] = {
            c.name.upper(): ProviderMetrics(
                c.name.upper(), c.requests_per_day, c.requests_per_minute, now
            )
            for c in configs
        }

    def _lookup(self, provider: str) -> Optional[ProviderMetrics]:
        metrics = self._providers.get((provider or "").upper())
        if metrics is None:
            logger.warning(f"[RateLimit] Unknown provider: {provider}")
        return metrics

    @property
    def providers(self):
        return list(self._providers.keys())

    def record_request(self, provider: str) -> bool:
        """
        Count a request against the provider's daily budget.

        Returns False (without counting) once the daily limit is reached.
        """
        metrics = self._lookup(provider)
        if metrics is None:
            return False
        allowed = metrics.increment_daily(self._clock())
        if not allowed:
            logger.info(f"[RateLimit] {metrics.provider} daily limit reached ({metrics.daily_limit})")
        return allowed

    def can_make_request(self, provider: str) -> bool:
        """Take a slot from the provider's minute bucket. Daily budget is untouched."""
        metrics = self._lookup(provider)
        if metrics is None:
            return False
        allowed = metrics.take_minute_slot(self._clock())
        if not allowed:
            logger.info(f"[RateLimit] {metrics.provider} minute limit reached ({metrics.minute_limit})")
        return allowed

    def get_metrics(self, provider: str) -> UsageSnapshot:
        metrics = self._lookup(provider)
        if metrics is None:
            return UNKNOWN_PROVIDER_SNAPSHOT
        return metrics.snapshot(self._clock())

    get_provider_metrics = get_metrics

    def get_all_metrics(self) -> Dict[str, UsageSnapshot]:
        now = self._clock()
        return {name: m.snapshot(now) for name, m in self._providers.items()}

    def reset_metrics(self, provider: str) -> None:
        metrics = self._lookup(provider)
        if metrics is not None:
            metrics.reset(self._clock())
