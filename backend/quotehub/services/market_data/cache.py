"""
Tiered Cache for Historical Data

Provides a two-level caching system:
- L1: In-memory LRU cache (fast, per-process, 5 minute TTL)
- L2: Durable store (database rows, 60 minute TTL, append-only)

Reads go L1 -> L2 (promoting L2 hits into L1). Writes go to both tiers.
Expired L2 rows are removed by a periodic sweep, not on the request path.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections import OrderedDict
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Sequence, Any

from .config import CacheConfig
from .interfaces import CacheEntry, HistoricalPoint, Series, utcnow

logger = logging.getLogger(__name__)


def make_key(symbol: str, interval: str) -> str:
    return f"{symbol}|{interval}"


def serialize_points(points: Sequence[HistoricalPoint]) -> str:
    return json.dumps([p.to_dict() for p in points])


def deserialize_points(raw: str) -> Series:
    return tuple(HistoricalPoint.from_dict(item) for item in json.loads(raw))


class LRUCache:
    """
    Thread-safe LRU cache of CacheEntry objects.

    Expiry is checked on read; cleanup_expired() drops everything stale.
    """

    def __init__(self, max_size: int = 1000, clock: Callable[[], datetime] = utcnow):
        self._cache: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._max_size = max_size
        self._clock = clock
        self._lock = threading.Lock()
        self._stats = {
            "hits": 0,
            "misses": 0,
            "evictions": 0,
        }

    @property
    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                **self._stats,
                "size": len(self._cache),
                "max_size": self._max_size,
            }

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None

            if not entry.is_valid(self._clock()):
                del self._cache[key]
                self._stats["misses"] += 1
                return None

            self._cache.move_to_end(key)
            self._stats["hits"] += 1
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            if key in self._cache:
                del self._cache[key]

            while len(self._cache) >= self._max_size:
                oldest_key = next(iter(self._cache))
                del self._cache[oldest_key]
                self._stats["evictions"] += 1

            self._cache[key] = entry

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._cache.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns count of removed entries."""
        now = self._clock()
        with self._lock:
            expired_keys = [
                key for key, entry in self._cache.items()
                if not entry.is_valid(now)
            ]
            for key in expired_keys:
                del self._cache[key]
            return len(expired_keys)


class DurableCacheStore(ABC):
    """Persistent second tier. Rows are append-only."""

    @abstractmethod
    def find_valid(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        """Most recent non-expired entry for symbol+interval, or None."""
        pass

    @abstractmethod
    def save(self, entry: CacheEntry) -> None:
        pass

    @abstractmethod
    def delete_expired(self) -> int:
        """Delete expired rows. Returns how many were removed."""
        pass


class SQLAlchemyCacheStore(DurableCacheStore):
    """
    Durable tier backed by the ``stock_data_cache`` table.

    Must be used inside a Flask app context (request handlers and scheduler
    jobs both provide one).
    """

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._clock = clock

    def find_valid(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        from ...models import StockDataCache

        row = (
            StockDataCache.query
            .filter(
                StockDataCache.symbol == symbol,
                StockDataCache.time_interval == interval,
                StockDataCache.expires_at > self._clock(),
            )
            .order_by(StockDataCache.created_at.desc(), StockDataCache.id.desc())
            .first()
        )
        if row is None:
            return None
        return CacheEntry(
            symbol=row.symbol,
            interval=row.time_interval,
            points=deserialize_points(row.data),
            provider=row.provider,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def save(self, entry: CacheEntry) -> None:
        from ...models import db, StockDataCache

        row = StockDataCache(
            symbol=entry.symbol,
            time_interval=entry.interval,
            data=serialize_points(entry.points),
            provider=entry.provider,
            created_at=entry.created_at,
            expires_at=entry.expires_at,
        )
        try:
            db.session.add(row)
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def delete_expired(self) -> int:
        from ...models import db, StockDataCache

        try:
            removed = (
                StockDataCache.query
                .filter(StockDataCache.expires_at <= self._clock())
                .delete(synchronize_session=False)
            )
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return removed


class TieredCache:
    """
    Memory tier in front of a durable store.

    Usage:
        cache = TieredCache(SQLAlchemyCacheStore())
        series = cache.get("AAPL", "daily")
        if series is None:
            series = fetch()
            cache.put("AAPL", "daily", series, provider="FINNHUB")
    """

    def __init__(
        self,
        store: DurableCacheStore,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._config = config or CacheConfig()
        self._store = store
        self._clock = clock
        self._memory = LRUCache(max_size=self._config.memory_max_size, clock=clock)
        self._lock = threading.Lock()
        self._stats = {
            "memory_hits": 0,
            "durable_hits": 0,
            "misses": 0,
            "durable_errors": 0,
        }

    def _count(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def _memory_entry(self, symbol: str, interval: str, points: Series, provider: str) -> CacheEntry:
        now = self._clock()
        return CacheEntry(
            symbol=symbol,
            interval=interval,
            points=points,
            provider=provider,
            created_at=now,
            expires_at=now + timedelta(seconds=self._config.memory_ttl_seconds),
        )

    def get_entry(self, symbol: str, interval: str) -> Optional[CacheEntry]:
        key = make_key(symbol, interval)
        entry = self._memory.get(key)
        if entry is not None:
            self._count("memory_hits")
            logger.debug(f"[Cache] HIT memory {key} (source: {entry.provider})")
            return entry

        try:
            durable = self._store.find_valid(symbol, interval)
        except Exception as e:
            self._count("durable_errors")
            logger.error(f"[Cache] Durable lookup failed for {key}: {e}")
            durable = None

        if durable is None:
            self._count("misses")
            logger.debug(f"[Cache] MISS {key}")
            return None

        self._count("durable_hits")
        logger.info(f"[Cache] HIT database {key} (source: {durable.provider})")
        promoted = self._memory_entry(symbol, interval, durable.points, durable.provider)
        self._memory.set(key, promoted)
        return promoted

    def get(self, symbol: str, interval: str) -> Optional[Series]:
        entry = self.get_entry(symbol, interval)
        return entry.points if entry is not None else None

    def put(self, symbol: str, interval: str, series: Sequence[HistoricalPoint], provider: str) -> None:
        points = tuple(series)
        key = make_key(symbol, interval)
        self._memory.set(key, self._memory_entry(symbol, interval, points, provider))

        now = self._clock()
        entry = CacheEntry(
            symbol=symbol,
            interval=interval,
            points=points,
            provider=provider,
            created_at=now,
            expires_at=now + timedelta(seconds=self._config.durable_ttl_seconds),
        )
        try:
            self._store.save(entry)
        except Exception as e:
            self._count("durable_errors")
            logger.error(f"[Cache] Durable write failed for {key}: {e}")
            return
        logger.debug(f"[Cache] SET {key} ({len(points)} points, source: {provider})")

    def delete_expired(self) -> int:
        removed = self._store.delete_expired()
        if removed:
            logger.info(f"[Cache] Swept {removed} expired database entries")
        return removed

    def cleanup_expired(self) -> int:
        return self._memory.cleanup_expired()

    def clear_memory(self) -> None:
        self._memory.clear()
        logger.info("[Cache] Cleared memory tier")

    @property
    def stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = dict(self._stats)
        memory = self._memory.stats
        stats.update({
            "memory_size": memory["size"],
            "memory_max_size": memory["max_size"],
            "memory_evictions": memory["evictions"],
        })
        return stats
