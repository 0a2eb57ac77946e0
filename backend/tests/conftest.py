"""
Global test fixtures for quotehub backend tests.
All external dependencies (provider HTTP APIs, Yahoo Finance) are faked.
"""
import pytest
import os
import sys
from datetime import datetime, date, timedelta
from decimal import Decimal

import numpy as np

# Ensure backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quotehub.services.market_data.cache import DurableCacheStore, TieredCache
from quotehub.services.market_data.circuit_breaker import CircuitBreakerRegistry
from quotehub.services.market_data.config import (
    PROVIDER_CONFIGS, CacheConfig, CircuitBreakerConfig, ALL_INTERVALS,
)
from quotehub.services.market_data.interfaces import HistoricalPoint, ProviderAdapter
from quotehub.services.market_data.rate_limiter import RateLimitTracker
from quotehub.services.market_data.service import ProviderFetchOrchestrator
from quotehub.services.market_data.synthetic import SyntheticDataGenerator


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class ManualClock:
    """Controllable clock serving both epoch seconds and naive UTC datetimes."""

    def __init__(self, start=datetime(2026, 3, 2, 9, 30, 0)):
        self._start = start
        self._offset = 0.0

    def time(self):
        return self._start.timestamp() + self._offset

    def utcnow(self):
        return self._start + timedelta(seconds=self._offset)

    def advance(self, seconds):
        self._offset += seconds


class FakeAdapter(ProviderAdapter):
    """
    Scripted provider.

    ``result`` may be a list of points, an exception instance to raise, or a
    callable taking (symbol, interval).
    """

    def __init__(self, name, result=None, configured=True, intervals=None):
        self._name = name
        self.result = result if result is not None else []
        self.configured = configured
        self.intervals = list(intervals) if intervals is not None else list(ALL_INTERVALS)
        self.calls = []

    @property
    def name(self):
        return self._name

    def is_configured(self):
        return self.configured

    def supports_interval(self, interval):
        return interval in self.intervals

    def fetch_history(self, symbol, interval):
        self.calls.append((symbol, interval))
        if isinstance(self.result, Exception):
            raise self.result
        if callable(self.result):
            return self.result(symbol, interval)
        return list(self.result)


class InMemoryCacheStore(DurableCacheStore):
    """Durable tier stand-in keeping rows in a list."""

    def __init__(self, clock):
        self._clock = clock
        self.rows = []
        self.fail_on_save = False
        self.fail_on_find = False

    def find_valid(self, symbol, interval):
        if self.fail_on_find:
            raise RuntimeError("durable store unavailable")
        now = self._clock()
        valid = [
            r for r in self.rows
            if r.symbol == symbol and r.interval == interval and r.expires_at > now
        ]
        if not valid:
            return None
        return max(valid, key=lambda r: r.created_at)

    def save(self, entry):
        if self.fail_on_save:
            raise RuntimeError("durable store unavailable")
        self.rows.append(entry)

    def delete_expired(self):
        now = self._clock()
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.expires_at > now]
        return before - len(self.rows)


def make_points(count, start=date(2024, 1, 1), step_days=1, base=100, descending=False):
    """Build ``count`` well-formed points, one every ``step_days``."""
    points = []
    for i in range(count):
        day = start + timedelta(days=i * step_days)
        price = Decimal(base + i)
        points.append(HistoricalPoint(
            timestamp=day.isoformat(),
            open=price,
            high=price + Decimal("1.50"),
            low=price - Decimal("1.25"),
            close=price + Decimal("0.50"),
        ))
    if descending:
        points.reverse()
    return points


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def memory_store(clock):
    return InMemoryCacheStore(clock.utcnow)


@pytest.fixture
def build_orchestrator(clock, memory_store):
    """Factory returning an orchestrator wired to fakes and the manual clock."""

    def _build(adapters, failure_threshold=3, open_seconds=60, synthetic_points=200):
        cache = TieredCache(memory_store, CacheConfig(), clock=clock.utcnow)
        return ProviderFetchOrchestrator(
            adapters=adapters,
            cache=cache,
            rate_limiter=RateLimitTracker(PROVIDER_CONFIGS.values(), clock=clock.time),
            circuit_breakers=CircuitBreakerRegistry(
                PROVIDER_CONFIGS.keys(),
                CircuitBreakerConfig(failure_threshold=failure_threshold, open_seconds=open_seconds),
                clock=clock.time,
            ),
            synthetic=SyntheticDataGenerator(
                points=synthetic_points,
                rng=np.random.default_rng(7),
                today=lambda: date(2026, 3, 2),
            ),
        )

    return _build


# ---------------------------------------------------------------------------
# Flask application
# ---------------------------------------------------------------------------

@pytest.fixture(scope='session')
def app():
    """Create Flask test application with SQLite in-memory database."""
    os.environ['TESTING'] = 'true'
    os.environ['SQLALCHEMY_DATABASE_URI'] = 'sqlite://'
    os.environ['SCHEDULER_ENABLED'] = 'false'

    from quotehub import create_app
    from quotehub.config import Config

    class TestConfig(Config):
        TESTING = True
        SQLALCHEMY_DATABASE_URI = 'sqlite://'
        SQLALCHEMY_ENGINE_OPTIONS = {
            'pool_pre_ping': False,
            'connect_args': {'check_same_thread': False}
        }
        SCHEDULER_ENABLED = False
        ALPHA_VANTAGE_API_KEY = ''
        FINNHUB_API_KEY = ''
        TWELVEDATA_API_KEY = ''
        MASSIVE_API_KEY = ''
        SYNTHETIC_DATA_POINTS = 120
        ADMIN_API_TOKEN = 'test-admin-token'

    app = create_app(TestConfig)

    with app.app_context():
        from quotehub.models import db
        db.create_all()

    yield app

    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Database session; tables are emptied after each test."""
    from quotehub.models import db, StockDataCache, Stock
    with app.app_context():
        yield db.session
        db.session.rollback()
        StockDataCache.query.delete()
        Stock.query.delete()
        db.session.commit()
